from __future__ import annotations

import json
import re
from typing import Any

from aiquiz.quiz.errors import QuestionGenerationError
from aiquiz.quiz.types import Question

CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)
JSON_ARRAY_RE = re.compile(r"\[.*\]", re.DOTALL)
MIN_OPTIONS = 2


def _strip_code_fence(raw: str) -> str:
    text = raw.strip()
    match = CODE_FENCE_RE.match(text)
    return match.group(1) if match else text


def _load_payload(raw: str) -> Any:
    text = _strip_code_fence(raw)
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        match = JSON_ARRAY_RE.search(text)
        if match is None:
            raise QuestionGenerationError("Received an unreadable response from the question generator") from None
        try:
            return json.loads(match.group())
        except json.JSONDecodeError as exc:
            raise QuestionGenerationError(
                "Received an unreadable response from the question generator",
            ) from exc


def _as_text(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def parse_question(item: object, *, position: int) -> Question:
    if not isinstance(item, dict):
        raise QuestionGenerationError(f"Question {position} is not an object")

    prompt = _as_text(item.get("question"))
    if prompt is None:
        raise QuestionGenerationError(f"Question {position} has no text")

    raw_options = item.get("options")
    if not isinstance(raw_options, list):
        raise QuestionGenerationError(f"Question {position} has no options")
    options: list[str] = []
    for raw_option in raw_options:
        option = _as_text(raw_option)
        if option is None or option in options:
            raise QuestionGenerationError(f"Question {position} has an empty or duplicate option")
        options.append(option)
    if len(options) < MIN_OPTIONS:
        raise QuestionGenerationError(f"Question {position} needs at least {MIN_OPTIONS} options")

    answer = _as_text(item.get("answer"))
    if answer is None or answer not in options:
        raise QuestionGenerationError(f"Question {position} has an answer that is not one of its options")

    explanation = _as_text(item.get("explanation"))
    return Question(question=prompt, options=tuple(options), answer=answer, explanation=explanation)


def parse_questions(raw: str, *, expected_count: int) -> list[Question]:
    payload = _load_payload(raw)
    if isinstance(payload, dict):
        payload = payload.get("questions")
    if not isinstance(payload, list):
        raise QuestionGenerationError("The question generator did not return a list of questions")
    if len(payload) < expected_count:
        raise QuestionGenerationError(
            f"Expected {expected_count} questions but received {len(payload)}",
        )

    return [parse_question(item, position=index + 1) for index, item in enumerate(payload[:expected_count])]
