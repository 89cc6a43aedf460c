from __future__ import annotations

from typing import Any

import httpx
import structlog

from aiquiz.questions.parsing import parse_questions
from aiquiz.questions.prompts import build_question_prompt
from aiquiz.quiz.errors import QuestionGenerationError
from aiquiz.quiz.types import Difficulty, Question

logger = structlog.get_logger(__name__)

GENERATION_TEMPERATURE = 0.7
HTTP_TOO_MANY_REQUESTS = 429


def extract_response_text(payload: object) -> str:
    if not isinstance(payload, dict):
        raise QuestionGenerationError("Received an unexpected response from the question generator")

    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        feedback = payload.get("promptFeedback")
        block_reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
        if block_reason:
            raise QuestionGenerationError(f"The question generator declined the request ({block_reason})")
        raise QuestionGenerationError("The question generator returned no questions")

    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        raise QuestionGenerationError("The question generator returned no questions")

    text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
    if not text.strip():
        raise QuestionGenerationError("The question generator returned no questions")
    return text


class GeminiQuestionSource:
    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/models/{self._model}:generateContent"

    def _request_body(self, *, topic: str, difficulty: Difficulty, count: int) -> dict[str, Any]:
        return {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": build_question_prompt(topic=topic, difficulty=difficulty, count=count)}],
                }
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "temperature": GENERATION_TEMPERATURE,
            },
        }

    async def generate(self, topic: str, difficulty: Difficulty, count: int) -> list[Question]:
        if not self._api_key:
            raise QuestionGenerationError("Question generation is not configured")
        if count <= 0:
            raise QuestionGenerationError("At least one question is required")

        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds, transport=self._transport) as client:
                response = await client.post(
                    self.endpoint,
                    json=self._request_body(topic=topic, difficulty=difficulty, count=count),
                    headers={"x-goog-api-key": self._api_key},
                )
        except httpx.HTTPError as exc:
            logger.warning("gemini_request_failed", model=self._model, error_type=type(exc).__name__)
            raise QuestionGenerationError("Could not reach the question generator") from exc

        if response.status_code == HTTP_TOO_MANY_REQUESTS:
            logger.warning("gemini_quota_exceeded", model=self._model)
            raise QuestionGenerationError("The question generator is busy, please try again later")
        if response.is_error:
            logger.warning("gemini_request_rejected", model=self._model, status_code=response.status_code)
            raise QuestionGenerationError(f"The question generator failed with status {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise QuestionGenerationError("Received an unreadable response from the question generator") from exc

        questions = parse_questions(extract_response_text(payload), expected_count=count)
        logger.info(
            "gemini_questions_generated",
            model=self._model,
            topic=topic,
            difficulty=difficulty.value,
            count=len(questions),
        )
        return questions


def build_question_source(settings: object) -> GeminiQuestionSource:
    return GeminiQuestionSource(
        api_key=getattr(settings, "gemini_api_key", ""),
        model=getattr(settings, "gemini_model"),
        base_url=getattr(settings, "gemini_api_base_url"),
        timeout_seconds=float(getattr(settings, "gemini_timeout_seconds", 30.0)),
    )
