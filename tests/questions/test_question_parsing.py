from __future__ import annotations

import json

import pytest

from aiquiz.questions.parsing import parse_questions
from aiquiz.quiz.errors import QuestionGenerationError

QUESTIONS = [
    {
        "question": "What is the capital of France?",
        "options": ["Paris", "London", "Berlin", "Madrid"],
        "answer": "Paris",
        "explanation": "Paris has been the capital since 987.",
    },
    {
        "question": "What is the capital of Japan?",
        "options": ["Tokyo", "Kyoto", "Osaka", "Seoul"],
        "answer": "Tokyo",
    },
]


def test_parse_questions_reads_plain_json_array() -> None:
    questions = parse_questions(json.dumps(QUESTIONS), expected_count=2)

    assert [question.answer for question in questions] == ["Paris", "Tokyo"]
    assert questions[0].options == ("Paris", "London", "Berlin", "Madrid")
    assert questions[0].explanation == "Paris has been the capital since 987."
    assert questions[1].explanation is None


def test_parse_questions_accepts_code_fence_and_wrapper_object() -> None:
    raw = "```json\n" + json.dumps({"questions": QUESTIONS}) + "\n```"

    questions = parse_questions(raw, expected_count=2)

    assert len(questions) == 2


def test_parse_questions_finds_array_inside_chatter() -> None:
    raw = "Here are your questions:\n" + json.dumps(QUESTIONS) + "\nGood luck!"

    assert len(parse_questions(raw, expected_count=2)) == 2


def test_parse_questions_truncates_extra_questions() -> None:
    questions = parse_questions(json.dumps(QUESTIONS), expected_count=1)

    assert len(questions) == 1
    assert questions[0].answer == "Paris"


def test_parse_questions_rejects_short_batch() -> None:
    with pytest.raises(QuestionGenerationError, match="Expected 3 questions but received 2"):
        parse_questions(json.dumps(QUESTIONS), expected_count=3)


def test_parse_questions_rejects_answer_outside_options() -> None:
    broken = [dict(QUESTIONS[0], answer="paris")]

    with pytest.raises(QuestionGenerationError, match="not one of its options"):
        parse_questions(json.dumps(broken), expected_count=1)


@pytest.mark.parametrize(
    "item",
    [
        {"options": ["a", "b"], "answer": "a"},
        {"question": "q", "options": ["a"], "answer": "a"},
        {"question": "q", "options": ["a", "a"], "answer": "a"},
        {"question": "q", "options": "a,b", "answer": "a"},
        "not an object",
    ],
)
def test_parse_questions_rejects_malformed_items(item: object) -> None:
    with pytest.raises(QuestionGenerationError):
        parse_questions(json.dumps([item]), expected_count=1)


def test_parse_questions_rejects_unreadable_text() -> None:
    with pytest.raises(QuestionGenerationError, match="unreadable"):
        parse_questions("I cannot help with that.", expected_count=1)
