from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from aiquiz.quiz.types import AnsweredQuestion, Question, QuizResult

PASS_PERCENTAGE = 70
SCORE_MESSAGES: tuple[tuple[int, str], ...] = (
    (90, "Outstanding!"),
    (80, "Excellent work!"),
    (70, "Great job!"),
    (60, "Good effort!"),
)
FALLBACK_SCORE_MESSAGE = "Keep practicing!"


@dataclass(frozen=True, slots=True)
class ResultSummary:
    percentage: int
    passed: bool
    score_band: str
    message: str
    time_taken_minutes: int


def score_answers(questions: Sequence[Question], answers: Sequence[str]) -> int:
    # Exact match only: no trimming, no case folding.
    return sum(1 for question, answer in zip(questions, answers) if answer == question.answer)


def elapsed_seconds(*, started_at: datetime, finished_at: datetime) -> int:
    return max(0, math.floor((finished_at - started_at).total_seconds()))


def build_quiz_result(
    questions: Sequence[Question],
    answers: Sequence[str],
    *,
    started_at: datetime,
    finished_at: datetime,
) -> QuizResult:
    if not questions:
        raise ValueError("cannot score a quiz without questions")
    if len(answers) != len(questions):
        raise ValueError(
            f"expected {len(questions)} answers, got {len(answers)}",
        )

    answered = tuple(
        AnsweredQuestion(question=question, user_answer=answer or "")
        for question, answer in zip(questions, answers)
    )
    return QuizResult(
        score=sum(1 for item in answered if item.is_correct),
        total=len(answered),
        questions=answered,
        time_taken=elapsed_seconds(started_at=started_at, finished_at=finished_at),
    )


def score_percentage(*, score: int, total: int) -> int:
    if total <= 0:
        return 0
    # Half-up rounding, so 2/3 -> 67 and 1/8 -> 13.
    return math.floor(score * 100 / total + 0.5)


def _score_band(percentage: int) -> str:
    if percentage >= 80:
        return "high"
    if percentage >= 60:
        return "medium"
    return "low"


def _score_message(percentage: int) -> str:
    for threshold, message in SCORE_MESSAGES:
        if percentage >= threshold:
            return message
    return FALLBACK_SCORE_MESSAGE


def summarize_result(result: QuizResult) -> ResultSummary:
    percentage = score_percentage(score=result.score, total=result.total)
    return ResultSummary(
        percentage=percentage,
        passed=percentage >= PASS_PERCENTAGE,
        score_band=_score_band(percentage),
        message=_score_message(percentage),
        time_taken_minutes=result.time_taken // 60,
    )
