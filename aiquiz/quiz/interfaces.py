from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from aiquiz.quiz.types import AnsweredQuestion, Difficulty, Question


class QuestionSource(Protocol):
    async def generate(self, topic: str, difficulty: Difficulty, count: int) -> list[Question]: ...


class ResultStore(Protocol):
    async def save_quiz_result(
        self,
        *,
        user_id: int,
        topic: str,
        difficulty: Difficulty,
        questions: Sequence[AnsweredQuestion],
        score: int,
        total_questions: int,
        time_taken: int,
    ) -> None: ...
