from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

import structlog

from aiquiz.db.models.quiz_results import QuizResult as QuizResultRow
from aiquiz.db.repo.quiz_results_repo import QuizResultsRepo
from aiquiz.db.session import SessionLocal
from aiquiz.quiz.types import AnsweredQuestion, Difficulty

logger = structlog.get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 20


@dataclass(slots=True)
class QuizHistoryItem:
    result_id: UUID
    topic: str
    difficulty: str
    score: int
    total_questions: int
    time_taken: int
    created_at: datetime


@dataclass(slots=True)
class QuizHistory:
    items: list[QuizHistoryItem]
    total_results: int


class SqlQuizResultStore:
    def __init__(self, session_factory: Any = SessionLocal) -> None:
        self._session_factory = session_factory

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
    ) -> None:
        async with self._session_factory.begin() as session:
            row = await QuizResultsRepo.create(
                session,
                result=QuizResultRow(
                    id=uuid4(),
                    user_id=user_id,
                    topic=topic,
                    difficulty=difficulty.value,
                    questions=[item.to_record() for item in questions],
                    score=score,
                    total_questions=total_questions,
                    time_taken=time_taken,
                ),
            )
        logger.info(
            "quiz_result_saved",
            result_id=str(row.id),
            user_id=user_id,
            score=score,
            total_questions=total_questions,
        )

    async def get_history(self, *, user_id: int, limit: int = DEFAULT_HISTORY_LIMIT) -> QuizHistory:
        async with self._session_factory() as session:
            rows = await QuizResultsRepo.list_recent_for_user(session, user_id=user_id, limit=limit)
            total_results = await QuizResultsRepo.count_for_user(session, user_id=user_id)
        return QuizHistory(
            items=[
                QuizHistoryItem(
                    result_id=row.id,
                    topic=row.topic,
                    difficulty=row.difficulty,
                    score=row.score,
                    total_questions=row.total_questions,
                    time_taken=row.time_taken,
                    created_at=row.created_at,
                )
                for row in rows
            ],
            total_results=total_results,
        )
