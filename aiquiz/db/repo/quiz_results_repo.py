from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from aiquiz.db.models.quiz_results import QuizResult


class QuizResultsRepo:
    @staticmethod
    async def create(session: AsyncSession, *, result: QuizResult) -> QuizResult:
        session.add(result)
        await session.flush()
        return result

    @staticmethod
    async def list_recent_for_user(
        session: AsyncSession,
        *,
        user_id: int,
        limit: int = 20,
    ) -> list[QuizResult]:
        stmt = (
            select(QuizResult)
            .where(QuizResult.user_id == user_id)
            .order_by(QuizResult.created_at.desc(), QuizResult.id.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def count_for_user(session: AsyncSession, *, user_id: int) -> int:
        stmt = select(func.count(QuizResult.id)).where(QuizResult.user_id == user_id)
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)
