from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Index, Integer, String, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from aiquiz.db.models.base import Base


class QuizResult(Base):
    __tablename__ = "quiz_results"
    __table_args__ = (
        CheckConstraint(
            "difficulty IN ('easy','medium','hard')",
            name="ck_quiz_results_difficulty",
        ),
        CheckConstraint("total_questions > 0", name="ck_quiz_results_total_positive"),
        CheckConstraint(
            "score >= 0 AND score <= total_questions",
            name="ck_quiz_results_score_range",
        ),
        CheckConstraint("time_taken >= 0", name="ck_quiz_results_time_taken_non_negative"),
        Index("idx_quiz_results_user_created", "user_id", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    topic: Mapped[str] = mapped_column(String(200), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False)
    questions: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    time_taken: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
