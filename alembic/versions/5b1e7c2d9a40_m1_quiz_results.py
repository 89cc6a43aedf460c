"""m1_quiz_results

Revision ID: 5b1e7c2d9a40
Revises:
Create Date: 2026-10-19 10:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "5b1e7c2d9a40"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "quiz_results",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("topic", sa.String(200), nullable=False),
        sa.Column("difficulty", sa.String(16), nullable=False),
        sa.Column("questions", postgresql.JSONB(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("total_questions", sa.Integer(), nullable=False),
        sa.Column("time_taken", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("difficulty IN ('easy','medium','hard')", name="ck_quiz_results_difficulty"),
        sa.CheckConstraint("total_questions > 0", name="ck_quiz_results_total_positive"),
        sa.CheckConstraint("score >= 0 AND score <= total_questions", name="ck_quiz_results_score_range"),
        sa.CheckConstraint("time_taken >= 0", name="ck_quiz_results_time_taken_non_negative"),
    )
    op.create_index("idx_quiz_results_user_created", "quiz_results", ["user_id", "created_at"])


def downgrade() -> None:
    op.drop_index("idx_quiz_results_user_created", table_name="quiz_results")
    op.drop_table("quiz_results")
