"""Add quiz sessions and archived flags on user rows

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 14:00:00.000000

"""

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None

quiz_kind = sa.Enum("preset", "custom", name="quiz_kind")


def upgrade() -> None:
    for table in ("user_question_stats", "user_bookmarks"):
        op.add_column(
            table,
            sa.Column(
                "question_archived", sa.Boolean(), nullable=False, server_default=sa.false()
            ),
        )
    op.create_index("by_question_stat", "user_question_stats", ["question_id"])
    op.create_index("by_question_bookmark", "user_bookmarks", ["question_id"])

    # Rows of questions archived before this revision
    op.execute(
        "UPDATE user_question_stats SET question_archived = true WHERE question_id IN "
        "(SELECT id FROM questions WHERE is_archived)"
    )
    op.execute(
        "UPDATE user_bookmarks SET question_archived = true WHERE question_id IN "
        "(SELECT id FROM questions WHERE is_archived)"
    )

    op.create_table(
        "quiz_sessions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.String(255),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("quiz_kind", quiz_kind, nullable=False),
        sa.Column("quiz_id", sa.Integer(), nullable=False),
        sa.Column(
            "mode",
            postgresql.ENUM("study", "exam", name="quiz_test_mode", create_type=False),
            nullable=False,
        ),
        sa.Column("question_ids", sa.JSON(), nullable=False),
        sa.Column("current_question_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("answers", sa.JSON(), nullable=False),
        sa.Column("answer_feedback", sa.JSON(), nullable=False),
        sa.Column("is_complete", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index(
        "by_user_quiz", "quiz_sessions", ["user_id", "quiz_kind", "quiz_id", "is_complete"]
    )
    # Aggregates must be rebuilt after this revision so archived rows leave the user counts.


def downgrade() -> None:
    op.drop_index("by_user_quiz", table_name="quiz_sessions")
    op.drop_table("quiz_sessions")
    quiz_kind.drop(op.get_bind(), checkfirst=True)
    op.drop_index("by_question_bookmark", table_name="user_bookmarks")
    op.drop_index("by_question_stat", table_name="user_question_stats")
    op.drop_column("user_bookmarks", "question_archived")
    op.drop_column("user_question_stats", "question_archived")
