"""Per-user interaction rows: answer stats and bookmarks."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from ortoqbank.db.base import Base


class UserQuestionStat(Base):
    """Answer outcome of one user on one question."""

    __tablename__ = "user_question_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    question_id = Column(
        Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    has_answered = Column(Boolean, nullable=False, default=False)
    is_incorrect = Column(Boolean, nullable=False, default=False)
    answered_at = Column(DateTime(timezone=True), nullable=True)
    # Mirrors questions.is_archived so per-user counters drop archived questions
    question_archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=func.now(),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "question_id", name="uq_user_question_stat"),
        CheckConstraint(
            "NOT is_incorrect OR has_answered", name="ck_incorrect_implies_answered"
        ),
        Index("by_user_answered", "user_id", "has_answered"),
        Index("by_user_incorrect", "user_id", "is_incorrect"),
        Index("by_question_stat", "question_id"),
    )


class UserBookmark(Base):
    """A question bookmarked by a user."""

    __tablename__ = "user_bookmarks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    question_id = Column(
        Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    question_archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "question_id", name="uq_user_bookmark"),
        Index("by_user_bookmark", "user_id"),
        Index("by_question_bookmark", "question_id"),
    )
