"""Preset and custom quiz models."""

from enum import Enum as PyEnum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.sql import func

from ortoqbank.db.base import Base


class PresetQuizCategory(str, PyEnum):
    TRILHA = "trilha"
    SIMULADO = "simulado"


class QuizMode(str, PyEnum):
    STUDY = "study"
    EXAM = "exam"


class QuestionMode(str, PyEnum):
    """Interaction filter applied on top of a taxonomy selection."""

    ALL = "all"
    UNANSWERED = "unanswered"
    INCORRECT = "incorrect"
    BOOKMARKED = "bookmarked"


def _enum_values(enum_cls):
    return [e.value for e in enum_cls]


class PresetQuiz(Base):
    """Admin-curated quiz with an ordered question list."""

    __tablename__ = "preset_quizzes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(
        Enum(PresetQuizCategory, name="preset_quiz_category", values_callable=_enum_values),
        nullable=False,
    )
    taxonomy_theme_id = Column(
        Integer, ForeignKey("taxonomy.id", ondelete="SET NULL"), nullable=True
    )
    taxonomy_subtheme_id = Column(
        Integer, ForeignKey("taxonomy.id", ondelete="SET NULL"), nullable=True
    )
    taxonomy_group_id = Column(
        Integer, ForeignKey("taxonomy.id", ondelete="SET NULL"), nullable=True
    )
    question_ids = Column(JSON, nullable=False, default=list)
    is_public = Column(Boolean, nullable=False, default=False)
    display_order = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=func.now(),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (Index("by_category", "category"),)


class CustomQuiz(Base):
    """Quiz built by a user from a taxonomy selection and interaction filter."""

    __tablename__ = "custom_quizzes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    author_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    test_mode = Column(
        Enum(QuizMode, name="quiz_test_mode", values_callable=_enum_values), nullable=False
    )
    question_mode = Column(
        Enum(QuestionMode, name="quiz_question_mode", values_callable=_enum_values),
        nullable=False,
    )
    selected_taxonomy_ids = Column(JSON, nullable=False, default=list)
    question_ids = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (Index("by_author", "author_id"),)


class QuizKind(str, PyEnum):
    PRESET = "preset"
    CUSTOM = "custom"


class QuizSession(Base):
    """One user's pass through a preset or custom quiz.

    ``question_ids`` is frozen at start so later edits to the quiz do not
    shift the position of answers already given. ``answers`` and
    ``answer_feedback`` grow by one entry per submitted answer.
    """

    __tablename__ = "quiz_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    quiz_kind = Column(
        Enum(QuizKind, name="quiz_kind", values_callable=_enum_values), nullable=False
    )
    quiz_id = Column(Integer, nullable=False)
    mode = Column(
        Enum(QuizMode, name="quiz_test_mode", values_callable=_enum_values), nullable=False
    )
    question_ids = Column(JSON, nullable=False, default=list)
    current_question_index = Column(Integer, nullable=False, default=0)
    answers = Column(JSON, nullable=False, default=list)
    answer_feedback = Column(JSON, nullable=False, default=list)
    is_complete = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=func.now(),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("by_user_quiz", "user_id", "quiz_kind", "quiz_id", "is_complete"),
    )

    @property
    def total_questions(self) -> int:
        return len(self.question_ids or [])

    @property
    def correct_count(self) -> int:
        return sum(1 for feedback in self.answer_feedback or [] if feedback["is_correct"])
