"""Question model with denormalised taxonomy back-references."""

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.sql import func

from ortoqbank.db.base import Base

MIN_OPTIONS = 2
MAX_OPTIONS = 10


class Question(Base):
    """Question bank entry.

    Each taxonomy level has its own column and index so a selection at any
    level is an exact-match index lookup. Archived questions are excluded
    from every count and lookup; questions are never physically deleted.
    """

    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    question_text = Column(Text, nullable=False)
    explanation_text = Column(Text, nullable=False, default="")
    options = Column(JSON, nullable=False, default=list)
    correct_option_index = Column(Integer, nullable=False)
    image_urls = Column(JSON, nullable=False, default=list)

    taxonomy_theme_id = Column(
        Integer, ForeignKey("taxonomy.id", ondelete="RESTRICT"), nullable=True
    )
    taxonomy_subtheme_id = Column(
        Integer, ForeignKey("taxonomy.id", ondelete="RESTRICT"), nullable=True
    )
    taxonomy_group_id = Column(
        Integer, ForeignKey("taxonomy.id", ondelete="RESTRICT"), nullable=True
    )
    theme_name = Column(String(255), nullable=True)
    subtheme_name = Column(String(255), nullable=True)
    group_name = Column(String(255), nullable=True)
    taxonomy_path_ids = Column(JSON, nullable=False, default=list)

    is_archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=func.now(),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("correct_option_index >= 0", name="ck_questions_correct_index"),
        Index("by_taxonomy_theme", "taxonomy_theme_id"),
        Index("by_taxonomy_subtheme", "taxonomy_subtheme_id"),
        Index("by_taxonomy_group", "taxonomy_group_id"),
    )
