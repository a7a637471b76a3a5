"""Unified taxonomy model: themes, subthemes and groups in one table."""

from enum import Enum as PyEnum

from sqlalchemy import JSON, Column, DateTime, Enum, ForeignKey, Index, Integer, String
from sqlalchemy.sql import func

from ortoqbank.db.base import Base


class TaxonomyType(str, PyEnum):
    """Taxonomy level."""

    THEME = "theme"
    SUBTHEME = "subtheme"
    GROUP = "group"


# Expected parent level for each level
PARENT_TYPE: dict[TaxonomyType, TaxonomyType | None] = {
    TaxonomyType.THEME: None,
    TaxonomyType.SUBTHEME: TaxonomyType.THEME,
    TaxonomyType.GROUP: TaxonomyType.SUBTHEME,
}


class TaxonomyNode(Base):
    """Theme, subtheme or group node.

    ``path_ids`` / ``path_names`` hold the ordered ancestors (theme first),
    so any node's full path is available without walking parent links.
    """

    __tablename__ = "taxonomy"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    type = Column(
        Enum(
            TaxonomyType,
            name="taxonomy_type",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    prefix = Column(String(50), nullable=True)
    parent_id = Column(Integer, ForeignKey("taxonomy.id", ondelete="RESTRICT"), nullable=True)
    path_ids = Column(JSON, nullable=False, default=list)
    path_names = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("by_type", "type"),
        Index("by_parent", "parent_id"),
        Index("by_type_parent_name", "type", "parent_id", "name"),
    )
