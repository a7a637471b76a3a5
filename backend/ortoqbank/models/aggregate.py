"""Persisted order-statistics B-tree storage for aggregate counters."""

from sqlalchemy import (
    JSON,
    Boolean,
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


class AggregateConfig(Base):
    """Tree parameters applied to new trees of one aggregate."""

    __tablename__ = "aggregate_configs"

    aggregate_name = Column(String(100), primary_key=True)
    max_node_size = Column(Integer, nullable=False)
    root_lazy = Column(Boolean, nullable=False, default=True)
    cleared_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class AggregateTree(Base):
    """One B-tree per (aggregate, namespace)."""

    __tablename__ = "aggregate_trees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    aggregate_name = Column(String(100), nullable=False)
    namespace = Column(String(255), nullable=False)
    root_id = Column(String(36), nullable=False)
    max_node_size = Column(Integer, nullable=False)
    root_lazy = Column(Boolean, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("aggregate_name", "namespace", name="uq_aggregate_tree_namespace"),
    )


class AggregateNode(Base):
    """B-tree node.

    ``items`` is the ordered list of ``[sort_key, row_id]`` entries and
    ``subtrees`` the child node ids (empty for a leaf). ``count`` is the
    number of entries in the subtree, left NULL on a lazy root.
    """

    __tablename__ = "aggregate_nodes"

    id = Column(String(36), primary_key=True)
    tree_id = Column(
        Integer, ForeignKey("aggregate_trees.id", ondelete="CASCADE"), nullable=False
    )
    items = Column(JSON, nullable=False, default=list)
    subtrees = Column(JSON, nullable=False, default=list)
    count = Column(Integer, nullable=True)

    __table_args__ = (Index("by_tree", "tree_id"),)
