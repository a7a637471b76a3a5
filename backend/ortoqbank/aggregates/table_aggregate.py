"""Aggregate counters bound to a source table."""

from __future__ import annotations

from typing import Any, Callable

from sqlalchemy.orm import Session

from ortoqbank.aggregates.btree import ALL, AggregateBTree, Bounds
from ortoqbank.core.exceptions import AggregateError
from ortoqbank.db.triggers import Change

Row = dict[str, Any]
NamespaceFn = Callable[[Row], Any]
SortKeyFn = Callable[[Row], Any]


class TableAggregate:
    """Counts rows of ``table`` partitioned by namespace and ordered by sort key.

    ``namespace`` and ``sort_key`` are extractor functions over a row's column
    snapshot. A sort key of ``None`` means the row is not counted; otherwise
    the namespace must be a non-empty string or an integer.
    """

    def __init__(self, name: str, table: str, namespace: NamespaceFn, sort_key: SortKeyFn):
        self.name = name
        self.table = table
        self._namespace = namespace
        self._sort_key = sort_key

    def __repr__(self) -> str:
        return f"TableAggregate({self.name!r}, table={self.table!r})"

    def tree(self, session: Session) -> AggregateBTree:
        return AggregateBTree(session, self.name)

    def entry(self, row: Row) -> tuple[str, tuple[Any, Any]] | None:
        """(namespace, key) for a row, or None when the row is not counted."""
        sort_key = self._sort_key(row)
        if sort_key is None:
            return None
        namespace = self._namespace(row)
        return normalize_namespace(namespace, self.name), (sort_key, row["id"])

    def trigger(self, session: Session, change: Change) -> None:
        """Apply a row change to the tree: insert, delete or move the entry."""
        if change.table != self.table:
            return
        old = self.entry(change.old) if change.old is not None else None
        new = self.entry(change.new) if change.new is not None else None
        if old == new:
            return

        tree = self.tree(session)
        if old is not None:
            tree.delete(*old)
        if new is not None:
            tree.insert(*new)

    def insert_row(self, session: Session, row: Row) -> bool:
        entry = self.entry(row)
        if entry is None:
            return False
        self.tree(session).insert(*entry)
        return True

    def delete_row(self, session: Session, row: Row) -> bool:
        entry = self.entry(row)
        if entry is None:
            return False
        self.tree(session).delete(*entry)
        return True

    def count(self, session: Session, namespace: Any, bounds: Bounds = ALL) -> int:
        return self.tree(session).count(normalize_namespace(namespace, self.name), bounds)

    def clear(self, session: Session, namespace: Any) -> None:
        self.tree(session).clear(normalize_namespace(namespace, self.name))

    def clear_all(self, session: Session, max_node_size: int, root_lazy: bool) -> None:
        self.tree(session).clear_all(max_node_size=max_node_size, root_lazy=root_lazy)


def normalize_namespace(namespace: Any, aggregate_name: str) -> str:
    if isinstance(namespace, bool) or not isinstance(namespace, (str, int)):
        raise AggregateError(
            f"Malformed namespace {namespace!r} for aggregate {aggregate_name!r}"
        )
    value = str(namespace)
    if not value:
        raise AggregateError(f"Empty namespace for aggregate {aggregate_name!r}")
    return value
