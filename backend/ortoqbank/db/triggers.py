"""Trigger-wrapped write path.

Every write to a table with registered handlers goes through
``TriggeredWriter``: the write and all handlers run inside one SAVEPOINT, so
either the row change and every derived update (aggregate tree nodes) are
applied together, or none of them is.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Literal

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from ortoqbank.core.logging import get_logger

logger = get_logger(__name__)

Operation = Literal["insert", "update", "delete"]


@dataclass(frozen=True)
class Change:
    """A single row change as seen by trigger handlers.

    ``old`` / ``new`` are column snapshots (``None`` for insert / delete).
    """

    operation: Operation
    table: str
    row_id: Any
    old: dict[str, Any] | None
    new: dict[str, Any] | None


Handler = Callable[[Session, Change], None]


def snapshot(obj: Any) -> dict[str, Any]:
    """Column values of a mapped instance, keyed by attribute name."""
    mapper = inspect(obj).mapper
    return {attr.key: getattr(obj, attr.key) for attr in mapper.column_attrs}


class Triggers:
    """Registry of ``table name -> [handlers]``."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def register(self, table: str, handler: Handler) -> None:
        self._handlers[table].append(handler)

    def handlers_for(self, table: str) -> list[Handler]:
        return list(self._handlers.get(table, ()))

    def tables(self) -> list[str]:
        return sorted(self._handlers)

    def writer(self, session: Session) -> "TriggeredWriter":
        return TriggeredWriter(session, self)


class TriggeredWriter:
    """Performs writes and fires the registered handlers in the same SAVEPOINT."""

    def __init__(self, session: Session, triggers: Triggers):
        self.session = session
        self.triggers = triggers

    def insert(self, obj: Any) -> Any:
        table = obj.__tablename__
        with self.session.begin_nested():
            self.session.add(obj)
            self.session.flush()
            self._fire(Change("insert", table, obj.id, None, snapshot(obj)))
        return obj

    def patch(self, obj: Any, **values: Any) -> Any:
        table = obj.__tablename__
        for key in values:
            if key not in inspect(obj).mapper.column_attrs:
                raise AttributeError(f"{type(obj).__name__} has no column {key!r}")

        old = snapshot(obj)
        with self.session.begin_nested():
            for key, value in values.items():
                setattr(obj, key, value)
            self.session.flush()
            self._fire(Change("update", table, obj.id, old, snapshot(obj)))
        return obj

    def delete(self, obj: Any) -> None:
        table = obj.__tablename__
        old = snapshot(obj)
        with self.session.begin_nested():
            self.session.delete(obj)
            self.session.flush()
            self._fire(Change("delete", table, old["id"], old, None))

    def _fire(self, change: Change) -> None:
        for handler in self.triggers.handlers_for(change.table):
            try:
                handler(self.session, change)
            except Exception:
                logger.error(
                    "trigger_failed",
                    extra={
                        "table": change.table,
                        "operation": change.operation,
                        "row_id": change.row_id,
                    },
                    exc_info=True,
                )
                raise
