"""Explicit per-request data context."""

from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from ortoqbank.aggregates.registry import AggregateRegistry
from ortoqbank.db.triggers import TriggeredWriter, Triggers


@dataclass
class DataContext:
    """Session plus the aggregate registry and trigger wiring built at startup.

    Services take a DataContext instead of reaching for globals; every write
    to a trigger-registered table goes through ``ctx.writer``.
    """

    db: Session
    aggregates: AggregateRegistry
    triggers: Triggers
    _writer: TriggeredWriter | None = field(default=None, init=False, repr=False)

    @property
    def writer(self) -> TriggeredWriter:
        if self._writer is None:
            self._writer = self.triggers.writer(self.db)
        return self._writer
