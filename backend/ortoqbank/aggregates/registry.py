"""Named aggregate handles and the trigger wiring that maintains them.

Both are built once in the application factory and carried on
``app.state``; request handlers reach them through ``DataContext``.
"""

from __future__ import annotations

from typing import Iterator

from sqlalchemy.orm import Session

from ortoqbank.aggregates.table_aggregate import Row, TableAggregate
from ortoqbank.db.triggers import Change, Handler, Triggers
from ortoqbank.models.user_stats import UserBookmark, UserQuestionStat

ANSWERED_BY_USER = "answered_by_user"
INCORRECT_BY_USER = "incorrect_by_user"
BOOKMARKED_BY_USER = "bookmarked_by_user"
QUESTION_COUNT_TOTAL = "question_count_total"
QUESTION_COUNT_BY_THEME = "question_count_by_theme"

GLOBAL_NAMESPACE = "global"

SORT_ANSWERED = "answered"
SORT_INCORRECT = "incorrect"
SORT_BOOKMARKED = "bookmarked"
SORT_QUESTION = "question"


def _user(row: Row):
    return row["user_id"]


def _answered(row: Row):
    if row["question_archived"] or not row["has_answered"]:
        return None
    return SORT_ANSWERED


def _incorrect(row: Row):
    if row["question_archived"] or not row["is_incorrect"]:
        return None
    return SORT_INCORRECT


def _bookmarked(row: Row):
    return None if row["question_archived"] else SORT_BOOKMARKED


def _live_question(row: Row):
    return None if row["is_archived"] else SORT_QUESTION


def _live_themed_question(row: Row):
    if row["is_archived"] or row["taxonomy_theme_id"] is None:
        return None
    return SORT_QUESTION


class AggregateRegistry:
    """Name -> TableAggregate lookup."""

    def __init__(self, aggregates: list[TableAggregate]):
        self._by_name: dict[str, TableAggregate] = {}
        for aggregate in aggregates:
            if aggregate.name in self._by_name:
                raise ValueError(f"Duplicate aggregate name {aggregate.name!r}")
            self._by_name[aggregate.name] = aggregate

    def __getitem__(self, name: str) -> TableAggregate:
        return self._by_name[name]

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[TableAggregate]:
        return iter(self._by_name.values())

    def names(self) -> list[str]:
        return list(self._by_name)

    def for_table(self, table: str) -> list[TableAggregate]:
        return [a for a in self._by_name.values() if a.table == table]


def build_aggregate_registry() -> AggregateRegistry:
    return AggregateRegistry(
        [
            TableAggregate(ANSWERED_BY_USER, "user_question_stats", _user, _answered),
            TableAggregate(INCORRECT_BY_USER, "user_question_stats", _user, _incorrect),
            TableAggregate(BOOKMARKED_BY_USER, "user_bookmarks", _user, _bookmarked),
            TableAggregate(
                QUESTION_COUNT_TOTAL, "questions", lambda row: GLOBAL_NAMESPACE, _live_question
            ),
            TableAggregate(
                QUESTION_COUNT_BY_THEME,
                "questions",
                lambda row: row["taxonomy_theme_id"],
                _live_themed_question,
            ),
        ]
    )


def archival_cascade(triggers: Triggers) -> Handler:
    """Handler copying a question's archived flag onto its stat and bookmark rows.

    The copies go through the triggered writer, so the per-user aggregates
    drop an archived question's entries and get them back on restore.
    """

    def handler(session: Session, change: Change) -> None:
        if change.table != "questions" or change.operation != "update":
            return
        archived = change.new["is_archived"]
        if change.old["is_archived"] == archived:
            return
        writer = triggers.writer(session)
        for model in (UserQuestionStat, UserBookmark):
            rows = (
                session.query(model)
                .filter(model.question_id == change.row_id)
                .order_by(model.id)
                .all()
            )
            for row in rows:
                writer.patch(row, question_archived=archived)

    return handler


def build_triggers(registry: AggregateRegistry) -> Triggers:
    triggers = Triggers()
    for aggregate in registry:
        triggers.register(aggregate.table, aggregate.trigger)
    triggers.register("questions", archival_cascade(triggers))
    return triggers
