"""Tests for table-bound aggregates and the registry wiring."""

import pytest

from ortoqbank.aggregates.btree import Bounds
from ortoqbank.aggregates.registry import (
    ANSWERED_BY_USER,
    BOOKMARKED_BY_USER,
    INCORRECT_BY_USER,
    QUESTION_COUNT_BY_THEME,
    QUESTION_COUNT_TOTAL,
    AggregateRegistry,
    build_triggers,
)
from ortoqbank.aggregates.table_aggregate import TableAggregate, normalize_namespace
from ortoqbank.core.exceptions import AggregateError
from ortoqbank.db.triggers import Change


def _scores() -> TableAggregate:
    return TableAggregate(
        "test_scores",
        "scores",
        lambda row: row["owner"],
        lambda row: row["score"],
    )


def test_entry_skips_rows_without_sort_key():
    aggregate = _scores()
    assert aggregate.entry({"id": 1, "owner": "a", "score": None}) is None
    assert aggregate.entry({"id": 1, "owner": "a", "score": 5}) == ("a", (5, 1))


def test_integer_namespace_is_normalised():
    aggregate = _scores()
    assert aggregate.entry({"id": 2, "owner": 42, "score": 1}) == ("42", (1, 2))


@pytest.mark.parametrize("namespace", [None, "", True, 1.5, ["a"]])
def test_malformed_namespace_is_rejected(namespace):
    with pytest.raises(AggregateError):
        normalize_namespace(namespace, "test_scores")


def test_trigger_follows_row_lifecycle(db):
    aggregate = _scores()
    row = {"id": 1, "owner": "a", "score": 3}

    aggregate.trigger(db, Change("insert", "scores", 1, None, row))
    assert aggregate.count(db, "a") == 1

    moved = {**row, "score": 9}
    aggregate.trigger(db, Change("update", "scores", 1, row, moved))
    assert aggregate.count(db, "a", Bounds(lower=5)) == 1
    assert aggregate.count(db, "a", Bounds(upper=5)) == 0

    transferred = {**moved, "owner": "b"}
    aggregate.trigger(db, Change("update", "scores", 1, moved, transferred))
    assert aggregate.count(db, "a") == 0
    assert aggregate.count(db, "b") == 1

    hidden = {**transferred, "score": None}
    aggregate.trigger(db, Change("update", "scores", 1, transferred, hidden))
    assert aggregate.count(db, "b") == 0

    aggregate.trigger(db, Change("delete", "scores", 1, hidden, None))
    assert aggregate.count(db, "b") == 0


def test_trigger_ignores_other_tables(db):
    aggregate = _scores()
    aggregate.trigger(db, Change("insert", "other", 1, None, {"id": 1, "owner": "a", "score": 1}))
    assert aggregate.count(db, "a") == 0


def test_unchanged_entry_is_a_noop(db):
    aggregate = _scores()
    row = {"id": 1, "owner": "a", "score": 3, "note": "x"}
    aggregate.insert_row(db, row)

    aggregate.trigger(db, Change("update", "scores", 1, row, {**row, "note": "y"}))

    assert aggregate.count(db, "a") == 1
    assert aggregate.tree(db).verify("a") == 1


def test_insert_and_delete_row_report_whether_counted(db):
    aggregate = _scores()
    assert aggregate.insert_row(db, {"id": 1, "owner": "a", "score": None}) is False
    assert aggregate.insert_row(db, {"id": 2, "owner": "a", "score": 1}) is True
    assert aggregate.delete_row(db, {"id": 2, "owner": "a", "score": 1}) is True
    assert aggregate.count(db, "a") == 0


def test_registry_rejects_duplicate_names():
    with pytest.raises(ValueError):
        AggregateRegistry([_scores(), _scores()])


def test_default_registry_covers_source_tables(aggregates):
    assert set(aggregates.names()) == {
        ANSWERED_BY_USER,
        INCORRECT_BY_USER,
        BOOKMARKED_BY_USER,
        QUESTION_COUNT_TOTAL,
        QUESTION_COUNT_BY_THEME,
    }
    assert {a.name for a in aggregates.for_table("user_question_stats")} == {
        ANSWERED_BY_USER,
        INCORRECT_BY_USER,
    }

    triggers = build_triggers(aggregates)
    assert triggers.tables() == ["questions", "user_bookmarks", "user_question_stats"]
    # Two question aggregates plus the archival cascade
    assert len(triggers.handlers_for("questions")) == 3


def test_question_aggregates_skip_archived_and_unthemed(aggregates):
    total = aggregates[QUESTION_COUNT_TOTAL]
    by_theme = aggregates[QUESTION_COUNT_BY_THEME]
    live = {"id": 1, "is_archived": False, "taxonomy_theme_id": 7}
    archived = {**live, "is_archived": True}
    unthemed = {**live, "taxonomy_theme_id": None}

    assert total.entry(live) == ("global", ("question", 1))
    assert total.entry(archived) is None
    assert by_theme.entry(live) == ("7", ("question", 1))
    assert by_theme.entry(unthemed) is None
    assert total.entry(unthemed) is not None


def test_user_aggregates_skip_rows_of_archived_questions(aggregates):
    stat = {
        "id": 3,
        "user_id": "user_a",
        "has_answered": True,
        "is_incorrect": True,
        "question_archived": False,
    }
    bookmark = {"id": 4, "user_id": "user_a", "question_archived": False}

    assert aggregates[ANSWERED_BY_USER].entry(stat) == ("user_a", ("answered", 3))
    assert aggregates[INCORRECT_BY_USER].entry(stat) == ("user_a", ("incorrect", 3))
    assert aggregates[BOOKMARKED_BY_USER].entry(bookmark) == ("user_a", ("bookmarked", 4))

    assert aggregates[ANSWERED_BY_USER].entry({**stat, "question_archived": True}) is None
    assert aggregates[INCORRECT_BY_USER].entry({**stat, "question_archived": True}) is None
    assert aggregates[BOOKMARKED_BY_USER].entry({**bookmark, "question_archived": True}) is None
