"""Tests for the trigger-wrapped write path."""

import pytest

from ortoqbank.aggregates.registry import GLOBAL_NAMESPACE, QUESTION_COUNT_TOTAL
from ortoqbank.db.context import DataContext
from ortoqbank.db.triggers import Change, Triggers, snapshot
from ortoqbank.models.question import Question
from ortoqbank.models.user_stats import UserBookmark


class Boom(Exception):
    pass


def _question(**overrides) -> Question:
    values = {
        "question_text": "Q?",
        "explanation_text": "",
        "options": ["A", "B"],
        "correct_option_index": 0,
        "image_urls": [],
        "taxonomy_path_ids": [],
    }
    values.update(overrides)
    return Question(**values)


def test_handlers_see_old_and_new_snapshots(db):
    seen: list[Change] = []
    triggers = Triggers()
    triggers.register("questions", lambda session, change: seen.append(change))
    writer = triggers.writer(db)

    question = writer.insert(_question())
    writer.patch(question, is_archived=True)
    writer.delete(question)

    assert [change.operation for change in seen] == ["insert", "update", "delete"]
    insert, update, delete = seen
    assert insert.old is None and insert.new["id"] == question.id
    assert update.old["is_archived"] is False
    assert update.new["is_archived"] is True
    assert delete.old["id"] == question.id and delete.new is None


def test_tables_without_handlers_are_written_plainly(db, student):
    writer = Triggers().writer(db)
    question = writer.insert(_question())
    bookmark = writer.insert(UserBookmark(user_id=student.id, question_id=question.id))
    assert db.get(UserBookmark, bookmark.id) is not None


def test_patch_rejects_unknown_columns(db):
    writer = Triggers().writer(db)
    question = writer.insert(_question())
    with pytest.raises(AttributeError):
        writer.patch(question, not_a_column=1)


def test_failing_handler_rolls_back_write(db, aggregates, ctx):
    writer = ctx.writer
    kept = writer.insert(_question(question_text="kept"))
    total = aggregates[QUESTION_COUNT_TOTAL]
    assert total.count(db, GLOBAL_NAMESPACE) == 1

    def explode(session, change):
        raise Boom("handler failed")

    ctx.triggers.register("questions", explode)

    with pytest.raises(Boom):
        writer.insert(_question(question_text="lost"))

    assert db.query(Question).filter_by(question_text="lost").count() == 0
    assert db.query(Question).count() == 1
    assert total.count(db, GLOBAL_NAMESPACE) == 1

    with pytest.raises(Boom):
        writer.patch(kept, is_archived=True)

    db.refresh(kept)
    assert kept.is_archived is False
    assert total.count(db, GLOBAL_NAMESPACE) == 1
    assert total.tree(db).verify(GLOBAL_NAMESPACE) == 1


def test_snapshot_reads_column_attributes(db):
    writer = Triggers().writer(db)
    question = writer.insert(_question(theme_name="Ombro"))
    values = snapshot(question)
    assert values["theme_name"] == "Ombro"
    assert "question_text" in values and "id" in values


def test_context_writer_is_reused(ctx: DataContext):
    assert ctx.writer is ctx.writer
