"""Tests for taxonomy filter resolution and live counting."""

import pytest

from ortoqbank.core.exceptions import InvalidCombinationError
from ortoqbank.models.question import Question
from ortoqbank.models.quiz import QuestionMode
from ortoqbank.models.taxonomy import TaxonomyType
from ortoqbank.schemas.question import QuestionUpdate
from ortoqbank.services import progress, questions
from ortoqbank.services.question_filtering import (
    count_by_taxonomy,
    count_live,
    filter_question_ids,
    get_all_question_counts,
    get_theme_question_counts,
    resolve_taxonomy_question_ids,
)
from tests.helpers.seed import create_node, create_question, create_taxonomy


@pytest.fixture
def coluna(db, ctx):
    """Theme coluna > subtheme hernia-discal > group L4-L5 with three questions."""
    theme = create_node(db, TaxonomyType.THEME, "coluna")
    subtheme = create_node(db, TaxonomyType.SUBTHEME, "hernia-discal", theme)
    group = create_node(db, TaxonomyType.GROUP, "L4-L5", subtheme)
    tagged = [create_question(ctx, group=group, text=f"Q{i}") for i in range(3)]
    return {"theme": theme, "subtheme": subtheme, "group": group, "questions": tagged}


def test_counts_at_every_level(db, coluna):
    assert count_by_taxonomy(db, coluna["theme"].id, "theme") == 3
    assert count_by_taxonomy(db, coluna["subtheme"].id, "subtheme") == 3
    assert count_by_taxonomy(db, coluna["group"].id, "group") == 3


def test_theme_only_question_counts_at_theme_level(db, ctx, coluna):
    create_question(ctx, theme=coluna["theme"], text="Q4")

    assert count_by_taxonomy(db, coluna["theme"].id, TaxonomyType.THEME) == 4
    assert count_by_taxonomy(db, coluna["subtheme"].id, TaxonomyType.SUBTHEME) == 3
    assert count_by_taxonomy(db, coluna["group"].id, TaxonomyType.GROUP) == 3


def test_unknown_id_counts_zero(db):
    assert count_by_taxonomy(db, 424242, "group") == 0


def test_archived_questions_are_not_counted(db, ctx, coluna):
    questions.archive_question(ctx, coluna["questions"][0].id)

    assert count_by_taxonomy(db, coluna["group"].id, "group") == 2
    assert count_live(ctx, [coluna["theme"].id]) == 2
    assert count_live(ctx) == 2

    questions.restore_question(ctx, coluna["questions"][0].id)
    assert count_live(ctx) == 3


def test_union_counts_each_question_once(db, ctx):
    tax = create_taxonomy(db)
    in_g1 = create_question(ctx, group=tax["g1"])
    in_g2 = create_question(ctx, group=tax["g2"])
    on_theme = create_question(ctx, theme=tax["t1"])
    elsewhere = create_question(ctx, theme=tax["t2"])

    assert resolve_taxonomy_question_ids(db, [tax["t1"].id, tax["g1"].id]) == {
        in_g1.id,
        in_g2.id,
        on_theme.id,
    }
    assert count_live(ctx, [tax["g1"].id, tax["s1"].id]) == 2
    assert count_live(ctx, [tax["g1"].id, tax["t2"].id]) == 2
    assert elsewhere.id in resolve_taxonomy_question_ids(db, [tax["t2"].id])
    assert resolve_taxonomy_question_ids(db, []) == set()


def test_fast_path_uses_global_total(db, ctx, coluna):
    create_question(ctx, text="untagged")
    assert count_live(ctx) == 4
    assert count_live(ctx, [], user_id=None, question_mode="bookmarked") == 4
    assert count_live(ctx, [], user_id="user_student", question_mode="all") == 4


@pytest.mark.parametrize("mode", ["unanswered", "incorrect", "bookmarked"])
def test_user_filter_without_taxonomy_is_rejected(ctx, student, mode):
    with pytest.raises(InvalidCombinationError) as excinfo:
        count_live(ctx, [], user_id=student.id, question_mode=mode)
    assert excinfo.value.code == "INVALID_FILTER_COMBINATION"


def test_interaction_filters_within_taxonomy(db, ctx, student, coluna):
    q1, q2, q3 = coluna["questions"]
    progress.record_answer(ctx, student.id, q1.id, 0)
    progress.record_answer(ctx, student.id, q2.id, 1)
    progress.add_bookmark(ctx, student.id, q3.id)
    selection = [coluna["group"].id]

    assert count_live(ctx, selection, student.id, "all") == 3
    assert count_live(ctx, selection, student.id, "unanswered") == 1
    assert count_live(ctx, selection, student.id, "incorrect") == 1
    assert count_live(ctx, selection, student.id, "bookmarked") == 1

    ids = {q.id for q in coluna["questions"]}
    assert filter_question_ids(db, ids, student.id, QuestionMode.UNANSWERED) == {q3.id}
    assert filter_question_ids(db, ids, None, QuestionMode.INCORRECT) == ids


def test_all_question_counts(db, ctx, student, coluna):
    create_question(ctx, theme=coluna["theme"], text="Q4")
    q1, q2, _ = coluna["questions"]

    progress.record_answer(ctx, student.id, q1.id, 0)
    progress.record_answer(ctx, student.id, q2.id, 2)

    assert get_all_question_counts(ctx, student.id) == {
        "all": 4,
        "unanswered": 2,
        "incorrect": 1,
        "bookmarked": 0,
    }


def test_bookmark_counts_follow_toggles(db, ctx, student, coluna):
    q1, q2, _ = coluna["questions"]
    progress.add_bookmark(ctx, student.id, q1.id)
    progress.add_bookmark(ctx, student.id, q2.id)
    assert get_all_question_counts(ctx, student.id)["bookmarked"] == 2

    progress.remove_bookmark(ctx, student.id, q1.id)
    assert get_all_question_counts(ctx, student.id)["bookmarked"] == 1


def test_theme_counts_follow_retagging(db, ctx):
    tax = create_taxonomy(db)
    moved = create_question(ctx, group=tax["g1"])
    create_question(ctx, theme=tax["t1"])

    counts = {c["theme_id"]: c["count"] for c in get_theme_question_counts(ctx)}
    assert counts == {tax["t1"].id: 2, tax["t2"].id: 0}

    questions.update_question(
        ctx, moved.id, QuestionUpdate(taxonomy_theme_id=tax["t2"].id)
    )
    counts = {c["theme_id"]: c["count"] for c in get_theme_question_counts(ctx)}
    assert counts == {tax["t1"].id: 1, tax["t2"].id: 1}


def test_fast_path_tracks_archiving(ctx):
    created = [create_question(ctx, text=f"Q{i}") for i in range(7)]
    for question in created[:3]:
        questions.archive_question(ctx, question.id)

    assert count_live(ctx) == 4
    assert count_live(ctx) == ctx.db.query(Question).filter_by(is_archived=False).count()


def test_group_selection_excludes_sibling_groups(db, ctx):
    tax = create_taxonomy(db)
    create_question(ctx, group=tax["g1"])
    create_question(ctx, group=tax["g2"])
    create_question(ctx, group=tax["g2"])

    assert count_live(ctx, [tax["g1"].id]) == 1
    assert count_live(ctx, [tax["g2"].id]) == 2
    selection = [tax["t1"].id, tax["s1"].id, tax["g1"].id]
    assert count_live(ctx, selection) == 3
    assert count_live(ctx, selection) <= sum(
        count_by_taxonomy(db, node.id, node.type) for node in (tax["t1"], tax["s1"], tax["g1"])
    )


def test_archiving_drops_question_from_user_counts(db, ctx, student, coluna):
    create_question(ctx, theme=coluna["theme"], text="Q4")
    archived = coluna["questions"][0]
    progress.record_answer(ctx, student.id, archived.id, 1)
    progress.add_bookmark(ctx, student.id, archived.id)

    questions.archive_question(ctx, archived.id)

    selection = [coluna["theme"].id]
    assert get_all_question_counts(ctx, student.id) == {
        "all": 3,
        "unanswered": 3,
        "incorrect": 0,
        "bookmarked": 0,
    }
    assert count_live(ctx, selection, student.id, "unanswered") == 3
    assert count_live(ctx, selection, student.id, "incorrect") == 0
    assert count_live(ctx, selection, student.id, "bookmarked") == 0
    assert progress.get_user_stats_summary(ctx, student.id)["total_answered"] == 0

    questions.restore_question(ctx, archived.id)
    assert get_all_question_counts(ctx, student.id) == {
        "all": 4,
        "unanswered": 3,
        "incorrect": 1,
        "bookmarked": 1,
    }
    assert count_live(ctx, selection, student.id, "incorrect") == 1
