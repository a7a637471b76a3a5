"""Tests for preset and custom quizzes."""

import pytest

from ortoqbank.core.exceptions import (
    IntegrityViolationError,
    InvalidCombinationError,
    NotFoundError,
)
from ortoqbank.models.quiz import PresetQuizCategory, QuestionMode
from ortoqbank.schemas.quiz import CustomQuizCreate, PresetQuizCreate, PresetQuizUpdate
from ortoqbank.services import progress, questions, quizzes
from tests.helpers.seed import create_question, create_taxonomy


@pytest.fixture
def bank(db, ctx):
    tax = create_taxonomy(db)
    in_g1 = [create_question(ctx, group=tax["g1"], text=f"G1-{i}") for i in range(4)]
    in_t2 = [create_question(ctx, theme=tax["t2"], text=f"T2-{i}") for i in range(2)]
    return {"tax": tax, "g1": in_g1, "t2": in_t2}


def _preset(db, bank, **overrides):
    values = {
        "name": "Trilha Ombro",
        "category": PresetQuizCategory.TRILHA,
        "taxonomy_group_id": bank["tax"]["g1"].id,
        "question_ids": [q.id for q in bank["g1"]],
        "is_public": True,
    }
    values.update(overrides)
    return quizzes.create_preset_quiz(db, PresetQuizCreate(**values))


def test_preset_quiz_derives_taxonomy(db, bank):
    quiz = _preset(db, bank)
    assert quiz.taxonomy_theme_id == bank["tax"]["t1"].id
    assert quiz.taxonomy_subtheme_id == bank["tax"]["s1"].id


def test_preset_quiz_rejects_bad_question_lists(db, bank):
    first = bank["g1"][0].id
    with pytest.raises(IntegrityViolationError):
        _preset(db, bank, question_ids=[first, first])
    with pytest.raises(NotFoundError):
        _preset(db, bank, question_ids=[first, 999999])


def test_preset_listing_hides_private_and_orders(db, bank):
    late = _preset(db, bank, name="late", display_order=5)
    early = _preset(db, bank, name="early", display_order=1)
    unordered = _preset(db, bank, name="unordered", display_order=None)
    hidden = _preset(db, bank, name="hidden", is_public=False)
    exam = _preset(db, bank, name="exam", category=PresetQuizCategory.SIMULADO)

    trilhas = quizzes.list_preset_quizzes(db, category="trilha")
    assert [q.id for q in trilhas] == [early.id, late.id, unordered.id]
    assert hidden.id in {q.id for q in quizzes.list_preset_quizzes(db, public_only=False)}
    assert [q.id for q in quizzes.list_preset_quizzes(db, PresetQuizCategory.SIMULADO)] == [
        exam.id
    ]
    with pytest.raises(NotFoundError):
        quizzes.get_preset_quiz(db, hidden.id, public_only=True)


def test_preset_update_and_membership(db, bank):
    quiz = _preset(db, bank, question_ids=[bank["g1"][0].id])

    quizzes.update_preset_quiz(db, quiz.id, PresetQuizUpdate(name="Renamed", display_order=None))
    quiz = quizzes.add_question_to_preset_quiz(db, quiz.id, bank["t2"][0].id)
    assert quiz.name == "Renamed"
    assert quiz.question_ids == [bank["g1"][0].id, bank["t2"][0].id]

    with pytest.raises(IntegrityViolationError):
        quizzes.add_question_to_preset_quiz(db, quiz.id, bank["t2"][0].id)

    quiz = quizzes.remove_question_from_preset_quiz(db, quiz.id, bank["g1"][0].id)
    assert quiz.question_ids == [bank["t2"][0].id]
    with pytest.raises(NotFoundError):
        quizzes.remove_question_from_preset_quiz(db, quiz.id, bank["g1"][0].id)


def test_preset_count_applies_filters(db, ctx, student, bank):
    quiz = _preset(db, bank)
    progress.record_answer(ctx, student.id, bank["g1"][0].id, 0)
    questions.archive_question(ctx, bank["g1"][1].id)

    assert quizzes.count_preset_quiz_questions(db, quiz.id, student.id) == 3
    assert quizzes.count_preset_quiz_questions(db, quiz.id, student.id, "unanswered") == 2


def test_custom_quiz_from_selection(ctx, student, bank):
    quiz = quizzes.create_custom_quiz(
        ctx,
        student.id,
        CustomQuizCreate(name="Mine", taxonomy_ids=[bank["tax"]["g1"].id], num_questions=3),
    )

    assert len(quiz.question_ids) == 3
    assert set(quiz.question_ids) <= {q.id for q in bank["g1"]}
    assert quiz.selected_taxonomy_ids == [bank["tax"]["g1"].id]
    assert quizzes.get_custom_quiz(ctx.db, student.id, quiz.id) is quiz


def test_custom_quiz_respects_question_mode(ctx, student, bank):
    answered = bank["g1"][0]
    progress.record_answer(ctx, student.id, answered.id, 0)

    quiz = quizzes.create_custom_quiz(
        ctx,
        student.id,
        CustomQuizCreate(
            name="Unanswered",
            question_mode=QuestionMode.UNANSWERED,
            taxonomy_ids=[bank["tax"]["t1"].id],
        ),
    )
    assert sorted(quiz.question_ids) == sorted(q.id for q in bank["g1"][1:])


def test_custom_quiz_without_selection(ctx, student, bank):
    quiz = quizzes.create_custom_quiz(
        ctx, student.id, CustomQuizCreate(name="Any", num_questions=4)
    )
    assert len(quiz.question_ids) == 4

    with pytest.raises(InvalidCombinationError):
        quizzes.create_custom_quiz(
            ctx, student.id, CustomQuizCreate(name="Bad", question_mode="incorrect")
        )


def test_custom_quiz_with_no_matches(ctx, student, bank):
    with pytest.raises(NotFoundError):
        quizzes.create_custom_quiz(
            ctx,
            student.id,
            CustomQuizCreate(
                name="None", question_mode="bookmarked", taxonomy_ids=[bank["tax"]["g1"].id]
            ),
        )


def test_custom_quizzes_are_private(ctx, db, student, admin, bank):
    quiz = quizzes.create_custom_quiz(ctx, student.id, CustomQuizCreate(name="Mine"))
    assert [q.id for q in quizzes.list_custom_quizzes(db, student.id)] == [quiz.id]
    assert quizzes.list_custom_quizzes(db, admin.id) == []
    with pytest.raises(NotFoundError):
        quizzes.get_custom_quiz(db, admin.id, quiz.id)
