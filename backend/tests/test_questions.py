"""Tests for question content writes."""

import pytest

from ortoqbank.core.exceptions import IntegrityViolationError
from ortoqbank.models.question import Question
from ortoqbank.schemas.question import QuestionCreate, QuestionUpdate
from ortoqbank.services import questions
from tests.helpers.seed import create_question, create_taxonomy


def test_question_without_taxonomy_is_rejected(db, ctx):
    before = db.query(Question).count()

    with pytest.raises(IntegrityViolationError):
        questions.create_question(
            ctx, QuestionCreate(question_text="x", options=["a", "b"], correct_option_index=0)
        )

    assert db.query(Question).count() == before


def test_subtheme_reference_fills_theme(db, ctx):
    tax = create_taxonomy(db)
    question = questions.create_question(
        ctx,
        QuestionCreate(
            question_text="x",
            options=["a", "b"],
            correct_option_index=1,
            taxonomy_subtheme_id=tax["s1"].id,
        ),
    )

    assert question.taxonomy_theme_id == tax["t1"].id
    assert question.theme_name == "Ombro"
    assert question.taxonomy_path_ids == [tax["t1"].id, tax["s1"].id]


def test_update_cannot_clear_taxonomy(db, ctx):
    tax = create_taxonomy(db)
    question = create_question(ctx, group=tax["g1"])

    with pytest.raises(IntegrityViolationError):
        questions.update_question(
            ctx,
            question.id,
            QuestionUpdate(
                taxonomy_theme_id=None, taxonomy_subtheme_id=None, taxonomy_group_id=None
            ),
        )

    db.refresh(question)
    assert question.taxonomy_group_id == tax["g1"].id


def test_update_without_taxonomy_fields_keeps_references(db, ctx):
    tax = create_taxonomy(db)
    question = create_question(ctx, group=tax["g1"])

    updated = questions.update_question(ctx, question.id, QuestionUpdate(question_text="novo"))

    assert updated.question_text == "novo"
    assert updated.taxonomy_theme_id == tax["t1"].id
