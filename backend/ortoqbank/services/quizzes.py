"""Preset (admin curated) and custom (user built) quizzes."""

import random

from sqlalchemy import func
from sqlalchemy.orm import Session

from ortoqbank.core.config import settings
from ortoqbank.core.exceptions import (
    IntegrityViolationError,
    InvalidCombinationError,
    NotFoundError,
)
from ortoqbank.core.logging import get_logger
from ortoqbank.db.context import DataContext
from ortoqbank.models.question import Question
from ortoqbank.models.quiz import CustomQuiz, PresetQuiz, PresetQuizCategory, QuestionMode
from ortoqbank.schemas.quiz import CustomQuizCreate, PresetQuizCreate, PresetQuizUpdate
from ortoqbank.services.question_filtering import (
    filter_question_ids,
    resolve_taxonomy_question_ids,
)
from ortoqbank.services.questions import resolve_taxonomy_refs

logger = get_logger(__name__)


def _live_ids(db: Session, question_ids: list[int]) -> set[int]:
    if not question_ids:
        return set()
    rows = (
        db.query(Question.id)
        .filter(Question.id.in_(question_ids), Question.is_archived.is_(False))
        .all()
    )
    return {row.id for row in rows}


def _check_question_ids(db: Session, question_ids: list[int]) -> None:
    if len(set(question_ids)) != len(question_ids):
        raise IntegrityViolationError("Duplicate question ids in quiz")
    missing = sorted(set(question_ids) - _live_ids(db, question_ids))
    if missing:
        raise NotFoundError("Some questions do not exist", {"question_ids": missing})


# ---------------------------------------------------------------------------
# Preset quizzes
# ---------------------------------------------------------------------------


def create_preset_quiz(db: Session, data: PresetQuizCreate) -> PresetQuiz:
    _check_question_ids(db, data.question_ids)
    refs = resolve_taxonomy_refs(
        db, data.taxonomy_theme_id, data.taxonomy_subtheme_id, data.taxonomy_group_id
    )
    quiz = PresetQuiz(
        name=data.name,
        description=data.description,
        category=data.category,
        taxonomy_theme_id=refs["taxonomy_theme_id"],
        taxonomy_subtheme_id=refs["taxonomy_subtheme_id"],
        taxonomy_group_id=refs["taxonomy_group_id"],
        question_ids=list(data.question_ids),
        is_public=data.is_public,
        display_order=data.display_order,
    )
    db.add(quiz)
    db.commit()
    db.refresh(quiz)
    logger.info("preset_quiz_created", extra={"quiz_id": quiz.id, "category": quiz.category.value})
    return quiz


def get_preset_quiz(db: Session, quiz_id: int, public_only: bool = False) -> PresetQuiz:
    quiz = db.get(PresetQuiz, quiz_id)
    if quiz is None or (public_only and not quiz.is_public):
        raise NotFoundError(f"Preset quiz {quiz_id} not found", {"quiz_id": quiz_id})
    return quiz


def list_preset_quizzes(
    db: Session,
    category: PresetQuizCategory | str | None = None,
    public_only: bool = True,
) -> list[PresetQuiz]:
    query = db.query(PresetQuiz)
    if category is not None:
        query = query.filter(PresetQuiz.category == PresetQuizCategory(category))
    if public_only:
        query = query.filter(PresetQuiz.is_public.is_(True))
    quizzes = query.order_by(PresetQuiz.id).all()
    # Unordered quizzes go last
    return sorted(
        quizzes, key=lambda q: (q.display_order is None, q.display_order or 0, q.id)
    )


def update_preset_quiz(db: Session, quiz_id: int, data: PresetQuizUpdate) -> PresetQuiz:
    quiz = get_preset_quiz(db, quiz_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        if value is None and key != "display_order":
            continue
        setattr(quiz, key, value)
    db.commit()
    db.refresh(quiz)
    return quiz


def add_question_to_preset_quiz(db: Session, quiz_id: int, question_id: int) -> PresetQuiz:
    quiz = get_preset_quiz(db, quiz_id)
    if question_id in quiz.question_ids:
        raise IntegrityViolationError(
            "Question is already in this quiz", {"question_id": question_id}
        )
    _check_question_ids(db, [question_id])
    quiz.question_ids = list(quiz.question_ids) + [question_id]
    db.commit()
    db.refresh(quiz)
    return quiz


def remove_question_from_preset_quiz(db: Session, quiz_id: int, question_id: int) -> PresetQuiz:
    quiz = get_preset_quiz(db, quiz_id)
    if question_id not in quiz.question_ids:
        raise NotFoundError("Question is not in this quiz", {"question_id": question_id})
    quiz.question_ids = [qid for qid in quiz.question_ids if qid != question_id]
    db.commit()
    db.refresh(quiz)
    return quiz


def count_preset_quiz_questions(
    db: Session,
    quiz_id: int,
    user_id: str | None,
    mode: QuestionMode | str = QuestionMode.ALL,
    public_only: bool = True,
) -> int:
    """Live questions of a preset quiz that pass the interaction filter."""
    quiz = get_preset_quiz(db, quiz_id, public_only=public_only)
    return len(filter_question_ids(db, _live_ids(db, quiz.question_ids), user_id, mode))


# ---------------------------------------------------------------------------
# Custom quizzes
# ---------------------------------------------------------------------------


def _random_live_ids(db: Session, limit: int) -> list[int]:
    rows = (
        db.query(Question.id)
        .filter(Question.is_archived.is_(False))
        .order_by(func.random())
        .limit(limit)
        .all()
    )
    return [row.id for row in rows]


def create_custom_quiz(ctx: DataContext, user_id: str, data: CustomQuizCreate) -> CustomQuiz:
    """Build a quiz from a taxonomy selection and an interaction filter.

    Without a taxonomy selection only mode ``all`` is accepted, sampled
    directly in SQL; the other modes would need a full scan.
    """
    db = ctx.db
    mode = QuestionMode(data.question_mode)
    limit = min(data.num_questions, settings.CUSTOM_QUIZ_MAX_QUESTIONS)

    if data.taxonomy_ids:
        candidates = filter_question_ids(
            db, resolve_taxonomy_question_ids(db, data.taxonomy_ids), user_id, mode
        )
        ordered = sorted(candidates)
        question_ids = random.sample(ordered, limit) if len(ordered) > limit else ordered
    elif mode == QuestionMode.ALL:
        question_ids = _random_live_ids(db, limit)
    else:
        raise InvalidCombinationError(
            f"Select at least one theme, subtheme or group to build a {mode.value} quiz",
            {"question_mode": mode.value},
        )

    if not question_ids:
        raise NotFoundError("No questions match the selected criteria")

    quiz = CustomQuiz(
        name=data.name,
        description=data.description,
        author_id=user_id,
        test_mode=data.test_mode,
        question_mode=mode,
        selected_taxonomy_ids=sorted(set(data.taxonomy_ids)),
        question_ids=question_ids,
    )
    db.add(quiz)
    db.commit()
    db.refresh(quiz)
    logger.info(
        "custom_quiz_created",
        extra={"quiz_id": quiz.id, "user_id": user_id, "questions": len(question_ids)},
    )
    return quiz


def list_custom_quizzes(db: Session, user_id: str) -> list[CustomQuiz]:
    return (
        db.query(CustomQuiz)
        .filter(CustomQuiz.author_id == user_id)
        .order_by(CustomQuiz.created_at.desc(), CustomQuiz.id.desc())
        .all()
    )


def get_custom_quiz(db: Session, user_id: str, quiz_id: int) -> CustomQuiz:
    quiz = db.get(CustomQuiz, quiz_id)
    if quiz is None or quiz.author_id != user_id:
        raise NotFoundError(f"Custom quiz {quiz_id} not found", {"quiz_id": quiz_id})
    return quiz
