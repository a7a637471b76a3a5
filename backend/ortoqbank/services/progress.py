"""Per-user progress: answers, bookmarks and summary statistics."""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ortoqbank.aggregates.registry import (
    ANSWERED_BY_USER,
    BOOKMARKED_BY_USER,
    GLOBAL_NAMESPACE,
    INCORRECT_BY_USER,
    QUESTION_COUNT_TOTAL,
)
from ortoqbank.core.exceptions import IntegrityViolationError
from ortoqbank.core.logging import get_logger
from ortoqbank.db.context import DataContext
from ortoqbank.models.question import Question
from ortoqbank.models.taxonomy import TaxonomyNode
from ortoqbank.models.user_stats import UserBookmark, UserQuestionStat
from ortoqbank.services.questions import get_question

logger = get_logger(__name__)


def _get_stat(db: Session, user_id: str, question_id: int) -> UserQuestionStat | None:
    return (
        db.query(UserQuestionStat)
        .filter(UserQuestionStat.user_id == user_id, UserQuestionStat.question_id == question_id)
        .first()
    )


def _get_bookmark(db: Session, user_id: str, question_id: int) -> UserBookmark | None:
    return (
        db.query(UserBookmark)
        .filter(UserBookmark.user_id == user_id, UserBookmark.question_id == question_id)
        .first()
    )


def record_answer(
    ctx: DataContext,
    user_id: str,
    question_id: int,
    selected_option_index: int,
    commit: bool = True,
) -> dict[str, Any]:
    """Grade an answer and upsert the user's stat for the question.

    Repeating an answer with the same outcome writes nothing, so stats and
    aggregates stay as they were; a changed outcome flips ``is_incorrect``.
    Callers that bundle the answer into a larger write pass ``commit=False``
    and commit themselves.
    """
    question = get_question(ctx.db, question_id)
    if not 0 <= selected_option_index < len(question.options):
        raise IntegrityViolationError(
            "selected_option_index is out of range",
            {"selected_option_index": selected_option_index, "options": len(question.options)},
        )

    is_correct = selected_option_index == question.correct_option_index
    stat = _get_stat(ctx.db, user_id, question_id)
    now = datetime.now(timezone.utc)

    if stat is None:
        ctx.writer.insert(
            UserQuestionStat(
                user_id=user_id,
                question_id=question_id,
                has_answered=True,
                is_incorrect=not is_correct,
                answered_at=now,
            )
        )
    elif not stat.has_answered or stat.is_incorrect != (not is_correct):
        ctx.writer.patch(stat, has_answered=True, is_incorrect=not is_correct, answered_at=now)
    if commit:
        ctx.db.commit()

    logger.info(
        "answer_recorded",
        extra={"user_id": user_id, "question_id": question_id, "is_correct": is_correct},
    )
    return {
        "question_id": question_id,
        "selected_option_index": selected_option_index,
        "correct_option_index": question.correct_option_index,
        "is_correct": is_correct,
        "explanation_text": question.explanation_text,
    }


def get_question_status(db: Session, user_id: str, question_id: int) -> dict[str, Any]:
    get_question(db, question_id)
    stat = _get_stat(db, user_id, question_id)
    return {
        "question_id": question_id,
        "has_answered": bool(stat and stat.has_answered),
        "is_incorrect": bool(stat and stat.is_incorrect),
        "is_bookmarked": _get_bookmark(db, user_id, question_id) is not None,
        "answered_at": stat.answered_at if stat else None,
    }


def get_user_stats_summary(ctx: DataContext, user_id: str) -> dict[str, Any]:
    """Totals for the stats page, all read from aggregates."""
    total = ctx.aggregates[QUESTION_COUNT_TOTAL].count(ctx.db, GLOBAL_NAMESPACE)
    answered = ctx.aggregates[ANSWERED_BY_USER].count(ctx.db, user_id)
    incorrect = ctx.aggregates[INCORRECT_BY_USER].count(ctx.db, user_id)
    bookmarked = ctx.aggregates[BOOKMARKED_BY_USER].count(ctx.db, user_id)
    correct = answered - incorrect
    return {
        "total_questions": total,
        "total_answered": answered,
        "total_correct": correct,
        "total_incorrect": incorrect,
        "total_bookmarked": bookmarked,
        "correct_percentage": round(correct * 100 / answered, 1) if answered else 0.0,
    }


def get_user_theme_stats(db: Session, user_id: str) -> list[dict[str, Any]]:
    """Answered and correct counts per theme, largest themes first.

    Reads the user's own stat rows through ``by_user_answered``; archived
    questions and questions without a theme are left out.
    """
    correct = func.sum(case((UserQuestionStat.is_incorrect.is_(False), 1), else_=0))
    rows = (
        db.query(
            TaxonomyNode.id.label("theme_id"),
            TaxonomyNode.name.label("theme_name"),
            func.count(UserQuestionStat.id).label("total"),
            correct.label("correct"),
        )
        .select_from(UserQuestionStat)
        .join(Question, Question.id == UserQuestionStat.question_id)
        .join(TaxonomyNode, TaxonomyNode.id == Question.taxonomy_theme_id)
        .filter(
            UserQuestionStat.user_id == user_id,
            UserQuestionStat.has_answered.is_(True),
            UserQuestionStat.question_archived.is_(False),
        )
        .group_by(TaxonomyNode.id, TaxonomyNode.name)
        .all()
    )
    themes = [
        {
            "theme_id": row.theme_id,
            "theme_name": row.theme_name,
            "total": row.total,
            "correct": int(row.correct or 0),
            "percentage": round(int(row.correct or 0) * 100 / row.total, 1),
        }
        for row in rows
    ]
    themes.sort(key=lambda theme: (-theme["total"], theme["theme_name"]))
    return themes


def list_answered_questions(
    db: Session,
    user_id: str,
    incorrect_only: bool = False,
    offset: int = 0,
    limit: int = 25,
) -> tuple[list[dict[str, Any]], int]:
    """Page through the user's answered (or only wrongly answered) live questions."""
    query = (
        db.query(UserQuestionStat, Question)
        .join(Question, Question.id == UserQuestionStat.question_id)
        .filter(
            UserQuestionStat.user_id == user_id,
            UserQuestionStat.has_answered.is_(True),
            UserQuestionStat.question_archived.is_(False),
        )
    )
    if incorrect_only:
        query = query.filter(UserQuestionStat.is_incorrect.is_(True))
    total = query.count()
    rows = (
        query.order_by(UserQuestionStat.answered_at.desc(), UserQuestionStat.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    items = [
        {
            "question_id": question.id,
            "question_text": question.question_text,
            "theme_name": question.theme_name,
            "is_incorrect": stat.is_incorrect,
            "answered_at": stat.answered_at,
        }
        for stat, question in rows
    ]
    return items, total


def add_bookmark(ctx: DataContext, user_id: str, question_id: int) -> bool:
    """Bookmark a question. Returns False when it was already bookmarked."""
    get_question(ctx.db, question_id)
    if _get_bookmark(ctx.db, user_id, question_id) is not None:
        return False
    ctx.writer.insert(UserBookmark(user_id=user_id, question_id=question_id))
    ctx.db.commit()
    return True


def remove_bookmark(ctx: DataContext, user_id: str, question_id: int) -> bool:
    """Remove a bookmark. Returns False when there was none."""
    bookmark = _get_bookmark(ctx.db, user_id, question_id)
    if bookmark is None:
        return False
    ctx.writer.delete(bookmark)
    ctx.db.commit()
    return True


def toggle_bookmark(ctx: DataContext, user_id: str, question_id: int) -> bool:
    """Flip the bookmark and return the new state."""
    if remove_bookmark(ctx, user_id, question_id):
        return False
    add_bookmark(ctx, user_id, question_id)
    return True


def get_bookmark_status(db: Session, user_id: str, question_ids: list[int]) -> dict[int, bool]:
    if not question_ids:
        return {}
    rows = (
        db.query(UserBookmark.question_id)
        .filter(UserBookmark.user_id == user_id, UserBookmark.question_id.in_(question_ids))
        .all()
    )
    bookmarked = {row.question_id for row in rows}
    return {question_id: question_id in bookmarked for question_id in question_ids}
