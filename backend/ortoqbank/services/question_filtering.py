"""Filter resolution and counting.

Counts are answered from indexes or aggregate trees only:

* a taxonomy selection is resolved by exact-match lookups on the three
  per-level question indexes, unioned into a set of question ids;
* with no taxonomy selection, the global question aggregate answers
  directly (the fast path);
* user interaction filters intersect with (or, for ``unanswered``, subtract)
  the user's rows fetched through the user-scoped indexes.

A user-scoped filter with no taxonomy selection would have to scan every
question, so it is rejected instead.
"""

from collections.abc import Iterable

from sqlalchemy.orm import Session

from ortoqbank.aggregates.registry import (
    ANSWERED_BY_USER,
    BOOKMARKED_BY_USER,
    GLOBAL_NAMESPACE,
    INCORRECT_BY_USER,
    QUESTION_COUNT_BY_THEME,
    QUESTION_COUNT_TOTAL,
)
from ortoqbank.core.exceptions import InvalidCombinationError
from ortoqbank.db.context import DataContext
from ortoqbank.models.question import Question
from ortoqbank.models.quiz import QuestionMode
from ortoqbank.models.taxonomy import TaxonomyNode, TaxonomyType
from ortoqbank.models.user_stats import UserBookmark, UserQuestionStat

LEVEL_COLUMNS = {
    TaxonomyType.THEME: Question.taxonomy_theme_id,
    TaxonomyType.SUBTHEME: Question.taxonomy_subtheme_id,
    TaxonomyType.GROUP: Question.taxonomy_group_id,
}


def count_by_taxonomy(db: Session, taxonomy_id: int, level: TaxonomyType | str) -> int:
    """Live questions whose ``level`` reference equals ``taxonomy_id``."""
    column = LEVEL_COLUMNS[TaxonomyType(level)]
    return (
        db.query(Question.id)
        .filter(column == taxonomy_id, Question.is_archived.is_(False))
        .count()
    )


def resolve_taxonomy_question_ids(db: Session, taxonomy_ids: Iterable[int]) -> set[int]:
    """Union of live questions referencing any id at any level.

    Ids are matched against all three level indexes, so the selection may
    mix themes, subthemes and groups; a question under both a selected theme
    and a selected group is counted once.
    """
    ids = sorted(set(taxonomy_ids))
    if not ids:
        return set()

    question_ids: set[int] = set()
    for column in LEVEL_COLUMNS.values():
        rows = (
            db.query(Question.id)
            .filter(column.in_(ids), Question.is_archived.is_(False))
            .all()
        )
        question_ids.update(row.id for row in rows)
    return question_ids


def _answered_ids(db: Session, user_id: str) -> set[int]:
    rows = (
        db.query(UserQuestionStat.question_id)
        .filter(UserQuestionStat.user_id == user_id, UserQuestionStat.has_answered.is_(True))
        .all()
    )
    return {row.question_id for row in rows}


def _incorrect_ids(db: Session, user_id: str) -> set[int]:
    rows = (
        db.query(UserQuestionStat.question_id)
        .filter(UserQuestionStat.user_id == user_id, UserQuestionStat.is_incorrect.is_(True))
        .all()
    )
    return {row.question_id for row in rows}


def _bookmarked_ids(db: Session, user_id: str) -> set[int]:
    rows = db.query(UserBookmark.question_id).filter(UserBookmark.user_id == user_id).all()
    return {row.question_id for row in rows}


def filter_question_ids(
    db: Session,
    question_ids: set[int],
    user_id: str | None,
    mode: QuestionMode | str,
) -> set[int]:
    """Apply an interaction filter to a resolved question id set.

    Without a user there is nothing to scope by, so the mode is ignored.
    """
    mode = QuestionMode(mode)
    if user_id is None or mode == QuestionMode.ALL:
        return set(question_ids)
    if mode == QuestionMode.UNANSWERED:
        return question_ids - _answered_ids(db, user_id)
    if mode == QuestionMode.INCORRECT:
        return question_ids & _incorrect_ids(db, user_id)
    return question_ids & _bookmarked_ids(db, user_id)


def count_live(
    ctx: DataContext,
    taxonomy_ids: list[int] | None = None,
    user_id: str | None = None,
    question_mode: QuestionMode | str = QuestionMode.ALL,
) -> int:
    """Number of live questions matching a taxonomy selection and interaction filter."""
    mode = QuestionMode(question_mode)
    user_scoped = user_id is not None and mode != QuestionMode.ALL

    if not taxonomy_ids:
        if user_scoped:
            raise InvalidCombinationError(
                "Select at least one theme, subtheme or group to filter by "
                f"{mode.value} questions",
                {"question_mode": mode.value},
            )
        return ctx.aggregates[QUESTION_COUNT_TOTAL].count(ctx.db, GLOBAL_NAMESPACE)

    question_ids = resolve_taxonomy_question_ids(ctx.db, taxonomy_ids)
    if not user_scoped:
        return len(question_ids)
    return len(filter_question_ids(ctx.db, question_ids, user_id, mode))


def get_all_question_counts(ctx: DataContext, user_id: str) -> dict[str, int]:
    """Badge counts for every mode, read from aggregates only."""
    total = ctx.aggregates[QUESTION_COUNT_TOTAL].count(ctx.db, GLOBAL_NAMESPACE)
    answered = ctx.aggregates[ANSWERED_BY_USER].count(ctx.db, user_id)
    incorrect = ctx.aggregates[INCORRECT_BY_USER].count(ctx.db, user_id)
    bookmarked = ctx.aggregates[BOOKMARKED_BY_USER].count(ctx.db, user_id)
    return {
        "all": total,
        "unanswered": max(0, total - answered),
        "incorrect": incorrect,
        "bookmarked": bookmarked,
    }


def get_theme_question_counts(ctx: DataContext) -> list[dict]:
    """Live question total per theme, from the by-theme aggregate."""
    by_theme = ctx.aggregates[QUESTION_COUNT_BY_THEME]
    themes = (
        ctx.db.query(TaxonomyNode)
        .filter(TaxonomyNode.type == TaxonomyType.THEME)
        .order_by(TaxonomyNode.name, TaxonomyNode.id)
        .all()
    )
    return [
        {"theme_id": theme.id, "theme_name": theme.name, "count": by_theme.count(ctx.db, theme.id)}
        for theme in themes
    ]
