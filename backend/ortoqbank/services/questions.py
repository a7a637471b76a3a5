"""Question content: admin create / edit / archive and reads."""

from typing import Any

from sqlalchemy.orm import Session

from ortoqbank.core.exceptions import IntegrityViolationError, NotFoundError
from ortoqbank.core.logging import get_logger
from ortoqbank.db.context import DataContext
from ortoqbank.models.question import MAX_OPTIONS, MIN_OPTIONS, Question
from ortoqbank.models.taxonomy import TaxonomyNode, TaxonomyType
from ortoqbank.schemas.question import QuestionCreate, QuestionUpdate

logger = get_logger(__name__)

TAXONOMY_FIELDS = ("taxonomy_theme_id", "taxonomy_subtheme_id", "taxonomy_group_id")
REQUIRED_FIELDS = (
    "question_text",
    "explanation_text",
    "options",
    "correct_option_index",
    "image_urls",
)


def _node_of_type(db: Session, node_id: int, node_type: TaxonomyType) -> TaxonomyNode:
    node = db.get(TaxonomyNode, node_id)
    if node is None:
        raise NotFoundError(f"Taxonomy node {node_id} not found", {"taxonomy_id": node_id})
    if node.type != node_type:
        raise IntegrityViolationError(
            f"Taxonomy node {node_id} is a {node.type.value}, expected a {node_type.value}",
            {"taxonomy_id": node_id},
        )
    return node


def resolve_taxonomy_refs(
    db: Session,
    theme_id: int | None = None,
    subtheme_id: int | None = None,
    group_id: int | None = None,
) -> dict[str, Any]:
    """Question taxonomy columns derived from the most specific reference.

    Explicit less-specific ids must agree with the chosen node's path.
    """
    given = {"theme": theme_id, "subtheme": subtheme_id, "group": group_id}

    if group_id is not None:
        node = _node_of_type(db, group_id, TaxonomyType.GROUP)
    elif subtheme_id is not None:
        node = _node_of_type(db, subtheme_id, TaxonomyType.SUBTHEME)
    elif theme_id is not None:
        node = _node_of_type(db, theme_id, TaxonomyType.THEME)
    else:
        return {
            "taxonomy_theme_id": None,
            "taxonomy_subtheme_id": None,
            "taxonomy_group_id": None,
            "theme_name": None,
            "subtheme_name": None,
            "group_name": None,
            "taxonomy_path_ids": [],
        }

    path_ids = list(node.path_ids or []) + [node.id]
    path_names = list(node.path_names or []) + [node.name]
    levels = ("theme", "subtheme", "group")[: len(path_ids)]
    resolved = dict(zip(levels, zip(path_ids, path_names)))

    for level, explicit in given.items():
        if explicit is not None and (level not in resolved or resolved[level][0] != explicit):
            raise IntegrityViolationError(
                f"Inconsistent taxonomy references: {level} {explicit} is not on the path of "
                f"{node.type.value} {node.id}",
                {"path_ids": path_ids},
            )

    def pick(level: str, index: int) -> Any:
        return resolved[level][index] if level in resolved else None

    return {
        "taxonomy_theme_id": pick("theme", 0),
        "taxonomy_subtheme_id": pick("subtheme", 0),
        "taxonomy_group_id": pick("group", 0),
        "theme_name": pick("theme", 1),
        "subtheme_name": pick("subtheme", 1),
        "group_name": pick("group", 1),
        "taxonomy_path_ids": path_ids,
    }


def require_theme(refs: dict[str, Any]) -> None:
    if refs["taxonomy_theme_id"] is None:
        raise IntegrityViolationError(
            "A question must be filed under a theme, subtheme or group",
            {"taxonomy_path_ids": refs["taxonomy_path_ids"]},
        )


def validate_options(options: list[str], correct_option_index: int) -> None:
    if not MIN_OPTIONS <= len(options) <= MAX_OPTIONS:
        raise IntegrityViolationError(
            f"A question needs between {MIN_OPTIONS} and {MAX_OPTIONS} options"
        )
    if not 0 <= correct_option_index < len(options):
        raise IntegrityViolationError(
            "correct_option_index must point at one of the options",
            {"correct_option_index": correct_option_index, "options": len(options)},
        )


def get_question(db: Session, question_id: int, include_archived: bool = False) -> Question:
    question = db.get(Question, question_id)
    if question is None or (question.is_archived and not include_archived):
        raise NotFoundError(f"Question {question_id} not found", {"question_id": question_id})
    return question


def list_questions(
    db: Session,
    offset: int = 0,
    limit: int = 25,
    taxonomy_id: int | None = None,
    include_archived: bool = False,
) -> tuple[list[Question], int]:
    query = db.query(Question)
    if taxonomy_id is not None:
        query = query.filter(
            (Question.taxonomy_theme_id == taxonomy_id)
            | (Question.taxonomy_subtheme_id == taxonomy_id)
            | (Question.taxonomy_group_id == taxonomy_id)
        )
    if not include_archived:
        query = query.filter(Question.is_archived.is_(False))
    total = query.count()
    items = query.order_by(Question.id).offset(offset).limit(limit).all()
    return items, total


def create_question(ctx: DataContext, data: QuestionCreate) -> Question:
    validate_options(data.options, data.correct_option_index)
    refs = resolve_taxonomy_refs(
        ctx.db, data.taxonomy_theme_id, data.taxonomy_subtheme_id, data.taxonomy_group_id
    )
    require_theme(refs)
    question = Question(
        question_text=data.question_text,
        explanation_text=data.explanation_text,
        options=list(data.options),
        correct_option_index=data.correct_option_index,
        image_urls=list(data.image_urls),
        is_archived=False,
        **refs,
    )
    ctx.writer.insert(question)
    ctx.db.commit()
    logger.info("question_created", extra={"question_id": question.id})
    return question


def update_question(ctx: DataContext, question_id: int, data: QuestionUpdate) -> Question:
    question = get_question(ctx.db, question_id, include_archived=True)
    values = data.model_dump(exclude_unset=True)

    taxonomy_given = {key: values.pop(key) for key in TAXONOMY_FIELDS if key in values}
    if taxonomy_given:
        refs = resolve_taxonomy_refs(
            ctx.db,
            taxonomy_given.get("taxonomy_theme_id"),
            taxonomy_given.get("taxonomy_subtheme_id"),
            taxonomy_given.get("taxonomy_group_id"),
        )
        require_theme(refs)
        values.update(refs)

    for key in REQUIRED_FIELDS:
        if key in values and values[key] is None:
            raise IntegrityViolationError(f"{key} cannot be null")

    validate_options(
        values.get("options", question.options),
        values.get("correct_option_index", question.correct_option_index),
    )
    if values:
        ctx.writer.patch(question, **values)
    ctx.db.commit()
    logger.info("question_updated", extra={"question_id": question.id, "fields": sorted(values)})
    return question


def _set_archived(ctx: DataContext, question_id: int, archived: bool) -> Question:
    question = get_question(ctx.db, question_id, include_archived=True)
    if question.is_archived != archived:
        ctx.writer.patch(question, is_archived=archived)
        ctx.db.commit()
        logger.info(
            "question_archived" if archived else "question_restored",
            extra={"question_id": question.id},
        )
    return question


def archive_question(ctx: DataContext, question_id: int) -> Question:
    """Remove a question from every count and lookup without deleting it."""
    return _set_archived(ctx, question_id, True)


def restore_question(ctx: DataContext, question_id: int) -> Question:
    return _set_archived(ctx, question_id, False)
