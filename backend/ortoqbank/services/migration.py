"""Migration and maintenance jobs.

* legacy taxonomy population from a flat export (idempotent);
* batched backfill of question taxonomy back-references;
* aggregate initialisation and rebuild.
"""

from typing import Any

from sqlalchemy.orm import Session

from ortoqbank.cache.helpers import invalidate_taxonomy_cache
from ortoqbank.core.config import settings
from ortoqbank.core.exceptions import IntegrityViolationError, NotFoundError
from ortoqbank.core.logging import get_logger
from ortoqbank.db.context import DataContext
from ortoqbank.db.triggers import snapshot
from ortoqbank.models.question import Question
from ortoqbank.models.taxonomy import TaxonomyType
from ortoqbank.models.user_stats import UserBookmark, UserQuestionStat
from ortoqbank.schemas.taxonomy import LegacyTaxonomyExport, TaxonomyNodeCreate
from ortoqbank.services.questions import resolve_taxonomy_refs
from ortoqbank.services.taxonomy import find_in_scope, get_or_create_node

logger = get_logger(__name__)

SOURCE_MODELS = {
    "questions": Question,
    "user_question_stats": UserQuestionStat,
    "user_bookmarks": UserBookmark,
}
REBUILD_BATCH_SIZE = 500


# ---------------------------------------------------------------------------
# Legacy taxonomy population
# ---------------------------------------------------------------------------


def populate_taxonomy_from_legacy(
    db: Session, export: LegacyTaxonomyExport, dry_run: bool = False
) -> dict[str, Any]:
    """Create themes, subthemes and groups from a legacy flat export.

    Nodes are matched by (parent, name) before insert, so running the import
    again creates nothing. A row whose parent is unknown is reported and
    skipped; its children are then skipped too.
    """
    result: dict[str, Any] = {
        "dry_run": dry_run,
        "themes_created": 0,
        "subthemes_created": 0,
        "groups_created": 0,
        "existing": 0,
        "errors": [],
    }
    # Legacy id -> new node id (None for nodes that would be created in a dry run)
    theme_ids: dict[str, int | None] = {}
    subtheme_ids: dict[str, int | None] = {}

    def place(node_type: TaxonomyType, name: str, prefix: str | None, parent_id: int | None):
        data = TaxonomyNodeCreate(type=node_type, name=name, parent_id=parent_id, prefix=prefix)
        if dry_run:
            existing = None
            if parent_id is not None or node_type == TaxonomyType.THEME:
                existing = find_in_scope(db, node_type, parent_id, name)
            if existing is not None:
                result["existing"] += 1
                return existing.id
            result[f"{node_type.value}s_created"] += 1
            return None
        node, created = get_or_create_node(db, data)
        result[f"{node_type.value}s_created" if created else "existing"] += 1
        return node.id

    for theme in export.themes:
        theme_ids[theme.id] = place(TaxonomyType.THEME, theme.name, theme.prefix, None)

    for subtheme in export.subthemes:
        if subtheme.theme_id not in theme_ids:
            result["errors"].append(
                f"subtheme {subtheme.id}: unknown theme {subtheme.theme_id}"
            )
            continue
        subtheme_ids[subtheme.id] = place(
            TaxonomyType.SUBTHEME, subtheme.name, subtheme.prefix, theme_ids[subtheme.theme_id]
        )

    for group in export.groups:
        if group.subtheme_id not in subtheme_ids:
            result["errors"].append(f"group {group.id}: unknown subtheme {group.subtheme_id}")
            continue
        place(TaxonomyType.GROUP, group.name, group.prefix, subtheme_ids[group.subtheme_id])

    if not dry_run:
        db.commit()
        invalidate_taxonomy_cache()

    logger.info(
        "legacy_taxonomy_populated",
        extra={key: value for key, value in result.items() if key != "errors"}
        | {"error_count": len(result["errors"])},
    )
    return result


# ---------------------------------------------------------------------------
# Question taxonomy backfill
# ---------------------------------------------------------------------------


def _needs_backfill(question: Question) -> bool:
    if question.taxonomy_group_id is not None:
        expected = 3
    elif question.taxonomy_subtheme_id is not None:
        expected = 2
    elif question.taxonomy_theme_id is not None:
        expected = 1
    else:
        return False
    return (
        len(question.taxonomy_path_ids or []) != expected
        or (question.taxonomy_group_id is not None and question.taxonomy_subtheme_id is None)
        or question.taxonomy_theme_id is None
        or question.theme_name is None
    )


def backfill_question_taxonomy(
    ctx: DataContext,
    batch_size: int = 100,
    cursor: int | None = None,
    dry_run: bool = False,
) -> dict[str, Any]:
    """Fill missing ancestor references, paths and names for one batch.

    Keyset paginated on question id; call again with ``next_cursor`` until
    ``is_done``. Each reference set is derived from the question's most
    specific reference.
    """
    db = ctx.db
    query = db.query(Question).order_by(Question.id)
    if cursor is not None:
        query = query.filter(Question.id > cursor)
    batch = query.limit(batch_size).all()

    updated = 0
    errors: list[str] = []
    for question in batch:
        if not _needs_backfill(question):
            continue
        try:
            if question.taxonomy_group_id is not None:
                refs = resolve_taxonomy_refs(db, group_id=question.taxonomy_group_id)
            elif question.taxonomy_subtheme_id is not None:
                refs = resolve_taxonomy_refs(db, subtheme_id=question.taxonomy_subtheme_id)
            else:
                refs = resolve_taxonomy_refs(db, theme_id=question.taxonomy_theme_id)
        except (NotFoundError, IntegrityViolationError) as e:
            errors.append(f"question {question.id}: {e.message}")
            continue
        if not dry_run:
            ctx.writer.patch(question, **refs)
        updated += 1

    if not dry_run:
        db.commit()

    next_cursor = batch[-1].id if len(batch) == batch_size else None
    result = {
        "processed": len(batch),
        "updated": updated,
        "errors": errors,
        "next_cursor": next_cursor,
        "is_done": next_cursor is None,
        "dry_run": dry_run,
    }
    logger.info(
        "question_taxonomy_backfill_batch",
        extra={"processed": len(batch), "updated": updated, "error_count": len(errors)},
    )
    return result


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


def initialize_aggregates(
    ctx: DataContext, max_node_size: int | None = None, root_lazy: bool | None = None
) -> dict[str, Any]:
    """Clear every registered aggregate and reset its tree parameters."""
    if max_node_size is None:
        max_node_size = settings.AGGREGATE_MAX_NODE_SIZE
    if root_lazy is None:
        root_lazy = settings.AGGREGATE_ROOT_LAZY

    for aggregate in ctx.aggregates:
        aggregate.clear_all(ctx.db, max_node_size=max_node_size, root_lazy=root_lazy)
    ctx.db.commit()

    logger.info(
        "aggregates_initialized",
        extra={"max_node_size": max_node_size, "root_lazy": root_lazy},
    )
    return {
        "aggregates": ctx.aggregates.names(),
        "max_node_size": max_node_size,
        "root_lazy": root_lazy,
    }


def rebuild_aggregates(
    ctx: DataContext, max_node_size: int | None = None, root_lazy: bool | None = None
) -> dict[str, int]:
    """Clear every aggregate, then re-insert every source row in id order.

    Meant for an administrative window: writes racing the rebuild are not
    reflected in the rebuilt trees.
    """
    initialize_aggregates(ctx, max_node_size=max_node_size, root_lazy=root_lazy)
    db = ctx.db
    counts = {name: 0 for name in ctx.aggregates.names()}

    for table, model in SOURCE_MODELS.items():
        aggregates = ctx.aggregates.for_table(table)
        if not aggregates:
            continue
        last_id = None
        while True:
            query = db.query(model).order_by(model.id)
            if last_id is not None:
                query = query.filter(model.id > last_id)
            rows = query.limit(REBUILD_BATCH_SIZE).all()
            if not rows:
                break
            for row in rows:
                values = snapshot(row)
                for aggregate in aggregates:
                    if aggregate.insert_row(db, values):
                        counts[aggregate.name] += 1
            last_id = rows[-1].id
            db.commit()

    logger.info("aggregates_rebuilt", extra={"counts": counts})
    return counts


def get_aggregate_count(ctx: DataContext, name: str, namespace: str) -> int:
    if name not in ctx.aggregates:
        raise NotFoundError(f"Aggregate {name!r} not found", {"aggregate": name})
    return ctx.aggregates[name].count(ctx.db, namespace)
