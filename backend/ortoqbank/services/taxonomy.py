"""Taxonomy store: hierarchy reads and admin writes."""

from typing import Any

from sqlalchemy.orm import Session

from ortoqbank.cache.helpers import invalidate_taxonomy_cache, taxonomy_hierarchy_key
from ortoqbank.cache.redis import get_json, set_json
from ortoqbank.core.config import settings
from ortoqbank.core.exceptions import IntegrityViolationError, NotFoundError
from ortoqbank.core.logging import get_logger
from ortoqbank.db.context import DataContext
from ortoqbank.models.question import Question
from ortoqbank.models.quiz import PresetQuiz
from ortoqbank.models.taxonomy import PARENT_TYPE, TaxonomyNode, TaxonomyType
from ortoqbank.schemas.taxonomy import TaxonomyNodeCreate, TaxonomyNodeUpdate

logger = get_logger(__name__)

# Question columns holding the reference / denormalised name for each level
LEVEL_ID_COLUMN = {
    TaxonomyType.THEME: "taxonomy_theme_id",
    TaxonomyType.SUBTHEME: "taxonomy_subtheme_id",
    TaxonomyType.GROUP: "taxonomy_group_id",
}
LEVEL_NAME_COLUMN = {
    TaxonomyType.THEME: "theme_name",
    TaxonomyType.SUBTHEME: "subtheme_name",
    TaxonomyType.GROUP: "group_name",
}


def get_node(db: Session, node_id: int) -> TaxonomyNode:
    node = db.get(TaxonomyNode, node_id)
    if node is None:
        raise NotFoundError(f"Taxonomy node {node_id} not found", {"taxonomy_id": node_id})
    return node


def get_by_type(db: Session, node_type: TaxonomyType | str) -> list[TaxonomyNode]:
    return (
        db.query(TaxonomyNode)
        .filter(TaxonomyNode.type == TaxonomyType(node_type))
        .order_by(TaxonomyNode.name, TaxonomyNode.id)
        .all()
    )


def get_by_parent(db: Session, parent_id: int | None) -> list[TaxonomyNode]:
    """Direct children of ``parent_id``, or the themes when it is None."""
    if parent_id is None:
        return get_by_type(db, TaxonomyType.THEME)
    return (
        db.query(TaxonomyNode)
        .filter(TaxonomyNode.parent_id == parent_id)
        .order_by(TaxonomyNode.name, TaxonomyNode.id)
        .all()
    )


def get_descendants(db: Session, node_id: int) -> list[TaxonomyNode]:
    """All nodes below ``node_id``.

    The taxonomy table is small and bounded, so this filters ``path_ids`` in
    memory; it never touches the question table.
    """
    get_node(db, node_id)
    nodes = db.query(TaxonomyNode).order_by(TaxonomyNode.id).all()
    return [node for node in nodes if node_id in (node.path_ids or [])]


def get_hierarchy_path(db: Session, node_id: int) -> dict[str, TaxonomyNode | None]:
    """Theme / subtheme / group triple for a node, resolved through ``path_ids``."""
    node = get_node(db, node_id)
    path: dict[str, TaxonomyNode | None] = {"theme": None, "subtheme": None, "group": None}
    for ancestor_id in node.path_ids or []:
        ancestor = get_node(db, ancestor_id)
        path[ancestor.type.value] = ancestor
    path[node.type.value] = node
    return path


def get_hierarchy(db: Session) -> list[dict[str, Any]]:
    """Every theme with nested subthemes and groups.

    Served from Redis when warm; any taxonomy write drops the cached copy.
    """
    cached = get_json(taxonomy_hierarchy_key())
    if cached is not None:
        return cached

    nodes = db.query(TaxonomyNode).order_by(TaxonomyNode.name, TaxonomyNode.id).all()
    entries: dict[int, dict[str, Any]] = {
        node.id: {
            "id": node.id,
            "name": node.name,
            "type": node.type.value,
            "prefix": node.prefix,
            "children": [],
        }
        for node in nodes
    }
    roots: list[dict[str, Any]] = []
    for node in nodes:
        entry = entries[node.id]
        if node.parent_id is None:
            roots.append(entry)
        elif node.parent_id in entries:
            entries[node.parent_id]["children"].append(entry)

    set_json(taxonomy_hierarchy_key(), roots, settings.HIERARCHY_CACHE_TTL_SECONDS)
    return roots


def find_in_scope(
    db: Session, node_type: TaxonomyType, parent_id: int | None, name: str
) -> TaxonomyNode | None:
    query = db.query(TaxonomyNode).filter(
        TaxonomyNode.type == node_type, TaxonomyNode.name == name
    )
    if parent_id is None:
        query = query.filter(TaxonomyNode.parent_id.is_(None))
    else:
        query = query.filter(TaxonomyNode.parent_id == parent_id)
    return query.first()


def _build_node(db: Session, data: TaxonomyNodeCreate) -> TaxonomyNode:
    node_type = TaxonomyType(data.type)
    expected_parent = PARENT_TYPE[node_type]

    if expected_parent is None:
        if data.parent_id is not None:
            raise IntegrityViolationError("A theme cannot have a parent")
        path_ids: list[int] = []
        path_names: list[str] = []
    else:
        if data.parent_id is None:
            raise IntegrityViolationError(
                f"A {node_type.value} requires a {expected_parent.value} parent"
            )
        parent = db.get(TaxonomyNode, data.parent_id)
        if parent is None:
            raise NotFoundError(f"Parent node {data.parent_id} not found")
        if parent.type != expected_parent:
            raise IntegrityViolationError(
                f"A {node_type.value} must be placed under a {expected_parent.value}",
                {"parent_id": parent.id, "parent_type": parent.type.value},
            )
        path_ids = list(parent.path_ids or []) + [parent.id]
        path_names = list(parent.path_names or []) + [parent.name]

    return TaxonomyNode(
        name=data.name,
        type=node_type,
        prefix=data.prefix,
        parent_id=data.parent_id,
        path_ids=path_ids,
        path_names=path_names,
    )


def create_node(db: Session, data: TaxonomyNodeCreate) -> TaxonomyNode:
    """Create a node after checking its parent level and name uniqueness."""
    node = _build_node(db, data)
    if find_in_scope(db, node.type, node.parent_id, node.name) is not None:
        raise IntegrityViolationError(
            f"A {node.type.value} named {node.name!r} already exists here",
            {"parent_id": node.parent_id},
        )
    db.add(node)
    db.commit()
    db.refresh(node)
    invalidate_taxonomy_cache()
    logger.info(
        "taxonomy_node_created",
        extra={"taxonomy_id": node.id, "node_type": node.type.value},
    )
    return node


def get_or_create_node(db: Session, data: TaxonomyNodeCreate) -> tuple[TaxonomyNode, bool]:
    """Idempotent create: returns the existing node in scope when there is one.

    Does not commit; callers batch several creates into one transaction.
    """
    existing = find_in_scope(db, TaxonomyType(data.type), data.parent_id, data.name)
    if existing is not None:
        return existing, False
    node = _build_node(db, data)
    db.add(node)
    db.flush()
    return node, True


def rename_node(ctx: DataContext, node_id: int, data: TaxonomyNodeUpdate) -> TaxonomyNode:
    """Rename a node and rewrite every denormalised copy of its name."""
    db = ctx.db
    node = get_node(db, node_id)

    if data.prefix is not None:
        node.prefix = data.prefix

    if data.name is not None and data.name != node.name:
        clash = find_in_scope(db, node.type, node.parent_id, data.name)
        if clash is not None and clash.id != node.id:
            raise IntegrityViolationError(
                f"A {node.type.value} named {data.name!r} already exists here"
            )
        node.name = data.name
        depth = len(node.path_ids or [])

        for descendant in get_descendants(db, node.id):
            names = list(descendant.path_names)
            names[depth] = data.name
            descendant.path_names = names

        id_column = getattr(Question, LEVEL_ID_COLUMN[node.type])
        name_column = LEVEL_NAME_COLUMN[node.type]
        questions = db.query(Question).filter(id_column == node.id).order_by(Question.id).all()
        for question in questions:
            ctx.writer.patch(question, **{name_column: data.name})

    db.commit()
    db.refresh(node)
    invalidate_taxonomy_cache()
    logger.info("taxonomy_node_renamed", extra={"taxonomy_id": node.id})
    return node


def delete_node(db: Session, node_id: int) -> None:
    """Delete a node that nothing references."""
    node = get_node(db, node_id)

    if db.query(TaxonomyNode.id).filter(TaxonomyNode.parent_id == node.id).first():
        raise IntegrityViolationError("Taxonomy node still has children", {"taxonomy_id": node_id})

    id_column = getattr(Question, LEVEL_ID_COLUMN[node.type])
    if db.query(Question.id).filter(id_column == node.id).first():
        raise IntegrityViolationError(
            "Taxonomy node is referenced by questions", {"taxonomy_id": node_id}
        )
    quiz_column = getattr(PresetQuiz, LEVEL_ID_COLUMN[node.type])
    if db.query(PresetQuiz.id).filter(quiz_column == node.id).first():
        raise IntegrityViolationError(
            "Taxonomy node is referenced by preset quizzes", {"taxonomy_id": node_id}
        )

    db.delete(node)
    db.commit()
    invalidate_taxonomy_cache()
    logger.info("taxonomy_node_deleted", extra={"taxonomy_id": node_id})
