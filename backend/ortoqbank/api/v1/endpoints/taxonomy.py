"""Taxonomy read endpoints."""

from fastapi import APIRouter, Query

from ortoqbank.core.dependencies import DB, CurrentUser
from ortoqbank.models.taxonomy import TaxonomyType
from ortoqbank.schemas.taxonomy import (
    TaxonomyNodeOut,
    TaxonomyPathOut,
    TaxonomyQuestionCount,
    TaxonomyTreeNode,
)
from ortoqbank.services import question_filtering, taxonomy

router = APIRouter()


@router.get("/hierarchy", response_model=list[TaxonomyTreeNode])
def get_hierarchy(db: DB, current_user: CurrentUser):
    """Full theme -> subtheme -> group tree."""
    return taxonomy.get_hierarchy(db)


@router.get("", response_model=list[TaxonomyNodeOut])
def list_by_type(db: DB, current_user: CurrentUser, type: TaxonomyType = Query(...)):
    return taxonomy.get_by_type(db, type)


@router.get("/children", response_model=list[TaxonomyNodeOut])
def list_children(db: DB, current_user: CurrentUser, parent_id: int | None = None):
    """Direct children of ``parent_id``; the themes when it is omitted."""
    return taxonomy.get_by_parent(db, parent_id)


@router.get("/{node_id}/path", response_model=TaxonomyPathOut)
def get_path(node_id: int, db: DB, current_user: CurrentUser):
    return taxonomy.get_hierarchy_path(db, node_id)


@router.get("/{node_id}/descendants", response_model=list[TaxonomyNodeOut])
def get_descendants(node_id: int, db: DB, current_user: CurrentUser):
    return taxonomy.get_descendants(db, node_id)


@router.get("/{node_id}/question-count", response_model=TaxonomyQuestionCount)
def get_question_count(
    node_id: int,
    db: DB,
    current_user: CurrentUser,
    level: TaxonomyType | None = None,
):
    """Live questions at ``level`` (defaults to the node's own level)."""
    if level is None:
        level = taxonomy.get_node(db, node_id).type
    count = question_filtering.count_by_taxonomy(db, node_id, level)
    return TaxonomyQuestionCount(taxonomy_id=node_id, level=level, count=count)
