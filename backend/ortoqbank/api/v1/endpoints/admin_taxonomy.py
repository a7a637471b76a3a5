"""Admin taxonomy endpoints."""

from fastapi import APIRouter, Query, status

from ortoqbank.core.dependencies import DB, AdminUser, Context
from ortoqbank.schemas.taxonomy import (
    LegacyImportResult,
    LegacyTaxonomyExport,
    TaxonomyNodeCreate,
    TaxonomyNodeOut,
    TaxonomyNodeUpdate,
)
from ortoqbank.services import migration, taxonomy

router = APIRouter()


@router.post("", response_model=TaxonomyNodeOut, status_code=status.HTTP_201_CREATED)
def create_node(body: TaxonomyNodeCreate, db: DB, admin: AdminUser):
    return taxonomy.create_node(db, body)


@router.patch("/{node_id}", response_model=TaxonomyNodeOut)
def update_node(node_id: int, body: TaxonomyNodeUpdate, ctx: Context, admin: AdminUser):
    """Rename a node; descendants' paths and question names follow."""
    return taxonomy.rename_node(ctx, node_id, body)


@router.delete("/{node_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_node(node_id: int, db: DB, admin: AdminUser):
    taxonomy.delete_node(db, node_id)


@router.post("/import-legacy", response_model=LegacyImportResult)
def import_legacy(
    body: LegacyTaxonomyExport,
    db: DB,
    admin: AdminUser,
    dry_run: bool = Query(False),
):
    return migration.populate_taxonomy_from_legacy(db, body, dry_run=dry_run)
