"""Admin aggregate maintenance endpoints."""

from fastapi import APIRouter, Query

from ortoqbank.core.dependencies import AdminUser, Context
from ortoqbank.schemas.aggregate import (
    AggregateCountOut,
    AggregateInitRequest,
    AggregateInitResult,
    AggregateRebuildResult,
)
from ortoqbank.services import migration

router = APIRouter()


@router.post("/initialize", response_model=AggregateInitResult)
def initialize(body: AggregateInitRequest, ctx: Context, admin: AdminUser):
    """Destructive: drops every tree and resets fan-out / root laziness."""
    return migration.initialize_aggregates(
        ctx, max_node_size=body.max_node_size, root_lazy=body.root_lazy
    )


@router.post("/rebuild", response_model=AggregateRebuildResult)
def rebuild(body: AggregateInitRequest, ctx: Context, admin: AdminUser):
    counts = migration.rebuild_aggregates(
        ctx, max_node_size=body.max_node_size, root_lazy=body.root_lazy
    )
    return AggregateRebuildResult(counts=counts)


@router.get("/{name}/count", response_model=AggregateCountOut)
def count(name: str, ctx: Context, admin: AdminUser, namespace: str = Query(..., min_length=1)):
    return AggregateCountOut(
        aggregate=name,
        namespace=namespace,
        count=migration.get_aggregate_count(ctx, name, namespace),
    )
