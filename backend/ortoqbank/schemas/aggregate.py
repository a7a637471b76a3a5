"""Pydantic schemas for aggregate administration."""

from pydantic import BaseModel, Field


class AggregateInitRequest(BaseModel):
    """Defaults come from AGGREGATE_MAX_NODE_SIZE / AGGREGATE_ROOT_LAZY."""

    max_node_size: int | None = Field(None, ge=2)
    root_lazy: bool | None = None


class AggregateInitResult(BaseModel):
    aggregates: list[str]
    max_node_size: int
    root_lazy: bool


class AggregateRebuildResult(BaseModel):
    counts: dict[str, int]


class AggregateCountOut(BaseModel):
    aggregate: str
    namespace: str
    count: int
