"""Health and readiness endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ortoqbank.core.config import settings
from ortoqbank.core.errors import get_request_id
from ortoqbank.core.redis_client import is_redis_available
from ortoqbank.db.session import get_db

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"


class ReadinessCheck(BaseModel):
    status: Literal["ok", "degraded", "down"]
    message: str | None = None


class ReadinessResponse(BaseModel):
    status: Literal["ok", "degraded", "down"]
    checks: dict[str, ReadinessCheck]
    request_id: str


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
def health_check() -> HealthResponse:
    """Liveness: the process is up."""
    return HealthResponse(status="ok")


@router.get("/ready", response_model=ReadinessResponse, status_code=status.HTTP_200_OK)
def readiness_check(request: Request, db: Session = Depends(get_db)) -> ReadinessResponse:
    """Readiness: database reachable; Redis reported as degraded when down."""
    checks: dict[str, ReadinessCheck] = {}
    overall: Literal["ok", "degraded", "down"] = "ok"

    try:
        db.execute(text("SELECT 1"))
        checks["db"] = ReadinessCheck(status="ok")
    except SQLAlchemyError as e:
        checks["db"] = ReadinessCheck(status="down", message=str(e))
        overall = "down"

    if settings.REDIS_ENABLED:
        if is_redis_available():
            checks["redis"] = ReadinessCheck(status="ok")
        else:
            checks["redis"] = ReadinessCheck(status="degraded", message="Redis unavailable")
            if overall == "ok":
                overall = "degraded"

    return ReadinessResponse(status=overall, checks=checks, request_id=get_request_id(request))
