"""FastAPI application factory and main entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from ortoqbank import models  # noqa: F401  (registers tables on Base.metadata)
from ortoqbank.aggregates.registry import build_aggregate_registry, build_triggers
from ortoqbank.api.v1.router import api_router
from ortoqbank.common.request_id import RequestIDMiddleware
from ortoqbank.core.config import settings
from ortoqbank.core.errors import (
    domain_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from ortoqbank.core.exceptions import OrtoQBankError
from ortoqbank.core.logging import get_logger, setup_logging
from ortoqbank.core.redis_client import init_redis
from ortoqbank.db.base import Base
from ortoqbank.db.engine import engine

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    setup_logging()
    init_redis()
    # Production schema comes from Alembic
    if settings.ENV == "dev":
        Base.metadata.create_all(bind=engine)
    logger.info(
        "app_started",
        extra={"env": settings.ENV, "aggregates": app.state.aggregates.names()},
    )
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="OrtoQBank question bank API",
        openapi_url="/openapi.json" if settings.ENV != "prod" else None,
        docs_url="/docs" if settings.ENV != "prod" else None,
        redoc_url="/redoc" if settings.ENV != "prod" else None,
        lifespan=lifespan,
    )

    # Aggregate handles and trigger wiring live for the whole process
    app.state.aggregates = build_aggregate_registry()
    app.state.triggers = build_triggers(app.state.aggregates)

    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(OrtoQBankError, domain_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "message": settings.PROJECT_NAME,
            "version": "1.0.0",
            "docs_url": "/docs" if settings.ENV != "prod" else None,
        }

    return app


app = create_app()
