"""Error handling and consistent error response format."""

import uuid
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ortoqbank.core.config import settings
from ortoqbank.core.exceptions import (
    AggregateError,
    IntegrityViolationError,
    InvalidCombinationError,
    NotFoundError,
    OrtoQBankError,
)
from ortoqbank.core.logging import get_logger

logger = get_logger(__name__)

DOMAIN_STATUS_CODES: dict[type[OrtoQBankError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidCombinationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    IntegrityViolationError: status.HTTP_409_CONFLICT,
    AggregateError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ErrorResponse(BaseModel):
    """Error response envelope: {error_code, message, details, request_id}."""

    error_code: str
    message: str
    details: Any | None = None
    request_id: str | None = None


def get_request_id(request: Request) -> str:
    """Get request ID from request state or generate new one."""
    if hasattr(request.state, "request_id"):
        return request.state.request_id
    return str(uuid.uuid4())


def _envelope(
    request: Request, status_code: int, code: str, message: str, details: Any = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error_code=code,
            message=message,
            details=details,
            request_id=get_request_id(request),
        ).model_dump(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation errors (422)."""
    details: list[dict[str, Any]] = []
    for error in exc.errors():
        details.append(
            {
                "field": ".".join(str(loc) for loc in error.get("loc", [])),
                "issue": error.get("msg", "Validation error"),
                "type": error.get("type", "validation_error"),
            }
        )

    return _envelope(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        "Invalid request data",
        details,
    )


async def domain_exception_handler(request: Request, exc: OrtoQBankError) -> JSONResponse:
    """Map domain exceptions to the error envelope."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for exc_type, code in DOMAIN_STATUS_CODES.items():
        if isinstance(exc, exc_type):
            status_code = code
            break

    if isinstance(exc, AggregateError):
        logger.error(
            "aggregate_drift_risk",
            extra={"request_id": get_request_id(request), "error": exc.message},
        )
        message = exc.message if settings.ENV != "prod" else "Aggregate update failed"
    else:
        message = exc.message

    return _envelope(request, status_code, exc.code, message, exc.details)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions."""
    details = None
    code = "HTTP_ERROR"
    if isinstance(exc.detail, dict):
        if "code" in exc.detail:
            code = exc.detail["code"]
            message = exc.detail.get("message", "An error occurred")
            details = exc.detail.get("details")
        else:
            details = exc.detail.copy()
            message = details.pop("message", exc.detail.get("detail", "An error occurred"))
    elif isinstance(exc.detail, str):
        message = exc.detail
    else:
        message = str(exc.detail)

    return _envelope(request, exc.status_code, code, message, details)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions (500)."""
    logger.error(
        "unhandled_exception",
        extra={"request_id": get_request_id(request), "error": str(exc)},
        exc_info=exc,
    )

    # In production, don't expose internal error details
    if settings.ENV == "prod":
        message = "An internal server error occurred"
        details = None
    else:
        message = str(exc)
        details = {"type": type(exc).__name__}

    return _envelope(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", message, details
    )
