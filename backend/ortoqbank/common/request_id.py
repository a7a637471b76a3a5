"""Request ID middleware."""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ortoqbank.core.logging import bind_request_id, get_logger, reset_request_id

logger = get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware to generate and track request IDs."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = bind_request_id(request_id)
        start_time = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            logger.info(
                "request_completed",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "latency_ms": int((time.perf_counter() - start_time) * 1000),
                },
            )
            return response
        except Exception as e:
            logger.error(
                "request_failed",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "latency_ms": int((time.perf_counter() - start_time) * 1000),
                    "error": str(e),
                },
                exc_info=True,
            )
            raise
        finally:
            reset_request_id(token)
