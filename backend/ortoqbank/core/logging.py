"""JSON logging with the current request id stamped on every record.

The request id lives in a context variable bound by ``RequestIDMiddleware``,
so service code logs plain events and still lands in the right request.
"""

import logging
import sys
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any

from pythonjsonlogger import jsonlogger

from ortoqbank.core.config import settings

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)

# Third-party loggers and the level they are held at
QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "alembic.runtime.migration": logging.INFO,
}


def bind_request_id(request_id: str) -> Token:
    return _request_id.set(request_id)


def reset_request_id(token: Token) -> None:
    _request_id.reset(token)


def current_request_id() -> str | None:
    return _request_id.get()


class RequestContextFilter(logging.Filter):
    """Copy the bound request id onto records that do not carry one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = _request_id.get()
        return True


class EventJsonFormatter(jsonlogger.JsonFormatter):
    """One JSON object per record, keyed by ``event`` instead of ``message``."""

    def add_fields(
        self, log_record: dict[str, Any], record: logging.LogRecord, message_dict: dict
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["service"] = settings.PROJECT_NAME
        log_record["env"] = settings.ENV
        log_record.setdefault("event", record.getMessage())
        if log_record.get("request_id") is None:
            log_record.pop("request_id", None)
        log_record.pop("message", None)


def build_handler(stream=None) -> logging.Handler:
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(EventJsonFormatter())
    handler.addFilter(RequestContextFilter())
    return handler


def setup_logging(level: str | None = None) -> None:
    """Route every logger through a single JSON handler on stdout."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO))
    root_logger.handlers.clear()
    root_logger.addHandler(build_handler())

    for name, logger_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(logger_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
