"""Redis cache helpers (fail-open).

Any Redis error is logged and swallowed: a cache miss is always a valid
answer, so endpoint responses never depend on Redis being up.
"""

from __future__ import annotations

import json
from typing import Any

from redis.exceptions import RedisError

from ortoqbank.core.logging import get_logger
from ortoqbank.core.redis_client import get_redis_client

logger = get_logger(__name__)


def get_json(key: str) -> Any | None:
    client = get_redis_client()
    if client is None:
        return None
    try:
        raw = client.get(key)
        if not raw:
            return None
        return json.loads(raw)
    except (RedisError, ValueError) as e:
        logger.warning("redis_get_json_failed", extra={"key": key, "error": str(e)})
        return None


def set_json(key: str, value: Any, ttl_seconds: int) -> bool:
    client = get_redis_client()
    if client is None:
        return False
    try:
        client.setex(key, int(ttl_seconds), json.dumps(value))
        return True
    except (RedisError, TypeError) as e:
        logger.warning("redis_set_json_failed", extra={"key": key, "error": str(e)})
        return False


def delete(key: str) -> None:
    client = get_redis_client()
    if client is None:
        return
    try:
        client.delete(key)
    except RedisError as e:
        logger.warning("redis_delete_failed", extra={"key": key, "error": str(e)})
