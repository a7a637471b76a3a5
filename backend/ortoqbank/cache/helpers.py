"""Cache key helpers and invalidation hooks."""

from __future__ import annotations

from ortoqbank.cache.redis import delete


def taxonomy_hierarchy_key() -> str:
    return "taxonomy:hierarchy:v1"


def invalidate_taxonomy_cache() -> None:
    # Every taxonomy write drops the whole materialised tree; writes are rare.
    delete(taxonomy_hierarchy_key())
