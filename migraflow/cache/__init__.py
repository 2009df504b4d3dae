"""Durable cache layer for migraflow workflows."""

from __future__ import annotations

import os
from typing import Optional
from urllib.parse import urlparse

from ..config import MigraflowConfig, load_config
from .base import CacheStore
from .inmemory import InMemoryCacheStore
from .models import CacheEntry
from .sqlite import SQLiteCacheStore
from .workflow import WorkflowCache

_store_instance: CacheStore | None = None


def get_cache_store(
    url: Optional[str] = None, config: Optional[MigraflowConfig] = None
) -> CacheStore:
    """Factory function to obtain the cache store.

    The backend is selected based on ``url`` which can be provided
    explicitly, via environment variable ``MIGRAFLOW_CACHE_URL``, or from
    loaded configuration. When nothing is configured an in-memory store is
    returned.
    """

    global _store_instance
    if _store_instance is not None and url is None and config is None:
        return _store_instance

    config = config or load_config()
    namespace = config.cache.namespace
    url = url or os.getenv("MIGRAFLOW_CACHE_URL") or config.cache.url

    if not url or url.startswith("memory://"):
        _store_instance = InMemoryCacheStore(namespace=namespace)
        return _store_instance

    if url.startswith("sqlite://"):
        path = url.replace("sqlite://", "", 1)
        _store_instance = SQLiteCacheStore(path, namespace=namespace)
    elif url.startswith("postgres://") or url.startswith("postgresql://"):
        from .postgres import PostgresCacheStore

        _store_instance = PostgresCacheStore(url, namespace=namespace)
    elif url.startswith("redis://"):
        from .redis import RedisCacheStore

        parsed = urlparse(url)
        db = parsed.path.lstrip("/")
        _store_instance = RedisCacheStore(
            host=parsed.hostname or "localhost",
            port=parsed.port or 6379,
            db=int(db) if db else 0,
            password=parsed.password,
            namespace=namespace,
        )
    else:
        raise ValueError(f"Unsupported cache backend: {url}")

    return _store_instance


def get_workflow_cache(
    url: Optional[str] = None, config: Optional[MigraflowConfig] = None
) -> WorkflowCache:
    """Return a ``WorkflowCache`` over the configured store."""
    store = get_cache_store(url, config)
    return WorkflowCache(store, (config or load_config()).cache)


__all__ = [
    "CacheEntry",
    "CacheStore",
    "InMemoryCacheStore",
    "SQLiteCacheStore",
    "WorkflowCache",
    "get_cache_store",
    "get_workflow_cache",
]
