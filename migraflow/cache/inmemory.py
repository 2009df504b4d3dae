"""In-memory implementation of the cache store."""

from __future__ import annotations

from typing import Dict, List, Optional

from .base import Clock, CacheStore


class InMemoryCacheStore(CacheStore):
    """Store cache entries in local memory.

    Useful for tests or when no durable medium is configured. Data is not
    persisted across process restarts.
    """

    def __init__(self, namespace: str = "cache", clock: Optional[Clock] = None) -> None:
        super().__init__(namespace=namespace, clock=clock)
        self._entries: Dict[str, str] = {}

    async def _read(self, key: str) -> Optional[str]:
        return self._entries.get(key)

    async def _write(self, key: str, raw: str) -> None:
        self._entries[key] = raw

    async def _delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def _clear(self) -> None:
        self._entries.clear()

    async def _keys(self) -> List[str]:
        return list(self._entries)
