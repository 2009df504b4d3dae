"""Redis implementation of the cache store."""

from __future__ import annotations

from typing import Any, List, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from .base import Clock, CacheStore


class RedisCacheStore(CacheStore):
    """Redis-backed cache shared across processes.

    Expiration is tracked in the entry itself rather than with Redis EXPIRE
    so that ``list_keys`` still reports expired keys until they are read.
    """

    medium_errors = (RedisError, OSError)

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
        namespace: str = "cache",
        clock: Optional[Clock] = None,
    ) -> None:
        super().__init__(namespace=namespace, clock=clock)
        self.host = host
        self.port = port
        self.db = db
        self.password = password
        self._prefix = f"migraflow:{namespace}:"
        self._redis: Optional[Any] = None

    async def connect(self) -> None:
        """Connect to Redis."""
        self._redis = redis.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password,
            decode_responses=True,
        )
        await self._redis.ping()

    async def close(self) -> None:
        """Disconnect from Redis."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def _client(self) -> Any:
        if not self._redis:
            await self.connect()
        return self._redis

    # ------------------------------------------------------------------
    async def _read(self, key: str) -> Optional[str]:
        client = await self._client()
        return await client.get(self._prefix + key)

    async def _write(self, key: str, raw: str) -> None:
        client = await self._client()
        await client.set(self._prefix + key, raw)

    async def _delete(self, key: str) -> None:
        client = await self._client()
        await client.delete(self._prefix + key)

    async def _clear(self) -> None:
        client = await self._client()
        keys = [k async for k in client.scan_iter(match=self._prefix + "*")]
        if keys:
            await client.delete(*keys)

    async def _keys(self) -> List[str]:
        client = await self._client()
        return sorted(
            [k[len(self._prefix):] async for k in client.scan_iter(match=self._prefix + "*")]
        )
