"""PostgreSQL implementation of the cache store."""

from __future__ import annotations

import re
from typing import List, Optional

import asyncpg

from .base import Clock, CacheStore

_NAMESPACE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class PostgresCacheStore(CacheStore):
    """Persist cache entries using PostgreSQL."""

    medium_errors = (asyncpg.PostgresError, OSError)

    def __init__(
        self, dsn: str, namespace: str = "cache", clock: Optional[Clock] = None
    ) -> None:
        if not _NAMESPACE_RE.match(namespace):
            raise ValueError(f"Invalid namespace for Postgres table: {namespace!r}")
        super().__init__(namespace=namespace, clock=clock)
        self._dsn = dsn
        self._table = f"migraflow_{namespace}"
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self._table} (
                key TEXT PRIMARY KEY,
                entry JSONB NOT NULL
            )
            """
        )

    # ------------------------------------------------------------------
    async def _read(self, key: str) -> Optional[str]:
        conn = await self._connect()
        try:
            return await conn.fetchval(
                f"SELECT entry::text FROM {self._table} WHERE key = $1", key
            )
        finally:
            await conn.close()

    async def _write(self, key: str, raw: str) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                f"""
                INSERT INTO {self._table} (key, entry) VALUES ($1, $2::jsonb)
                ON CONFLICT (key) DO UPDATE SET entry = EXCLUDED.entry
                """,
                key,
                raw,
            )
        finally:
            await conn.close()

    async def _delete(self, key: str) -> None:
        conn = await self._connect()
        try:
            await conn.execute(f"DELETE FROM {self._table} WHERE key = $1", key)
        finally:
            await conn.close()

    async def _clear(self) -> None:
        conn = await self._connect()
        try:
            await conn.execute(f"DELETE FROM {self._table}")
        finally:
            await conn.close()

    async def _keys(self) -> List[str]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(f"SELECT key FROM {self._table} ORDER BY key")
        finally:
            await conn.close()
        return [r["key"] for r in rows]
