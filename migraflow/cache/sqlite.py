"""SQLite implementation of the cache store."""

from __future__ import annotations

import asyncio
import re
import sqlite3
import threading
from pathlib import Path
from typing import Any, List, Optional

from .base import Clock, CacheStore

_NAMESPACE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SQLiteCacheStore(CacheStore):
    """Persist cache entries in a local SQLite file.

    Each namespace maps to its own table so several stores can share one
    database file without key collisions.
    """

    medium_errors = (sqlite3.Error, OSError)

    def __init__(
        self,
        db_path: str | Path,
        namespace: str = "cache",
        clock: Optional[Clock] = None,
    ) -> None:
        if not _NAMESPACE_RE.match(namespace):
            raise ValueError(f"Invalid namespace for SQLite table: {namespace!r}")
        super().__init__(namespace=namespace, clock=clock)
        self.db_path = str(db_path)
        self._table = f"kv_{namespace}"
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        self._execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self._table} (
                key TEXT PRIMARY KEY,
                entry TEXT NOT NULL
            )
            """
        )

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            self._conn.commit()

    def _fetchone(self, query: str, *params: Any) -> Optional[tuple]:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> List[tuple]:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchall()

    # ------------------------------------------------------------------
    # Medium primitives
    async def _read(self, key: str) -> Optional[str]:
        row = await asyncio.to_thread(
            self._fetchone, f"SELECT entry FROM {self._table} WHERE key = ?", key
        )
        return row[0] if row else None

    async def _write(self, key: str, raw: str) -> None:
        await asyncio.to_thread(
            self._execute,
            f"INSERT OR REPLACE INTO {self._table} (key, entry) VALUES (?, ?)",
            key,
            raw,
        )

    async def _delete(self, key: str) -> None:
        await asyncio.to_thread(
            self._execute, f"DELETE FROM {self._table} WHERE key = ?", key
        )

    async def _clear(self) -> None:
        await asyncio.to_thread(self._execute, f"DELETE FROM {self._table}")

    async def _keys(self) -> List[str]:
        rows = await asyncio.to_thread(
            self._fetchall, f"SELECT key FROM {self._table} ORDER BY key"
        )
        return [r[0] for r in rows]

    async def close(self) -> None:
        await asyncio.to_thread(self._conn.close)
