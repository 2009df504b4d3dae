"""Data models for cached entries."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel


class CacheEntry(BaseModel):
    """A stored value with the time it was written and an optional TTL."""

    value: Any = None
    stored_at: float
    ttl: Optional[float] = None

    def is_live(self, now: float) -> bool:
        return self.ttl is None or now - self.stored_at < self.ttl
