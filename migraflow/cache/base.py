"""Base cache store interface for migraflow."""

from __future__ import annotations

import abc
import json
import logging
import time
from typing import Any, Awaitable, Callable, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import CacheFailure, SerializationError
from .models import CacheEntry

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


class CacheStore(metaclass=abc.ABCMeta):
    """Namespaced, TTL-aware key/value store.

    Subclasses implement the raw primitives against a concrete medium; this
    class owns serialization and expiration. Expiration is enforced lazily:
    ``get`` and ``has`` evict entries they observe as expired, while
    ``list_keys`` reports every stored key.
    """

    # Exceptions raised by the medium that are reported as ``CacheFailure``.
    medium_errors: Tuple[Type[BaseException], ...] = (OSError,)

    def __init__(self, namespace: str = "cache", clock: Optional[Clock] = None) -> None:
        self.namespace = namespace
        self._clock: Clock = clock or time.time

    async def connect(self) -> None:
        """Open the underlying medium (no-op by default)."""
        pass

    async def close(self) -> None:
        """Release the underlying medium (no-op by default)."""
        pass

    async def __aenter__(self) -> "CacheStore":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Medium primitives
    @abc.abstractmethod
    async def _read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    @abc.abstractmethod
    async def _write(self, key: str, raw: str) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def _delete(self, key: str) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def _clear(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def _keys(self) -> List[str]:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Public API
    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store ``value`` under ``key``, replacing any existing entry."""
        if ttl is not None and ttl <= 0:
            raise ValueError("ttl must be positive or None")
        raw = self._serialize(key, value, ttl)
        await self._guard(key, self._write(key, raw))

    async def get(self, key: str) -> Any:
        """Return the live value for ``key`` or ``None``."""
        entry = await self._load(key)
        return None if entry is None else entry.value

    async def get_model(self, key: str, model: Type[T]) -> Optional[T]:
        """Return the value for ``key`` validated as ``model``.

        A stored value that no longer validates is evicted and treated as
        absent.
        """
        value = await self.get(key)
        if value is None:
            return None
        try:
            return model.model_validate(value)  # type: ignore[attr-defined]
        except ValidationError as exc:
            logger.warning(f"Discarding invalid cache entry {key!r}: {exc}")
            await self.remove(key)
            return None

    async def has(self, key: str) -> bool:
        return await self._load(key) is not None

    async def remove(self, key: str) -> None:
        await self._guard(key, self._delete(key))

    async def clear(self) -> None:
        await self._guard(None, self._clear())

    async def list_keys(self) -> List[str]:
        return await self._guard(None, self._keys())

    async def clear_expired(self) -> int:
        """Delete every entry that is no longer live. Returns the count."""
        removed = 0
        for key in await self.list_keys():
            raw = await self._guard(key, self._read(key))
            if raw is None:
                continue
            entry = self._deserialize(key, raw)
            if entry is None or not entry.is_live(self._clock()):
                await self.remove(key)
                removed += 1
        if removed:
            logger.debug(f"Swept {removed} expired entries from {self.namespace!r}")
        return removed

    # ------------------------------------------------------------------
    # Helpers
    async def _load(self, key: str) -> Optional[CacheEntry]:
        raw = await self._guard(key, self._read(key))
        if raw is None:
            logger.debug(f"Cache miss for {key!r}")
            return None
        entry = self._deserialize(key, raw)
        if entry is None:
            await self.remove(key)
            return None
        if not entry.is_live(self._clock()):
            logger.debug(f"Evicting expired cache entry {key!r}")
            await self.remove(key)
            return None
        return entry

    def _serialize(self, key: str, value: Any, ttl: Optional[float]) -> str:
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json")
        entry = {"value": value, "stored_at": self._clock(), "ttl": ttl}
        try:
            return json.dumps(entry, allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise SerializationError(key, str(exc)) from exc

    def _deserialize(self, key: str, raw: str) -> Optional[CacheEntry]:
        try:
            return CacheEntry.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning(f"Corrupt cache entry {key!r} will be dropped: {exc}")
            return None

    async def _guard(self, key: Optional[str], op: Awaitable[T]) -> T:
        try:
            return await op
        except self.medium_errors as exc:
            target = f"key {key!r}" if key is not None else f"namespace {self.namespace!r}"
            raise CacheFailure(f"Cache medium error for {target}: {exc}", key=key) from exc
