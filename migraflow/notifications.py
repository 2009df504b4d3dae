"""Per-phase completion notices kept for the current session."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, TypeAdapter

from .cache.base import CacheStore
from .constants import PHASE_NOTIFICATIONS_KEY

logger = logging.getLogger(__name__)


class PhaseNotification(BaseModel):
    """A phase finished for a repository."""

    id: str
    phase_number: int
    phase_name: str
    repository: str
    success: bool = True
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


_NOTIFICATION_LIST = TypeAdapter(List[PhaseNotification])


class PhaseNotificationCenter:
    """Newest-first list of phase notices, optionally mirrored to a store."""

    def __init__(self, store: Optional[CacheStore] = None) -> None:
        self._store = store
        self._notifications: List[PhaseNotification] = []
        self._loaded = store is None

    async def load(self) -> None:
        """Restore notifications persisted by an earlier session."""
        if self._store is not None:
            raw = await self._store.get(PHASE_NOTIFICATIONS_KEY)
            if raw:
                self._notifications = _NOTIFICATION_LIST.validate_python(raw)
        self._loaded = True

    async def _ensure_loaded(self) -> None:
        # earlier sessions may have stored notices for other repositories
        if not self._loaded:
            await self.load()

    def list(self) -> List[PhaseNotification]:
        return list(self._notifications)

    async def add(
        self,
        phase_number: int,
        phase_name: str,
        repository: str,
        success: bool = True,
    ) -> PhaseNotification:
        await self._ensure_loaded()
        notification = PhaseNotification(
            id=f"{repository}-phase-{phase_number}-{int(time.time() * 1000)}",
            phase_number=phase_number,
            phase_name=phase_name,
            repository=repository,
            success=success,
        )
        self._notifications.insert(0, notification)
        await self._persist()
        return notification

    async def remove(self, notification_id: str) -> None:
        await self._ensure_loaded()
        self._notifications = [n for n in self._notifications if n.id != notification_id]
        await self._persist()

    async def clear_repository(self, repository: str) -> None:
        await self._ensure_loaded()
        self._notifications = [
            n for n in self._notifications if n.repository != repository
        ]
        await self._persist()

    async def clear(self) -> None:
        self._notifications = []
        await self._persist()

    async def _persist(self) -> None:
        if self._store is None:
            return
        await self._store.set(
            PHASE_NOTIFICATIONS_KEY,
            _NOTIFICATION_LIST.dump_python(self._notifications, mode="json"),
        )
