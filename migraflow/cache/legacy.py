"""Cleanup of keys left behind by older clients."""

from __future__ import annotations

import logging
from typing import Iterable, List

from ..constants import DEPRECATED_KEYS, UI_PREFERENCES_KEY
from .base import CacheStore

logger = logging.getLogger(__name__)


async def purge_deprecated_keys(
    store: CacheStore, keys: Iterable[str] = DEPRECATED_KEYS
) -> List[str]:
    """Remove token-era keys from ``store``. Returns the keys removed."""
    stored = set(await store.list_keys())
    removed = []
    for key in keys:
        if key in stored:
            await store.remove(key)
            removed.append(key)
            logger.info(f"Cleaned up deprecated key: {key}")
    return removed


async def clear_all_cached_data(
    store: CacheStore, keep: Iterable[str] = (UI_PREFERENCES_KEY,)
) -> List[str]:
    """Remove every entry except ``keep``. Returns the keys removed."""
    keep = set(keep)
    removed = []
    for key in await store.list_keys():
        if key not in keep:
            await store.remove(key)
            removed.append(key)
    logger.info(f"Cleared {len(removed)} cached entries")
    return removed
