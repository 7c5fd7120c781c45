"""
Cache module for folder resolutions and email bodies.
Provides in-memory caching with TTL support.
"""

import time
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

_MISSING = object()


# =============================================================================
# TTL CACHE
# =============================================================================

class TTLCache:
    """
    Dictionary cache whose entries expire after a per-entry TTL.

    Args:
        clock: Returns the current time in seconds (default: time.time)
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        # {key: (value, expiry_timestamp)}
        self._entries: dict[str, tuple[Any, float]] = {}
        self._clock = clock

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached value, or default if missing or expired."""
        entry = self._entries.get(key, _MISSING)
        if entry is _MISSING:
            return default

        value, expiry = entry
        if self._clock() < expiry:
            logger.debug(f"Cache hit: {key[:50]}")
            return value

        del self._entries[key]
        return default

    def set(self, key: str, value: Any, ttl: int) -> None:
        self._entries[key] = (value, self._clock() + ttl)
        logger.debug(f"Cache set: {key[:50]} (TTL: {ttl}s)")

    def delete(self, key: str) -> bool:
        """Delete one key. Returns False if it was not cached."""
        return self._entries.pop(key, _MISSING) is not _MISSING

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every key starting with prefix and return how many went."""
        stale = [key for key in self._entries if key.startswith(prefix)]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug(f"Cache invalidated {len(stale)} entries under {prefix!r}")
        return len(stale)

    def clear(self) -> dict:
        stats = {"entries_cleared": len(self._entries)}
        self._entries = {}
        logger.info(f"Cache cleared: {stats['entries_cleared']} entries")
        return stats

    def stats(self) -> dict:
        now = self._clock()
        valid = sum(1 for _, expiry in self._entries.values() if expiry > now)
        return {
            "total_entries": len(self._entries),
            "valid_entries": valid,
            "expired_entries": len(self._entries) - valid,
        }


# Shared by the email and folder operations of one process
default_cache = TTLCache()
