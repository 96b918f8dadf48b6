"""In-memory analysis cache with TTL support."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from inbox_sage.core.datetime_utils import utc_now
from inbox_sage.core.models import AnalysisResult

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class CacheEntry:
    """Cached analysis with its expiration time."""

    value: AnalysisResult
    stored_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """Check if the entry has expired at ``now``."""
        return now > self.expires_at


class InMemoryAnalysisCache:
    """Analysis cache keyed by message id, with TTL and size-based eviction."""

    def __init__(
        self,
        *,
        ttl_seconds: int = 24 * 60 * 60,
        max_entries: int | None = 500,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._max_entries = max_entries
        self._clock = clock
        self._cache: dict[str, CacheEntry] = {}

    async def get(self, message_id: str) -> AnalysisResult | None:
        """Return the cached analysis if present and not expired."""
        entry = self._cache.get(message_id)
        if entry and not entry.is_expired(self._clock()):
            LOGGER.debug("Cache hit for message: %s", message_id)
            return entry.value

        if entry:
            LOGGER.debug("Cache expired for message: %s", message_id)
            del self._cache[message_id]

        LOGGER.debug("Cache miss for message: %s", message_id)
        return None

    async def set(self, message_id: str, result: AnalysisResult) -> None:
        """Store ``result``, evicting the oldest entry when full."""
        now = self._clock()
        self._cache.pop(message_id, None)
        self._cache[message_id] = CacheEntry(result, now, now + self._ttl)
        if self._max_entries is not None:
            while len(self._cache) > self._max_entries:
                oldest = next(iter(self._cache))
                del self._cache[oldest]
                LOGGER.debug("Evicted cached analysis for message: %s", oldest)
        LOGGER.debug("Cache set for message: %s", message_id)

    async def invalidate(self, message_id: str | None = None) -> int:
        """Drop one entry, or every entry when ``message_id`` is ``None``.

        Returns the number of entries removed.
        """
        if message_id is not None:
            removed = 0 if self._cache.pop(message_id, None) is None else 1
            LOGGER.info("Invalidated %d cache entries for %s", removed, message_id)
            return removed

        count = len(self._cache)
        self._cache.clear()
        LOGGER.info("Invalidated all %d cache entries", count)
        return count

    async def entries(self) -> list[AnalysisResult]:
        """Return every live analysis, most recently stored first."""
        now = self._clock()
        # ``set`` re-inserts, so dict order is storage order.
        return [
            entry.value
            for entry in reversed(self._cache.values())
            if not entry.is_expired(now)
        ]

    async def cleanup_expired(self) -> int:
        """Remove all expired entries."""
        now = self._clock()
        expired_keys = [key for key, entry in self._cache.items() if entry.is_expired(now)]
        for key in expired_keys:
            del self._cache[key]

        if expired_keys:
            LOGGER.debug("Cleaned up %d expired cache entries", len(expired_keys))

        return len(expired_keys)

    def size(self) -> int:
        """Get current cache size."""
        return len(self._cache)


__all__ = ["CacheEntry", "InMemoryAnalysisCache"]
