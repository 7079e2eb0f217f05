"""Keyed time-to-live cache for fetched telemetry.

Each data source gets its own ``TTLCache`` with its own TTL. Freshness is a
pure function of elapsed time: an entry is served iff
``now - fetched_at < ttl``. Reads never extend an entry's life, and a stale
entry behaves exactly like a missing one.

Usage::

    cache = TTLCache(ttl=300, name="region")
    data = cache.get("oceania_servers")
    if data is None:
        data = await scrape()
        cache.set("oceania_servers", data)
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A cached value and the wall-clock time it was stored."""

    key: str
    data: Any
    fetched_at: float


class TTLCache:
    """In-memory ``key -> CacheEntry`` map with a fixed TTL.

    Entries are replaced wholesale on ``set``; there is no partial update.
    Stale entries are left in place until overwritten or cleared so that
    ``stats()`` still reports them.
    """

    def __init__(
        self,
        ttl: float,
        name: str = "cache",
        clock: Callable[[], float] = time.time,
    ):
        self._ttl = ttl
        self._name = name
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    @property
    def ttl(self) -> float:
        """Time-to-live in seconds."""
        return self._ttl

    def is_valid(self, key: str) -> bool:
        """Whether *key* holds an entry younger than the TTL."""
        entry = self._entries.get(key)
        if entry is None:
            return False
        return self._clock() - entry.fetched_at < self._ttl

    def get(self, key: str) -> Any | None:
        """Return cached data for *key*, or None when missing or stale."""
        if not self.is_valid(key):
            return None
        logger.debug("Using cached %s data for %s", self._name, key)
        return self._entries[key].data

    def set(self, key: str, data: Any) -> None:
        """Store *data* under *key* with a fresh timestamp."""
        self._entries[key] = CacheEntry(key=key, data=data, fetched_at=self._clock())
        logger.debug("Cached %s data for %s", self._name, key)

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def stats(self) -> dict:
        """Return ``{size, keys, oldest_entry_timestamp}``.

        ``oldest_entry_timestamp`` is None for an empty cache.
        """
        return {
            "size": len(self._entries),
            "keys": list(self._entries),
            "oldest_entry_timestamp": min(
                (e.fetched_at for e in self._entries.values()), default=None
            ),
        }
