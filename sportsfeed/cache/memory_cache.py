"""
In-process feed cache.

Entries are replaced wholesale on every refresh and never evicted; staleness
is judged by callers against a TTL. Memory therefore grows with the number of
distinct (topic, parameter-set) combinations ever requested.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from sportsfeed.logging import get_logger

logger = get_logger("cache")

Record = dict[str, Any]
Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry:
    payload: tuple[Record, ...]
    fetched_at: float

    def age(self, now: float) -> float:
        return now - self.fetched_at

    @property
    def records(self) -> list[Record]:
        return list(self.payload)


def is_fresh(entry: CacheEntry, ttl: float, now: float) -> bool:
    """An entry is fresh while its age is strictly below the TTL."""
    return entry.age(now) < ttl


class FeedCache:
    """
    Key to CacheEntry store.

    Usage:
        cache = FeedCache()
        cache.put(build_cache_key("football"), records)
        entry = cache.get(build_cache_key("football"))
        if entry and cache.is_fresh(entry, ttl=60):
            return entry.records
    """

    def __init__(self, clock: Clock = time.time):
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def put(self, key: str, payload: Sequence[Record]) -> CacheEntry:
        """Replace the entry at ``key`` and stamp it with the current time."""
        entry = CacheEntry(payload=tuple(payload), fetched_at=self._clock())
        self._entries[key] = entry
        logger.debug("cache_put", key=key, records=len(entry.payload))
        return entry

    def is_fresh(self, entry: CacheEntry, ttl: float) -> bool:
        return is_fresh(entry, ttl, self._clock())

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> dict[str, Any]:
        """Entry count and age spread, for the status endpoint."""
        now = self._clock()
        ages = [entry.age(now) for entry in self._entries.values()]
        return {
            "entries": len(ages),
            "oldest_age_seconds": round(max(ages), 3) if ages else None,
            "newest_age_seconds": round(min(ages), 3) if ages else None,
        }
