"""Bounded in-memory result cache with TTL expiry."""

import json
import time
from collections import OrderedDict
from typing import Any, Callable, Optional

import structlog

from .config import CACHE_MAX_ENTRIES, CACHE_TTL_SECONDS

logger = structlog.get_logger()


def make_cache_key(endpoint: str, params: Optional[dict] = None) -> str:
    """Build a cache key from an endpoint and its normalized parameters."""
    return f"{endpoint}:{json.dumps(params or {}, sort_keys=True)}"


class CacheEntry:
    """Cache entry stamped with the time it was stored."""

    def __init__(
        self,
        key: str,
        payload: Any,
        stored_at: float,
        sport_key: Optional[str] = None,
    ):
        self.key = key
        self.payload = payload
        self.stored_at = stored_at
        self.sport_key = sport_key

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        return now - self.stored_at > ttl_seconds


class TTLCache:
    """
    Result cache owned by a single OddsClient.

    Entries expire lazily on lookup. When full, the oldest entry is evicted.
    Entries remember the sport they belong to so that a sport's entries can
    be dropped without touching the others.

    Every clear bumps a global generation and every sport invalidation bumps
    that sport's generation. A fetch that started under an older generation
    passes it to ``set`` and its result is discarded.
    """

    def __init__(
        self,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        max_entries: int = CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._generation = 0
        self._sport_generations: dict[str, int] = {}
        self.logger = logger.bind(component="cache")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[Any]:
        """Get cached payload if not expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.is_expired(self._clock(), self.ttl_seconds):
            del self._entries[key]
            return None

        return entry.payload

    def generation(self, sport_key: Optional[str] = None) -> tuple[int, int]:
        """Snapshot to hand back to ``set`` once a fetch completes."""
        return self._generation, self._sport_generations.get(sport_key, 0)

    def set(
        self,
        key: str,
        payload: Any,
        sport_key: Optional[str] = None,
        generation: Optional[tuple[int, int]] = None,
    ) -> bool:
        """Store a payload, evicting the oldest entry when full. False if stale."""
        if generation is not None and generation != self.generation(sport_key):
            self.logger.debug("Discarded stale result", key=key)
            return False

        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.max_entries:
            self._entries.popitem(last=False)

        self._entries[key] = CacheEntry(key, payload, self._clock(), sport_key)
        return True

    def invalidate_sport(self, sport_key: str) -> int:
        """Drop every entry fetched for a sport. Returns how many were dropped."""
        self._sport_generations[sport_key] = self._sport_generations.get(sport_key, 0) + 1
        stale = [
            key for key, entry in self._entries.items()
            if entry.sport_key == sport_key
        ]
        for key in stale:
            del self._entries[key]

        if stale:
            self.logger.debug("Invalidated sport entries", sport=sport_key, count=len(stale))
        return len(stale)

    def clear(self) -> None:
        """Clear all cached data."""
        self._generation += 1
        self._entries.clear()
