from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL = 300  # seconds
DEFAULT_CAPACITY = 1000

# Passed as get(..., default=MISSING) to tell a stored None apart from absence.
MISSING: Any = object()


@dataclass
class CacheEntry(Generic[T]):
    """A cached value with its insertion time (monotonic seconds) and TTL."""

    value: T
    created_at: float
    ttl: float  # seconds; <= 0 means expired as soon as it is stored

    def is_expired(self, now: float) -> bool:
        return self.ttl <= 0 or now - self.created_at > self.ttl


@dataclass(frozen=True)
class CacheStats:
    size: int
    capacity: int


class TTLCache:
    """In-process TTL cache with a soft capacity bound.

    Expiry is lazy: entries are checked on read and swept only when the store
    is full at insertion time. Capacity is not a hard limit; if every entry is
    still live after the sweep the insert proceeds anyway.
    """

    def __init__(self, default_ttl: float = DEFAULT_TTL, capacity: int = DEFAULT_CAPACITY) -> None:
        self._default_ttl = default_ttl
        self._capacity = capacity
        self._store: dict[str, CacheEntry[Any]] = {}

    def get(self, key: str, default: Any = None) -> Any:
        """Return cached value, or default when missing or expired."""
        entry = self._store.get(key)
        if entry is None:
            return default
        if entry.is_expired(time.monotonic()):
            del self._store[key]
            return default
        return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store value with given TTL (seconds). Uses default_ttl when ttl is None."""
        if len(self._store) >= self._capacity:
            self._evict_expired()
        effective_ttl = ttl if ttl is not None else self._default_ttl
        self._store[key] = CacheEntry(value=value, created_at=time.monotonic(), ttl=effective_ttl)

    def delete(self, key: str) -> None:
        """Remove a specific key immediately. Missing keys are ignored."""
        self._store.pop(key, None)

    def clear(self) -> None:
        """Remove all cached entries."""
        self._store.clear()

    def invalidate_pattern(self, pattern: str) -> int:
        """Delete every key containing pattern as a literal substring.

        Returns the number of keys removed.
        """
        matching = [k for k in self._store if pattern in k]
        for k in matching:
            del self._store[k]
        logger.info("Invalidated %d cache entries for pattern: %s", len(matching), pattern)
        return len(matching)

    def get_stats(self) -> CacheStats:
        return CacheStats(size=len(self._store), capacity=self._capacity)

    async def with_cache(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[T]],
        ttl: float | None = None,
    ) -> T:
        """Read-through helper.

        1. Return the cached value on a hit (the fetcher is not called).
        2. Otherwise await fetcher() once, store the result and return it.

        Exceptions from the fetcher propagate unchanged and nothing is stored.
        Concurrent misses on the same key each call their own fetcher.
        """
        cached = self.get(key, MISSING)
        if cached is not MISSING:
            logger.debug("Cache hit: %s", key)
            return cached  # type: ignore[no-any-return]

        logger.debug("Cache miss: %s", key)
        data = await fetcher()
        self.set(key, data, ttl=ttl)
        return data

    def shutdown(self) -> None:
        """End the cache lifecycle, dropping every entry."""
        size = len(self._store)
        self._store.clear()
        logger.info("Cache shut down, %d entries dropped", size)

    def _evict_expired(self) -> None:
        """Remove all expired entries from the store."""
        now = time.monotonic()
        expired_keys = [k for k, entry in self._store.items() if entry.is_expired(now)]
        for k in expired_keys:
            del self._store[k]
        if expired_keys:
            logger.debug("Evicted %d expired cache entries", len(expired_keys))

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        entry = self._store.get(key)  # type: ignore[arg-type]
        return entry is not None and not entry.is_expired(time.monotonic())
