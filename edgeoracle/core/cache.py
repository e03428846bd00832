"""In-memory TTL caches for upstream calls.

Caches sit in front of expensive or rate-limited upstream calls (model
inference, market snapshot fetches). Keys are derived from the call's
semantically relevant inputs, never from wall-clock time or request
ids, so repeated evaluations of an unchanged market reuse the result.

Caches are explicit instances: create them once per process and pass
them to the components that need them.
"""

from __future__ import annotations

import asyncio
import hashlib
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Sequence, TypeVar

from .utils import as_float, get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """Single cache entry with expiration."""

    value: T
    expires_at: float
    created_at: float = field(default_factory=time.time)

    def is_expired(self, now: float) -> bool:
        """Check if entry has expired at the given time."""
        return now >= self.expires_at


class TTLCache(Generic[T]):
    """Concurrency-safe TTL cache with LRU eviction.

    Usage:
        cache = TTLCache[ModelEstimate](default_ttl=180)

        # Store a value
        await cache.set("key", estimate)

        # Retrieve (returns None if expired)
        estimate = await cache.get("key")
    """

    def __init__(
        self,
        default_ttl: float = 60.0,
        max_size: int = 1000,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize cache.

        Args:
            default_ttl: Default time-to-live in seconds.
            max_size: Maximum number of entries (LRU eviction when exceeded).
            clock: Time source in seconds.
        """
        self.default_ttl = default_ttl
        self.max_size = max_size
        self._clock = clock

        self._cache: OrderedDict[str, CacheEntry[T]] = OrderedDict()
        self._lock = asyncio.Lock()

        # Statistics
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._cache)

    async def get(self, key: str) -> T | None:
        """Get value from cache.

        Args:
            key: Cache key.

        Returns:
            Cached value or None if not found/expired.
        """
        async with self._lock:
            entry = self._cache.get(key)

            if entry is None:
                self._misses += 1
                return None

            if entry.is_expired(self._clock()):
                del self._cache[key]
                self._misses += 1
                return None

            # Update access order for LRU
            self._cache.move_to_end(key)
            self._hits += 1
            return entry.value

    async def set(
        self,
        key: str,
        value: T,
        ttl: float | None = None,
    ) -> None:
        """Store value in cache.

        Args:
            key: Cache key.
            value: Value to store.
            ttl: Time-to-live in seconds (uses default if None).
        """
        ttl = ttl if ttl is not None else self.default_ttl

        async with self._lock:
            if key in self._cache:
                del self._cache[key]

            # Evict if at max capacity
            while len(self._cache) >= self.max_size and self._cache:
                self._cache.popitem(last=False)

            now = self._clock()
            self._cache[key] = CacheEntry(
                value=value,
                expires_at=now + ttl,
                created_at=now,
            )

    async def delete(self, key: str) -> bool:
        """Delete a key from cache.

        Returns:
            True if key was deleted, False if not found.
        """
        async with self._lock:
            return self._cache.pop(key, None) is not None

    async def has(self, key: str) -> bool:
        """Check if key exists and is not expired."""
        return await self.get(key) is not None

    async def clear(self) -> int:
        """Clear all entries from cache.

        Returns:
            Number of entries cleared.
        """
        async with self._lock:
            count = len(self._cache)
            self._cache.clear()
            return count

    async def cleanup_expired(self) -> int:
        """Remove all expired entries.

        Returns:
            Number of entries removed.
        """
        async with self._lock:
            now = self._clock()
            expired_keys = [
                key for key, entry in self._cache.items()
                if entry.is_expired(now)
            ]

            for key in expired_keys:
                del self._cache[key]

            return len(expired_keys)

    async def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Awaitable[T]],
        ttl: float | None = None,
    ) -> T:
        """Return the cached value or compute, store and return it.

        The lock is not held while computing, so concurrent misses on
        the same key may both call upstream; the last write wins.
        Exceptions from compute propagate and nothing is cached.
        """
        cached_value = await self.get(key)
        if cached_value is not None:
            return cached_value

        value = await compute()
        if value is not None:
            await self.set(key, value, ttl=ttl)
        return value

    def get_stats(self) -> dict:
        """Get cache statistics."""
        total_requests = self._hits + self._misses
        hit_rate = self._hits / total_requests if total_requests > 0 else 0

        return {
            "entries": len(self._cache),
            "max_size": self.max_size,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": hit_rate,
            "default_ttl": self.default_ttl,
        }


def _digest(parts: Sequence[Any]) -> str:
    key_data = "__".join(str(part) for part in parts)
    return hashlib.md5(key_data.encode()).hexdigest()


def analysis_cache_key(
    market_id: str,
    title: str,
    outcomes: Sequence[str],
    probability: float,
    volume: float = 0.0,
) -> str:
    """Deterministic key for a model inference call.

    Probability is rounded to 4 decimals and volume to cents, so noise
    below that resolution does not force a new inference.
    """
    return _digest([
        market_id,
        title,
        "|".join(str(o) for o in outcomes or ()),
        f"{as_float(probability, 0.0):.4f}",
        f"{as_float(volume, 0.0):.2f}",
    ])


def snapshot_cache_key(source: str, limit: int) -> str:
    """Deterministic key for a market snapshot fetch."""
    return _digest([source, limit])


class AnalysisCache:
    """Pair of TTL caches for the two upstream boundaries.

    Market snapshots change quickly and get a short TTL. Inference
    results are the expensive, rate-limited resource and live longer.

    Usage:
        cache = AnalysisCache(snapshot_ttl=30, analysis_ttl=180)
        key = analysis_cache_key(market_id, title, outcomes, price, volume)
        estimate = await cache.analyses.get_or_compute(key, call_model)
    """

    def __init__(
        self,
        snapshot_ttl: float = 30.0,
        analysis_ttl: float = 180.0,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.time,
    ):
        self.snapshots: TTLCache[Any] = TTLCache(
            default_ttl=snapshot_ttl, max_size=max_entries, clock=clock
        )
        self.analyses: TTLCache[Any] = TTLCache(
            default_ttl=analysis_ttl, max_size=max_entries, clock=clock
        )

    @classmethod
    def from_config(cls, config) -> AnalysisCache:
        """Build from a CacheConfig."""
        return cls(
            snapshot_ttl=config.snapshot_ttl_seconds,
            analysis_ttl=config.analysis_ttl_seconds,
            max_entries=config.max_entries,
        )

    async def clear(self) -> int:
        return await self.snapshots.clear() + await self.analyses.clear()

    def get_stats(self) -> dict:
        """Get statistics for both caches."""
        return {
            "snapshots": self.snapshots.get_stats(),
            "analyses": self.analyses.get_stats(),
        }
