"""
Edge Cache Layer

URL-keyed response cache in front of the durable store.

The cache is non-authoritative: any entry may vanish at any time and a miss
is always safe. Entries live for the max-age their response declares, or
for an explicit ttl given at put() time.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional
import logging
import time

from ..contracts import CachedResponse, CacheError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    url: str
    response: CachedResponse
    created_at: float
    expires_at: float


@dataclass(frozen=True)
class CacheStats:
    total_entries: int
    hit_count: int
    miss_count: int
    eviction_count: int
    hit_rate: float
    computed_at: datetime


class EdgeCache:
    """Abstract edge cache interface."""

    async def match(self, url: str) -> Optional[CachedResponse]:
        """Return the live response cached for url, or None."""
        raise NotImplementedError

    async def put(self, url: str, response: CachedResponse, ttl: Optional[int] = None) -> None:
        """Cache response for url. Uncacheable responses are ignored."""
        raise NotImplementedError

    def get_stats(self) -> CacheStats:
        raise NotImplementedError


class InMemoryEdgeCache(EdgeCache):
    """In-process edge cache with TTL expiry and oldest-first eviction."""

    def __init__(
        self,
        max_entries: int = 10000,
        clock: Callable[[], float] = time.monotonic
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self._max_entries = max_entries
        self._clock = clock
        self._cache: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    async def match(self, url: str) -> Optional[CachedResponse]:
        entry = self._cache.get(url)

        if entry is None:
            self._misses += 1
            return None

        if self._clock() >= entry.expires_at:
            del self._cache[url]
            self._misses += 1
            return None

        self._hits += 1
        return entry.response

    async def put(self, url: str, response: CachedResponse, ttl: Optional[int] = None) -> None:
        lifetime = ttl if ttl is not None else response.max_age
        if not lifetime or lifetime <= 0:
            logger.debug("Not caching %s: no lifetime", url)
            return

        if url not in self._cache and len(self._cache) >= self._max_entries:
            self._evict_oldest()

        now = self._clock()
        self._cache[url] = CacheEntry(
            url=url,
            response=response,
            created_at=now,
            expires_at=now + lifetime
        )

    def _evict_oldest(self):
        """Evict oldest entry."""
        if not self._cache:
            return

        oldest_url = min(self._cache.keys(), key=lambda k: self._cache[k].created_at)
        del self._cache[oldest_url]
        self._evictions += 1

    def __len__(self) -> int:
        return len(self._cache)

    def get_stats(self) -> CacheStats:
        total = self._hits + self._misses
        hit_rate = self._hits / total if total > 0 else 0.0

        return CacheStats(
            total_entries=len(self._cache),
            hit_count=self._hits,
            miss_count=self._misses,
            eviction_count=self._evictions,
            hit_rate=hit_rate,
            computed_at=datetime.now(timezone.utc)
        )


__all__ = ["EdgeCache", "InMemoryEdgeCache", "CacheEntry", "CacheStats", "CacheError"]
