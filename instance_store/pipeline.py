"""
Instance Store Engine

Orchestrates the ingest and retrieval pipelines over a durable store and an
edge cache.

INGEST FLOW:
============
1. Parse JSON                 -> 400 Invalid JSON
2. Validate schema            -> 400 joined reasons
3. Canonicalize
4. Size guard (15 KiB)        -> 413 Instance too large
5. Derive identifier
6. Dedup short-circuit        (content hash only: positive cache hit -> done)
7. Durable store write        (idempotent)
8. Cache warming              (background, best effort)

RETRIEVAL FLOW:
===============
1. Format guard               -> 404
2. Edge cache probe           (hit -> returned verbatim)
3. Durable store read         (miss -> 404, optionally negative-cached)
4. Cache population           (background, best effort)

The durable store is authoritative. The cache is an accelerator that is
always safe to drop: cache faults degrade to misses and never reach the
caller. No locks are taken; identical writers converge through content
addressing and idempotent puts.
"""

from __future__ import annotations
from typing import Optional
import logging

from fastapi import BackgroundTasks

from .cache import EdgeCache, InMemoryEdgeCache
from .canonical import canonicalize, check_size, parse_json
from .config import InstanceStoreConfig
from .contracts import CachedResponse, ErrorCode, IngestOutcome, RetrievalOutcome
from .identifiers import IdentifierDeriver, is_well_formed
from .observability import PipelineStats
from .responses import build_not_found_response, build_object_response, retrieval_url
from .schema import validate
from .storage import DurableStore, create_store


logger = logging.getLogger(__name__)


class InstanceStoreEngine:
    """
    Content-addressed store with a coherent edge cache.

    Built once before serving traffic and read-only afterwards; every
    request-scoped value flows through method arguments.
    """

    def __init__(
        self,
        store: DurableStore,
        cache: EdgeCache,
        deriver: Optional[IdentifierDeriver] = None,
        negative_ttl_seconds: int = 0,
        stats: Optional[PipelineStats] = None
    ):
        self._store = store
        self._cache = cache
        self._deriver = deriver or IdentifierDeriver()
        self._negative_ttl = negative_ttl_seconds
        self._stats = stats or PipelineStats()

    @classmethod
    def from_config(cls, config: InstanceStoreConfig) -> 'InstanceStoreEngine':
        return cls(
            store=create_store(config),
            cache=InMemoryEdgeCache(max_entries=config.cache_entries),
            deriver=IdentifierDeriver(config.id_policy),
            negative_ttl_seconds=config.negative_ttl_seconds
        )

    # =========================================================================
    # INGEST
    # =========================================================================

    async def ingest(
        self,
        raw_body: bytes,
        base_url: str,
        background: BackgroundTasks
    ) -> IngestOutcome:
        """
        Validate, canonicalize, identify and persist one document.

        Store faults propagate as StoreError. Cache warming is scheduled on
        `background` and never affects the outcome.
        """
        result = parse_json(raw_body)
        if result.is_success:
            result = validate(result.value)
        if result.is_success:
            result = canonicalize(result.value)
        if result.is_success:
            result = check_size(result.value)
        if result.is_failure:
            self._stats.record_rejection(result.error.code)
            logger.info("Rejected ingest: %s", result.error.message)
            return IngestOutcome(error=result.error)

        body: bytes = result.value
        identifier = self._deriver.derive(body)
        url = retrieval_url(base_url, identifier)

        if self._deriver.deduplicates:
            cached = await self._probe_cache(url)
            if cached is not None and cached.is_positive:
                self._stats.record("deduplicated")
                self._stats.record("accepted")
                logger.debug("Dedup hit for %s", identifier)
                return IngestOutcome(identifier=identifier, deduplicated=True)

        await self._store.put(identifier, body)
        self._stats.record("store_writes")

        background.add_task(self._populate_cache, url, build_object_response(body))
        self._stats.record("accepted")
        logger.info("Stored %s (%d bytes)", identifier, len(body))
        return IngestOutcome(identifier=identifier)

    # =========================================================================
    # RETRIEVAL
    # =========================================================================

    async def retrieve(
        self,
        identifier: str,
        base_url: str,
        background: BackgroundTasks
    ) -> RetrievalOutcome:
        """Serve one stored object, from cache when possible."""
        if not is_well_formed(identifier):
            self._stats.record("malformed_identifiers")
            return RetrievalOutcome(identifier=identifier, response=build_not_found_response())

        url = retrieval_url(base_url, identifier)

        cached = await self._probe_cache(url)
        if cached is not None:
            return RetrievalOutcome(identifier=identifier, response=cached, cache_hit=True)

        body = await self._store.get(identifier)
        self._stats.record("store_reads")

        if body is None:
            self._stats.record("not_found")
            response = build_not_found_response()
            if self._negative_ttl > 0:
                background.add_task(self._populate_cache, url, response, self._negative_ttl)
            return RetrievalOutcome(identifier=identifier, response=response)

        response = build_object_response(body)
        background.add_task(self._populate_cache, url, response)
        return RetrievalOutcome(identifier=identifier, response=response)

    # =========================================================================
    # CACHE COORDINATION
    # =========================================================================

    async def _probe_cache(self, url: str) -> Optional[CachedResponse]:
        """Cache lookup that degrades to a miss on any cache fault."""
        try:
            cached = await self._cache.match(url)
        except Exception:
            self._stats.record("cache_errors")
            logger.warning("Edge cache lookup failed for %s, falling back to store", url, exc_info=True)
            return None

        self._stats.record("cache_hits" if cached is not None else "cache_misses")
        return cached

    async def _populate_cache(
        self,
        url: str,
        response: CachedResponse,
        ttl: Optional[int] = None
    ) -> None:
        """
        Background cache write. Failures are logged, never raised.

        A 404 never replaces a live 200: a read that missed before a
        concurrent ingest may finish after that ingest warmed the entry.
        """
        try:
            if not response.is_positive:
                current = await self._cache.match(url)
                if current is not None and current.is_positive:
                    self._stats.record("stale_misses_dropped")
                    logger.debug("Kept warm entry for %s over a stale 404", url)
                    return
            await self._cache.put(url, response, ttl)
        except Exception:
            self._stats.record("warm_failures")
            logger.warning("Edge cache population failed for %s", url, exc_info=True)
            return
        self._stats.record("cache_writes")

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def close(self) -> None:
        await self._store.close()

    @property
    def stats(self) -> PipelineStats:
        return self._stats

    @property
    def store(self) -> DurableStore:
        return self._store

    @property
    def cache(self) -> EdgeCache:
        return self._cache

    @property
    def deriver(self) -> IdentifierDeriver:
        return self._deriver
