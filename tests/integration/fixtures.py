"""
Integration Test Fixtures

Explicit documents and fault-injecting collaborators.
"""

from __future__ import annotations
from typing import Optional
import asyncio
import json

from fastapi import BackgroundTasks

from instance_store.cache import EdgeCache, InMemoryEdgeCache
from instance_store.contracts import CacheError, CachedResponse, StoreUnavailableError
from instance_store.identifiers import IdentifierDeriver, IdentifierPolicy
from instance_store.pipeline import InstanceStoreEngine
from instance_store.storage import DurableStore, InMemoryDurableStore


BASE_URL = "http://testserver/"

MISSING_ID = "0000000000000000000000000000000000000000"


# =============================================================================
# DOCUMENTS
# =============================================================================

def minimal_document() -> dict:
    """The smallest valid instance."""
    return {
        "version": 1,
        "filter": "",
        "columns": [],
        "pricingUnit": "usd",
        "costDuration": "hr",
        "region": "us-east-1",
        "reservedTerm": "1yr",
        "compareOn": False,
        "selected": [],
        "visibleColumns": [],
    }


def populated_document() -> dict:
    """An instance with column filters and selections."""
    doc = minimal_document()
    doc.update({
        "filter": "m5",
        "columns": [
            {"id": "memory", "value": {"min": 8, "max": 64}},
            {"id": "vcpus", "value": 4},
        ],
        "compareOn": True,
        "selected": ["m5.large", "m5.xlarge"],
        "visibleColumns": ["name", "memory", "vcpus"],
    })
    return doc


def encode(document: dict) -> bytes:
    return json.dumps(document).encode("utf-8")


# =============================================================================
# TEST COLLABORATORS
# =============================================================================

class BrokenCache(EdgeCache):
    """Every operation fails."""

    async def match(self, url: str) -> Optional[CachedResponse]:
        raise CacheError("cache offline")

    async def put(self, url: str, response: CachedResponse, ttl: Optional[int] = None) -> None:
        raise CacheError("cache offline")


class YieldingStore(InMemoryDurableStore):
    """Suspends inside every operation so concurrent callers interleave."""

    async def put(self, key: str, body: bytes) -> None:
        await asyncio.sleep(0)
        await super().put(key, body)

    async def get(self, key: str) -> Optional[bytes]:
        await asyncio.sleep(0)
        return await super().get(key)


class BrokenStore(DurableStore):
    """Every operation fails."""

    name = "broken"

    async def put(self, key: str, body: bytes) -> None:
        raise StoreUnavailableError("store offline")

    async def get(self, key: str) -> Optional[bytes]:
        raise StoreUnavailableError("store offline")


# =============================================================================
# HELPERS
# =============================================================================

def make_engine(
    policy: IdentifierPolicy = IdentifierPolicy.CONTENT_HASH,
    store: Optional[DurableStore] = None,
    cache: Optional[EdgeCache] = None,
    negative_ttl_seconds: int = 0
) -> InstanceStoreEngine:
    return InstanceStoreEngine(
        store=store if store is not None else InMemoryDurableStore(),
        cache=cache if cache is not None else InMemoryEdgeCache(),
        deriver=IdentifierDeriver(policy),
        negative_ttl_seconds=negative_ttl_seconds
    )


def ingest(engine: InstanceStoreEngine, raw_body: bytes, run_background: bool = True):
    """Run one ingest to completion, background work included."""
    async def _run():
        background = BackgroundTasks()
        outcome = await engine.ingest(raw_body, BASE_URL, background)
        if run_background:
            await background()
        return outcome
    return asyncio.run(_run())


def retrieve(engine: InstanceStoreEngine, identifier: str, run_background: bool = True):
    """Run one retrieve to completion, background work included."""
    async def _run():
        background = BackgroundTasks()
        outcome = await engine.retrieve(identifier, BASE_URL, background)
        if run_background:
            await background()
        return outcome
    return asyncio.run(_run())
