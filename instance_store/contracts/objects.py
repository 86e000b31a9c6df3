"""
Object and Response Contracts

Immutable data structures flowing through the ingest and retrieval
pipelines and held by the edge cache.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Tuple
import re

from .base import Error


_MAX_AGE_RE = re.compile(r"max-age=(\d+)")


# =============================================================================
# CACHED RESPONSES
# =============================================================================

@dataclass(frozen=True)
class CachedResponse:
    """
    A complete HTTP response as held by the edge cache.

    Headers are kept as an ordered tuple of pairs so the value is hashable
    and replayed verbatim on a hit.
    """
    status: int
    body: bytes
    headers: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None

    @property
    def max_age(self) -> Optional[int]:
        """Lifetime in seconds declared by Cache-Control, if any."""
        cache_control = self.header("Cache-Control")
        if not cache_control:
            return None
        match = _MAX_AGE_RE.search(cache_control)
        return int(match.group(1)) if match else None

    @property
    def is_positive(self) -> bool:
        return self.status == 200


# =============================================================================
# PIPELINE OUTCOMES
# =============================================================================

@dataclass(frozen=True)
class IngestOutcome:
    """
    Result of one ingest call.

    Exactly one of `identifier` / `error` is set.
    """
    identifier: Optional[str] = None
    error: Optional[Error] = None
    deduplicated: bool = False

    @property
    def accepted(self) -> bool:
        return self.error is None

    @property
    def status(self) -> int:
        return 200 if self.error is None else self.error.http_status

    @property
    def body(self) -> str:
        """Client-visible text: the identifier or the joined reasons."""
        if self.error is None:
            return self.identifier
        if self.error.reasons:
            return ", ".join(self.error.reasons)
        return self.error.message


@dataclass(frozen=True)
class RetrievalOutcome:
    """Result of one retrieve call. `response` is always set."""
    identifier: str
    response: CachedResponse
    cache_hit: bool = False

    @property
    def found(self) -> bool:
        return self.response.is_positive
