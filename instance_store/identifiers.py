"""
Identifier Derivation

Two interchangeable policies, chosen once per deployment:

- content_hash: SHA-1 of the canonical bytes, lowercase hex. Deterministic,
  enables deduplication and the cache short-circuit on ingest.
- random_token: a random UUID4 per ingest. No deduplication.

Retrieval accepts either format; the policy only governs writes.
"""

from __future__ import annotations
from enum import Enum
import hashlib
import re
import uuid


_CONTENT_HASH_RE = re.compile(r"[0-9a-f]{40}")
_TOKEN_RE = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}")


class IdentifierPolicy(Enum):
    CONTENT_HASH = "content_hash"
    RANDOM_TOKEN = "random_token"


class IdentifierDeriver:
    """Derives storage keys for canonical bytes under one fixed policy."""

    def __init__(self, policy: IdentifierPolicy = IdentifierPolicy.CONTENT_HASH):
        self._policy = policy

    @property
    def policy(self) -> IdentifierPolicy:
        return self._policy

    @property
    def deduplicates(self) -> bool:
        return self._policy == IdentifierPolicy.CONTENT_HASH

    def derive(self, canonical: bytes) -> str:
        if self._policy == IdentifierPolicy.CONTENT_HASH:
            return content_hash(canonical)
        return str(uuid.uuid4())


def content_hash(canonical: bytes) -> str:
    return hashlib.sha1(canonical).hexdigest()


def is_well_formed(identifier: str) -> bool:
    """True for a content hash or a canonical token, whichever policy wrote it."""
    return bool(_CONTENT_HASH_RE.fullmatch(identifier) or _TOKEN_RE.fullmatch(identifier))
