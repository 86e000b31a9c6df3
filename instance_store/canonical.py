"""
Canonical Serialization

Deterministic bytes for a validated instance.

RULES:
======
1. Top-level keys in schema declaration order
2. Keys inside free-form values sorted, integral floats written as ints
3. No whitespace between tokens
4. UTF-8, non-ASCII emitted as-is
5. Size limit applies to these bytes, never to the raw request body
"""

from __future__ import annotations
from typing import Any
import json

from .contracts import Error, ErrorCode, Result
from .schema import InstanceDocument


MAX_CANONICAL_BYTES = 15 * 1024

INVALID_JSON = "Invalid JSON"
INSTANCE_TOO_LARGE = "Instance too large"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def parse_json(raw_body: bytes) -> Result:
    """Decode a request body. NaN, Infinity and runaway nesting are rejected."""
    try:
        document = json.loads(raw_body, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return Result.failure(Error.create(ErrorCode.MALFORMED_JSON, INVALID_JSON))
    return Result.success(document)


def canonicalize(instance: InstanceDocument) -> Result:
    """
    Serialize a validated instance to canonical bytes.

    Fails with MALFORMED_JSON when the document carries text that has no
    UTF-8 encoding (lone surrogate escapes) or nests too deeply to serialize.
    """
    try:
        value = instance.model_dump(mode="json", exclude_unset=True)
        text = json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
        return Result.success(text.encode("utf-8"))
    except (ValueError, RecursionError):
        return Result.failure(Error.create(ErrorCode.MALFORMED_JSON, INVALID_JSON))


def check_size(canonical: bytes) -> Result:
    if len(canonical) > MAX_CANONICAL_BYTES:
        return Result.failure(Error.create(ErrorCode.OVERSIZE, INSTANCE_TOO_LARGE))
    return Result.success(canonical)
