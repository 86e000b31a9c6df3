"""
Response Construction

The single place responses for stored objects are built. Ingest-time cache
warming and read-time cache population both go through here, so a warmed
entry is byte-for-byte what a GET would have produced.
"""

from __future__ import annotations

from .contracts import CachedResponse, ErrorCode


OBJECT_MAX_AGE = 7 * 24 * 60 * 60

CORS_HEADERS = (("Access-Control-Allow-Origin", "*"),)

OBJECT_CORS_HEADERS = CORS_HEADERS + (
    ("Access-Control-Allow-Methods", "GET"),
    ("Access-Control-Allow-Headers", "Content-Type"),
)

NOT_FOUND = "Not found"


def retrieval_url(base_url: str, identifier: str) -> str:
    """Canonical cache key for an identifier: base URL + '/' + identifier."""
    return f"{base_url.rstrip('/')}/{identifier}"


def build_object_response(body: bytes) -> CachedResponse:
    return CachedResponse(
        status=200,
        body=body,
        headers=(
            ("Content-Type", "application/json"),
            ("Cache-Control", f"public, max-age={OBJECT_MAX_AGE}"),
        ) + OBJECT_CORS_HEADERS
    )


def build_not_found_response() -> CachedResponse:
    return CachedResponse(
        status=ErrorCode.NOT_FOUND.http_status,
        body=NOT_FOUND.encode("utf-8"),
        headers=(("Content-Type", "text/plain; charset=utf-8"),) + CORS_HEADERS
    )
