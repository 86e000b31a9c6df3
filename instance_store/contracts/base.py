"""
Base Contracts and Shared Types

Foundational types used across the ingest and retrieval pipelines.
All types here are IMMUTABLE and represent pure data.

BOUNDARY ENFORCEMENT:
=====================
- Rejections are data, not exceptions - they are returned, logged and counted
- Backend faults are exceptions - they cross the pipeline and become 5xx
- All value types are frozen dataclasses
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple
from enum import Enum


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for client-visible outcomes.
    Each code maps to the HTTP status it is surfaced as.
    """
    MALFORMED_JSON = "malformed_json"
    SCHEMA_VIOLATION = "schema_violation"
    OVERSIZE = "oversize"
    NOT_FOUND = "not_found"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    BACKEND_UNAVAILABLE = "backend_unavailable"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS = {
    ErrorCode.MALFORMED_JSON: 400,
    ErrorCode.SCHEMA_VIOLATION: 400,
    ErrorCode.OVERSIZE: 413,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.METHOD_NOT_ALLOWED: 405,
    ErrorCode.BACKEND_UNAVAILABLE: 503,
}


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be stored and counted.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    reasons: Tuple[str, ...] = field(default_factory=tuple)

    @staticmethod
    def create(code: ErrorCode, message: str, reasons: Tuple[str, ...] = ()) -> Error:
        return Error(
            code=code,
            message=message,
            timestamp=datetime.now(timezone.utc),
            reasons=tuple(reasons)
        )

    @property
    def http_status(self) -> int:
        return self.code.http_status


@dataclass(frozen=True)
class Result:
    """
    Generic result type for operations that can fail.
    Either contains a value OR an error, never both.
    """
    value: Optional[object] = None
    error: Optional[Error] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    @staticmethod
    def success(value: object) -> Result:
        return Result(value=value, error=None)

    @staticmethod
    def failure(error: Error) -> Result:
        return Result(value=None, error=error)


# =============================================================================
# BACKEND FAULTS (exceptions, surfaced as 5xx)
# =============================================================================

class StoreError(Exception):
    """Durable store operation failed."""


class StoreUnavailableError(StoreError):
    """Durable store could not be reached or refused the request."""


class CacheError(Exception):
    """Edge cache operation failed. Never propagated to clients."""
