"""
Contracts shared by every layer of the instance store.

Layers import types from here, never from each other's implementations.
"""

from .base import (
    ErrorCode, Error, Result,
    StoreError, StoreUnavailableError, CacheError
)
from .objects import (
    CachedResponse, IngestOutcome, RetrievalOutcome
)

__all__ = [
    "ErrorCode", "Error", "Result",
    "StoreError", "StoreUnavailableError", "CacheError",
    "CachedResponse", "IngestOutcome", "RetrievalOutcome",
]
