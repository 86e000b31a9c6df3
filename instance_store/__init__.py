"""
Instance Store

Content-addressed storage for saved table views, fronted by an edge cache.

LAYERS:
=======
- contracts:      immutable types and error taxonomy
- schema:         structural validation
- canonical:      deterministic bytes + size guard
- identifiers:    content hash / random token policies
- storage:        durable key-value backends
- cache:          URL-keyed edge cache
- pipeline:       ingest and retrieval orchestration
- api:            HTTP surface
"""

from .config import InstanceStoreConfig, BackendType
from .identifiers import IdentifierPolicy, IdentifierDeriver
from .pipeline import InstanceStoreEngine

__version__ = "0.1.0"

__all__ = [
    "InstanceStoreConfig", "BackendType",
    "IdentifierPolicy", "IdentifierDeriver",
    "InstanceStoreEngine",
]
