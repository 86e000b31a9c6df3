"""
Service Configuration

One dataclass, loaded once at startup. Environment variables override
defaults; invalid values fail startup rather than serving with a guess.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional
import os

from .identifiers import IdentifierPolicy


ENV_PREFIX = "INSTANCE_STORE_"


class BackendType(Enum):
    MEMORY = "memory"
    SQLITE = "sqlite"
    HOSTED = "hosted"


@dataclass
class InstanceStoreConfig:
    """Unified configuration for the instance store service."""
    id_policy: IdentifierPolicy = IdentifierPolicy.CONTENT_HASH
    backend: BackendType = BackendType.MEMORY
    storage_dir: str = os.path.join(".", "data", "instances")
    kv_url: Optional[str] = None
    kv_token: Optional[str] = None
    kv_timeout: float = 10.0
    cache_entries: int = 10000
    negative_ttl_seconds: int = 0  # 0 disables caching of 404s
    log_level: str = "INFO"

    def __post_init__(self):
        if self.backend == BackendType.HOSTED and not self.kv_url:
            raise ValueError(f"{ENV_PREFIX}KV_URL is required for the hosted backend")
        if self.cache_entries < 1:
            raise ValueError("cache_entries must be positive")
        if self.negative_ttl_seconds < 0:
            raise ValueError("negative_ttl_seconds must not be negative")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'InstanceStoreConfig':
        env = os.environ if environ is None else environ

        def read(name: str, default=None):
            return env.get(ENV_PREFIX + name, default)

        defaults = cls()
        try:
            return cls(
                id_policy=IdentifierPolicy(read("ID_POLICY", defaults.id_policy.value)),
                backend=BackendType(read("BACKEND", defaults.backend.value)),
                storage_dir=read("DIR", defaults.storage_dir),
                kv_url=read("KV_URL"),
                kv_token=read("KV_TOKEN"),
                kv_timeout=float(read("KV_TIMEOUT", defaults.kv_timeout)),
                cache_entries=int(read("CACHE_ENTRIES", defaults.cache_entries)),
                negative_ttl_seconds=int(read("NEGATIVE_TTL", defaults.negative_ttl_seconds)),
                log_level=read("LOG_LEVEL", defaults.log_level),
            )
        except ValueError as e:
            raise ValueError(f"invalid instance store configuration: {e}") from e
