"""
Durable Store Layer

RESPONSIBILITY: Authoritative key-value persistence of canonical bytes
ALLOWED INPUTS: (identifier, canonical bytes) pairs
OUTPUTS: canonical bytes or absence

WHAT THIS LAYER MUST NOT DO:
============================
- Interpret or re-serialize stored bytes
- Mutate or delete an existing key
- Know about the edge cache

BOUNDARY ENFORCEMENT:
=====================
- put() is idempotent: the same key with the same bytes may be written any
  number of times, concurrently, without error
- Backend faults raise StoreError subclasses, absence returns None
"""

from __future__ import annotations
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional
import asyncio
import logging
import sqlite3

from ..contracts import StoreError, StoreUnavailableError


logger = logging.getLogger(__name__)


# =============================================================================
# STORAGE INTERFACE (Dependency Inversion)
# =============================================================================

class DurableStore:
    """
    Abstract durable store interface.

    Implementations may be eventually consistent: a get() shortly after a
    put() from another process is allowed to miss.
    """

    name = "abstract"

    async def put(self, key: str, body: bytes) -> None:
        """Persist body under key (idempotent)."""
        raise NotImplementedError

    async def get(self, key: str) -> Optional[bytes]:
        """Return the bytes stored under key, or None."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release backend resources."""


# =============================================================================
# IN-MEMORY STORE (Reference Implementation)
# =============================================================================

class InMemoryDurableStore(DurableStore):
    """
    Dict-backed store for tests and single-process deployments.

    Counts writes per key so deduplication can be observed.
    """

    name = "memory"

    def __init__(self):
        self._objects: Dict[str, bytes] = {}
        self._write_counts: Dict[str, int] = {}

    async def put(self, key: str, body: bytes) -> None:
        self._objects[key] = body
        self._write_counts[key] = self._write_counts.get(key, 0) + 1

    async def get(self, key: str) -> Optional[bytes]:
        return self._objects.get(key)

    def write_count(self, key: Optional[str] = None) -> int:
        if key is None:
            return sum(self._write_counts.values())
        return self._write_counts.get(key, 0)

    def __len__(self) -> int:
        return len(self._objects)

    def __contains__(self, key: str) -> bool:
        return key in self._objects


# =============================================================================
# SQLITE STORE
# =============================================================================

class SQLiteDurableStore(DurableStore):
    """
    SQLite-backed store.

    One connection per call, executed off the event loop. INSERT OR IGNORE
    keeps the first write of a key and makes repeats no-ops.
    """

    name = "sqlite"

    def __init__(self, base_path: Path, busy_timeout: float = 5.0):
        self._base_path = Path(base_path)
        self._db_path = self._base_path / 'instances.db'
        self._busy_timeout = busy_timeout

        self._base_path.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        """Initialize database schema."""
        with self._get_conn() as conn:
            conn.executescript('''
                CREATE TABLE IF NOT EXISTS instances (
                    identifier TEXT PRIMARY KEY,
                    body BLOB NOT NULL,
                    created_at TEXT NOT NULL
                );
            ''')

    @contextmanager
    def _get_conn(self):
        """Get database connection."""
        try:
            conn = sqlite3.connect(self._db_path, timeout=self._busy_timeout)
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"cannot open {self._db_path}: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"sqlite failure: {e}") from e
        finally:
            conn.close()

    def _put_sync(self, key: str, body: bytes) -> None:
        with self._get_conn() as conn:
            conn.execute(
                'INSERT OR IGNORE INTO instances (identifier, body, created_at) VALUES (?, ?, ?)',
                (key, body, datetime.now(timezone.utc).isoformat())
            )

    def _get_sync(self, key: str) -> Optional[bytes]:
        with self._get_conn() as conn:
            row = conn.execute(
                'SELECT body FROM instances WHERE identifier = ?',
                (key,)
            ).fetchone()
        return bytes(row[0]) if row else None

    async def put(self, key: str, body: bytes) -> None:
        await asyncio.to_thread(self._put_sync, key, body)

    async def get(self, key: str) -> Optional[bytes]:
        return await asyncio.to_thread(self._get_sync, key)

    def count(self) -> int:
        with self._get_conn() as conn:
            return conn.execute('SELECT COUNT(*) FROM instances').fetchone()[0]


# =============================================================================
# FACTORY
# =============================================================================

def create_store(config) -> DurableStore:
    """Create the durable store selected by an InstanceStoreConfig."""
    from ..config import BackendType

    if config.backend == BackendType.SQLITE:
        logger.info("Using SQLite durable store at %s", config.storage_dir)
        return SQLiteDurableStore(Path(config.storage_dir))
    if config.backend == BackendType.HOSTED:
        from .hosted import HostedKVDurableStore
        logger.info("Using hosted KV durable store at %s", config.kv_url)
        return HostedKVDurableStore(
            base_url=config.kv_url,
            token=config.kv_token,
            timeout=config.kv_timeout
        )
    logger.info("Using in-memory durable store")
    return InMemoryDurableStore()


__all__ = [
    "DurableStore", "InMemoryDurableStore", "SQLiteDurableStore",
    "StoreError", "StoreUnavailableError", "create_store",
]
