"""
Durable Store Tests
===================

Every backend honors the same contract:
1. get() of an unknown key is None, never an error
2. put() is idempotent for the same key and bytes
3. Backend faults raise StoreUnavailableError
"""

import asyncio
import sqlite3

import httpx
import pytest

from instance_store.config import BackendType, InstanceStoreConfig
from instance_store.contracts import StoreUnavailableError
from instance_store.storage import (
    InMemoryDurableStore, SQLiteDurableStore, create_store
)
from instance_store.storage.hosted import HostedKVDurableStore


KEY = "356a192b7913b04c54574d18c28d46e6395428ab"
BODY = b'{"version":1}'


# =============================================================================
# IN-MEMORY
# =============================================================================

class TestInMemoryStore:

    def test_put_then_get(self):
        store = InMemoryDurableStore()

        async def _run():
            await store.put(KEY, BODY)
            return await store.get(KEY)

        assert asyncio.run(_run()) == BODY

    def test_missing_is_none(self):
        assert asyncio.run(InMemoryDurableStore().get(KEY)) is None

    def test_repeated_puts_keep_one_object(self):
        store = InMemoryDurableStore()

        async def _run():
            await asyncio.gather(*(store.put(KEY, BODY) for _ in range(10)))

        asyncio.run(_run())

        assert len(store) == 1
        assert store.write_count(KEY) == 10


# =============================================================================
# SQLITE
# =============================================================================

class TestSQLiteStore:

    def test_put_then_get(self, tmp_path):
        store = SQLiteDurableStore(tmp_path)

        async def _run():
            await store.put(KEY, BODY)
            return await store.get(KEY)

        assert asyncio.run(_run()) == BODY

    def test_missing_is_none(self, tmp_path):
        assert asyncio.run(SQLiteDurableStore(tmp_path).get(KEY)) is None

    def test_concurrent_identical_puts(self, tmp_path):
        store = SQLiteDurableStore(tmp_path)

        async def _run():
            await asyncio.gather(*(store.put(KEY, BODY) for _ in range(8)))

        asyncio.run(_run())

        assert store.count() == 1

    def test_persists_across_instances(self, tmp_path):
        asyncio.run(SQLiteDurableStore(tmp_path).put(KEY, BODY))

        assert asyncio.run(SQLiteDurableStore(tmp_path).get(KEY)) == BODY

    def test_sqlite_fault_wrapped(self, tmp_path):
        store = SQLiteDurableStore(tmp_path)
        with sqlite3.connect(tmp_path / "instances.db") as conn:
            conn.execute("DROP TABLE instances")

        with pytest.raises(StoreUnavailableError):
            asyncio.run(store.get(KEY))


# =============================================================================
# HOSTED KV
# =============================================================================

class FakeKV:
    """In-memory stand-in for the REST key-value service."""

    def __init__(self, token="secret"):
        self.data = {}
        self.token = token
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("Authorization") != f"Bearer {self.token}":
            return httpx.Response(401, json={"error": "unauthorized"})

        _, op, key = request.url.path.split("/", 2)
        if op == "set" and request.method == "POST":
            self.data[key] = request.content.decode("utf-8")
            return httpx.Response(200, json={"result": "OK"})
        if op == "get" and request.method == "GET":
            return httpx.Response(200, json={"result": self.data.get(key)})
        return httpx.Response(404, json={"error": "unknown command"})


def hosted_store(kv: FakeKV, token="secret") -> HostedKVDurableStore:
    return HostedKVDurableStore(
        base_url="https://kv.example.test",
        token=token,
        transport=httpx.MockTransport(kv)
    )


class TestHostedKVStore:

    def test_put_then_get(self):
        kv = FakeKV()
        store = hosted_store(kv)

        async def _run():
            await store.put(KEY, BODY)
            value = await store.get(KEY)
            await store.close()
            return value

        assert asyncio.run(_run()) == BODY
        assert kv.data == {KEY: BODY.decode()}

    def test_missing_is_none(self):
        store = hosted_store(FakeKV())

        async def _run():
            value = await store.get(KEY)
            await store.close()
            return value

        assert asyncio.run(_run()) is None

    def test_unauthorized_is_unavailable(self):
        store = hosted_store(FakeKV(), token="wrong")

        async def _run():
            try:
                await store.put(KEY, BODY)
            finally:
                await store.close()

        with pytest.raises(StoreUnavailableError):
            asyncio.run(_run())

    def test_network_error_is_unavailable(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        store = HostedKVDurableStore(
            base_url="https://kv.example.test",
            transport=httpx.MockTransport(refuse)
        )

        async def _run():
            try:
                await store.get(KEY)
            finally:
                await store.close()

        with pytest.raises(StoreUnavailableError):
            asyncio.run(_run())

    def test_single_client_for_concurrent_first_use(self):
        kv = FakeKV()
        store = hosted_store(kv)

        async def _run():
            clients = await asyncio.gather(*(store._get_client() for _ in range(10)))
            await store.close()
            return clients

        clients = asyncio.run(_run())

        assert all(client is clients[0] for client in clients)
        assert not store.connected

    @pytest.mark.parametrize("payload", [{"result": 42}, {"result": {"version": 1}}, ["OK"]])
    def test_unexpected_payload_is_unavailable(self, payload):
        store = HostedKVDurableStore(
            base_url="https://kv.example.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=payload))
        )

        async def _run():
            try:
                await store.get(KEY)
            finally:
                await store.close()

        with pytest.raises(StoreUnavailableError):
            asyncio.run(_run())

    def test_requires_base_url(self):
        with pytest.raises(ValueError):
            HostedKVDurableStore(base_url="")


# =============================================================================
# FACTORY
# =============================================================================

class TestCreateStore:

    def test_memory_default(self):
        assert isinstance(create_store(InstanceStoreConfig()), InMemoryDurableStore)

    def test_sqlite(self, tmp_path):
        config = InstanceStoreConfig(backend=BackendType.SQLITE, storage_dir=str(tmp_path))
        assert isinstance(create_store(config), SQLiteDurableStore)

    def test_hosted(self):
        config = InstanceStoreConfig(backend=BackendType.HOSTED, kv_url="https://kv.example.test")
        store = create_store(config)

        assert isinstance(store, HostedKVDurableStore)
        assert not store.connected
