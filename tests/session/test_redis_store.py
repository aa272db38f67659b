"""Tests for RedisRecordStore using a FakeRedis stub."""

from __future__ import annotations

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from sessionfly.kernel.exceptions import PersistenceException
from sessionfly.session.adapters.redis import RedisRecordStore
from sessionfly.session.ports.outbound import RecordStore


class FakeRedis:
    """Minimal in-memory stub matching the redis.asyncio.Redis interface."""

    def __init__(self) -> None:
        self._store: dict[str, bytes] = {}
        self.ttls: dict[str, int | None] = {}

    async def get(self, key: str) -> bytes | None:
        return self._store.get(key)

    async def set(self, key: str, value: bytes, ex: int | None = None) -> None:
        self._store[key] = value
        self.ttls[key] = ex

    async def delete(self, *keys: str) -> int:
        count = 0
        for k in keys:
            if k in self._store:
                del self._store[k]
                count += 1
        return count


class BrokenRedis:
    async def get(self, key: str) -> bytes | None:
        raise RedisConnectionError("connection refused")

    async def set(self, key: str, value: bytes, ex: int | None = None) -> None:
        raise RedisConnectionError("connection refused")

    async def delete(self, *keys: str) -> int:
        raise RedisConnectionError("connection refused")


class TestRedisRecordStore:
    def test_protocol_compliance(self):
        assert isinstance(RedisRecordStore(FakeRedis()), RecordStore)

    @pytest.mark.asyncio
    async def test_write_and_read(self):
        store = RedisRecordStore(FakeRedis())
        await store.write("abc", {"cart": [1, 2]}, 60)
        assert await store.read("abc") == {"cart": [1, 2]}

    @pytest.mark.asyncio
    async def test_write_sets_ttl_and_prefix(self):
        client = FakeRedis()
        await RedisRecordStore(client).write("abc", {}, 3600)
        assert client.ttls == {"sessionfly:session:abc": 3600}

    @pytest.mark.asyncio
    async def test_custom_prefix(self):
        client = FakeRedis()
        await RedisRecordStore(client, prefix="shop:").write("abc", {}, 60)
        assert "shop:abc" in client.ttls

    @pytest.mark.asyncio
    async def test_read_missing_returns_none(self):
        assert await RedisRecordStore(FakeRedis()).read("nope") is None

    @pytest.mark.asyncio
    async def test_corrupt_value_reads_as_missing(self):
        client = FakeRedis()
        await client.set("sessionfly:session:abc", b"{oops")
        assert await RedisRecordStore(client).read("abc") is None

    @pytest.mark.asyncio
    async def test_destroy_is_idempotent(self):
        store = RedisRecordStore(FakeRedis())
        await store.write("abc", {"k": 1}, 60)
        await store.destroy("abc")
        await store.destroy("abc")
        assert await store.read("abc") is None

    @pytest.mark.asyncio
    async def test_gc_relies_on_native_expiry(self):
        store = RedisRecordStore(FakeRedis())
        await store.write("abc", {}, 60)
        assert await store.gc(60) == 0
        assert await store.read("abc") == {}


class TestRedisFailures:
    @pytest.mark.asyncio
    async def test_read_failure_raises_persistence_exception(self):
        with pytest.raises(PersistenceException) as exc_info:
            await RedisRecordStore(BrokenRedis()).read("abc")
        assert exc_info.value.code == "SESSION_READ_FAILED"
        assert exc_info.value.context == {"session_id": "abc", "operation": "read"}

    @pytest.mark.asyncio
    async def test_write_failure_raises_persistence_exception(self):
        with pytest.raises(PersistenceException) as exc_info:
            await RedisRecordStore(BrokenRedis()).write("abc", {}, 60)
        assert exc_info.value.code == "SESSION_WRITE_FAILED"

    @pytest.mark.asyncio
    async def test_unserializable_payload_raises(self):
        with pytest.raises(PersistenceException):
            await RedisRecordStore(FakeRedis()).write("abc", {"k": {1, 2}}, 60)

    @pytest.mark.asyncio
    async def test_destroy_failure_raises_persistence_exception(self):
        with pytest.raises(PersistenceException):
            await RedisRecordStore(BrokenRedis()).destroy("abc")
