"""Tests for InMemoryRecordStore — TTL, sliding expiry, and garbage collection."""

from __future__ import annotations

import asyncio

import pytest

from sessionfly.kernel.exceptions import PersistenceException
from sessionfly.session.adapters.memory import InMemoryRecordStore
from sessionfly.session.ports.outbound import RecordStore


class FakeClock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestInMemoryRecordStore:
    def test_protocol_compliance(self):
        assert isinstance(InMemoryRecordStore(), RecordStore)

    @pytest.mark.asyncio
    async def test_write_and_read(self):
        store = InMemoryRecordStore()
        await store.write("abc", {"cart": [1, 2]}, 60)
        assert await store.read("abc") == {"cart": [1, 2]}

    @pytest.mark.asyncio
    async def test_read_missing_returns_none(self):
        assert await InMemoryRecordStore().read("nope") is None

    @pytest.mark.asyncio
    async def test_read_returns_copy(self):
        store = InMemoryRecordStore()
        await store.write("abc", {"cart": [1]}, 60)
        data = await store.read("abc")
        data["cart"].append(2)
        assert await store.read("abc") == {"cart": [1]}

    @pytest.mark.asyncio
    async def test_read_never_returns_expired_data(self):
        clock = FakeClock()
        store = InMemoryRecordStore(clock=clock)
        await store.write("abc", {"k": "v"}, 60)
        clock.advance(60)
        assert await store.read("abc") is None

    @pytest.mark.asyncio
    async def test_write_slides_expiry(self):
        clock = FakeClock(0)
        store = InMemoryRecordStore(clock=clock)
        await store.write("abc", {}, 3600)
        clock.advance(1800)
        await store.write("abc", {}, 3600)
        assert store.expires_at("abc") == 1800 + 3600

    @pytest.mark.asyncio
    async def test_unserializable_payload_raises(self):
        store = InMemoryRecordStore()
        with pytest.raises(PersistenceException) as exc_info:
            await store.write("abc", {"obj": object()}, 60)
        assert exc_info.value.context["session_id"] == "abc"
        assert await store.read("abc") is None

    @pytest.mark.asyncio
    async def test_destroy_is_idempotent(self):
        store = InMemoryRecordStore()
        await store.write("abc", {"k": 1}, 60)
        await store.destroy("abc")
        await store.destroy("abc")
        await store.destroy("never-existed")
        assert await store.read("abc") is None


class TestInMemoryGarbageCollection:
    @pytest.mark.asyncio
    async def test_gc_removes_only_expired_records(self):
        clock = FakeClock()
        store = InMemoryRecordStore(clock=clock)
        await store.write("old", {}, 10)
        await store.write("fresh", {}, 100)
        clock.advance(10)
        assert await store.gc(10) == 1
        assert store.expires_at("old") is None
        assert await store.read("fresh") == {}

    @pytest.mark.asyncio
    async def test_second_gc_removes_nothing(self):
        clock = FakeClock()
        store = InMemoryRecordStore(clock=clock)
        for i in range(5):
            await store.write(f"s{i}", {}, 10)
        clock.advance(11)
        assert await store.gc(10) == 5
        assert await store.gc(10) == 0

    @pytest.mark.asyncio
    async def test_gc_sweeps_large_stores_in_batches(self):
        clock = FakeClock()
        store = InMemoryRecordStore(clock=clock)
        for i in range(1200):
            await store.write(f"s{i}", {}, 10 if i % 2 else 1000)
        clock.advance(20)
        assert await store.gc(10) == 600
        assert len(store) == 600

    @pytest.mark.asyncio
    async def test_write_during_gc_sweep_wins(self):
        clock = FakeClock()
        store = InMemoryRecordStore(clock=clock)
        for i in range(1000):
            await store.write(f"s{i}", {}, 10)
        clock.advance(11)

        async def refresh() -> None:
            # Runs while gc yields after its first batch.
            await store.write("s999", {"refreshed": True}, 10)

        removed, _ = await asyncio.gather(store.gc(10), refresh())
        assert removed == 999
        assert await store.read("s999") == {"refreshed": True}


class TestInMemoryConcurrentWrites:
    @pytest.mark.asyncio
    async def test_concurrent_writes_leave_one_whole_payload(self):
        store = InMemoryRecordStore()
        first = {"owner": "a", "items": list(range(100))}
        second = {"owner": "b", "items": list(range(100, 200))}

        await asyncio.gather(store.write("abc", first, 60), store.write("abc", second, 60))

        assert await store.read("abc") in (first, second)
