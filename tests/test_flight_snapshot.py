import asyncio

import pytest

from leavetime.core.config import Settings
from leavetime.exceptions import CacheException
from leavetime.schemas.flight import DetectionSource
from leavetime.services.cache.flight_snapshot import InMemoryFlightSnapshotStore, RedisFlightSnapshotStore

from tests.conftest import NOW, fixed_clock, make_flight


class FakeRedis:
    """The handful of redis.asyncio client calls the snapshot store uses"""

    def __init__(self, fail: bool = False):
        self.data = {}
        self.fail = fail
        self.closed = False

    async def set(self, key, value):
        if self.fail:
            raise ConnectionError("redis down")
        self.data[key] = value

    async def get(self, key):
        if self.fail:
            raise ConnectionError("redis down")
        return self.data.get(key)

    async def delete(self, key):
        if self.fail:
            raise ConnectionError("redis down")
        self.data.pop(key, None)

    async def ping(self):
        if self.fail:
            raise ConnectionError("redis down")
        return True

    async def aclose(self):
        self.closed = True


class TestInMemoryStore:
    @pytest.mark.asyncio
    async def test_empty_store(self):
        store = InMemoryFlightSnapshotStore(clock=fixed_clock)
        assert await store.load() is None
        assert await store.last_update() is None
        assert await store.is_mock_data() is False

    @pytest.mark.asyncio
    async def test_last_write_wins(self):
        store = InMemoryFlightSnapshotStore(clock=fixed_clock)
        first, second = make_flight(flight_number="AA1"), make_flight(flight_number="BB2")

        await asyncio.gather(store.save(first), store.save(second))

        assert (await store.load()).flight_number == "BB2"
        assert await store.last_update() == NOW

    @pytest.mark.asyncio
    async def test_manual_entry_is_mock_data(self):
        store = InMemoryFlightSnapshotStore(clock=fixed_clock)

        snapshot = await store.save(make_flight(source=DetectionSource.MANUAL_ENTRY))

        assert snapshot.is_mock_data
        assert await store.is_mock_data()

    @pytest.mark.asyncio
    async def test_clear(self):
        store = InMemoryFlightSnapshotStore(clock=fixed_clock)
        await store.save(make_flight())

        await store.clear()

        assert await store.load() is None


class TestRedisStore:
    def _store(self, client):
        settings = Settings(SNAPSHOT_KEY_PREFIX="test:snapshot")
        return RedisFlightSnapshotStore(settings, client=client, clock=fixed_clock)

    @pytest.mark.asyncio
    async def test_round_trip_single_document(self):
        client = FakeRedis()
        store = self._store(client)
        flight = make_flight(arrival="SIN")

        await store.save(flight)

        assert list(client.data) == ["test:snapshot:current"]
        loaded = await store.load_snapshot()
        assert loaded.flight == flight
        assert loaded.saved_at == NOW
        assert loaded.is_mock_data is False
        assert loaded.departure_label == "Bangkok (DMK)"
        assert loaded.source_label == "Structured Event"

    @pytest.mark.asyncio
    async def test_save_replaces_previous(self):
        store = self._store(FakeRedis())
        await store.save(make_flight(flight_number="AA1"))
        await store.save(make_flight(flight_number="BB2", source=DetectionSource.MANUAL_ENTRY))

        assert (await store.load()).flight_number == "BB2"
        assert await store.is_mock_data()

    @pytest.mark.asyncio
    async def test_write_failure_raises_cache_exception(self):
        store = self._store(FakeRedis(fail=True))

        with pytest.raises(CacheException):
            await store.save(make_flight())
        with pytest.raises(CacheException):
            await store.clear()

    @pytest.mark.asyncio
    async def test_read_failure_returns_none(self):
        store = self._store(FakeRedis(fail=True))
        assert await store.load_snapshot() is None
        assert await store.health_check() is False

    @pytest.mark.asyncio
    async def test_not_connected(self):
        store = RedisFlightSnapshotStore(Settings(), clock=fixed_clock)

        assert await store.load() is None
        assert await store.health_check() is False
        with pytest.raises(CacheException):
            await store.save(make_flight())

    @pytest.mark.asyncio
    async def test_disconnect_closes_client(self):
        client = FakeRedis()
        store = self._store(client)

        await store.disconnect()

        assert client.closed
        assert await store.load() is None
