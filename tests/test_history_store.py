"""Tests del Bounded History Store y sus backends.

Ejecutar:
    pytest tests/test_history_store.py -v
"""

import threading
from unittest.mock import MagicMock

import orjson
import pytest
import redis

from telemetry_api.core.errors import StoreUnavailable
from telemetry_api.core.store import (
    BoundedHistoryStore,
    InMemoryHistoryBackend,
    RedisHistoryBackend,
)

BASE_TS = 1_700_000_000_000


# =============================================================================
# CAPACIDAD Y ORDEN DE LLEGADA
# =============================================================================

class TestCapacity:
    """El store nunca supera C y retiene un sufijo contiguo de los appends."""

    @pytest.mark.parametrize("capacity,appends", [(1, 5), (3, 2), (5, 5), (7, 50), (10, 31)])
    def test_retained_is_contiguous_suffix(self, make_reading, capacity, appends):
        store = BoundedHistoryStore(capacity=capacity, max_limit=1000)
        appended = []
        for i in range(appends):
            reading = make_reading(timestamp=BASE_TS + i, device_id=f"node-{i}")
            store.append(reading)
            appended.append(reading)
            assert len(store) <= capacity

        assert store.backend.snapshot() == appended[-capacity:]
        assert len(store) == min(capacity, appends)

    def test_arrival_order_is_not_reordered(self, make_reading):
        store = BoundedHistoryStore(capacity=10)
        late = make_reading(timestamp=BASE_TS + 5000, device_id="late")
        early = make_reading(timestamp=BASE_TS, device_id="early")
        store.append(late)
        store.append(early)

        assert [r.device_id for r in store.backend.snapshot()] == ["late", "early"]

    def test_eviction_is_global_not_per_location(self, make_reading):
        store = BoundedHistoryStore(capacity=3)
        store.append(make_reading(location="Ward C"))
        for i in range(3):
            store.append(make_reading(timestamp=BASE_TS + i + 1, location="Ward A"))

        assert store.query(location="Ward C") == []

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            BoundedHistoryStore(capacity=0)

    def test_clear(self, make_reading):
        store = BoundedHistoryStore(capacity=3)
        store.append(make_reading())
        store.clear()
        assert len(store) == 0


# =============================================================================
# QUERY
# =============================================================================

class TestQuery:
    """Filtros, límites y orden de la Query interface."""

    def test_results_sorted_by_timestamp(self, make_reading):
        store = BoundedHistoryStore()
        for offset in (300, 100, 200):
            store.append(make_reading(timestamp=BASE_TS + offset))

        assert [r.timestamp for r in store.query()] == [BASE_TS + 100, BASE_TS + 200, BASE_TS + 300]

    def test_location_filter(self, make_reading):
        store = BoundedHistoryStore()
        store.append(make_reading(location="Ward A"))
        store.append(make_reading(location="Ward B", timestamp=BASE_TS + 1))

        result = store.query(location="Ward B")
        assert [r.location for r in result] == ["Ward B"]

    def test_since_is_exclusive(self, make_reading):
        store = BoundedHistoryStore()
        for i in range(3):
            store.append(make_reading(timestamp=BASE_TS + i))

        assert [r.timestamp for r in store.query(since=BASE_TS + 1)] == [BASE_TS + 2]

    def test_limit_takes_most_recent_by_arrival(self, make_reading):
        store = BoundedHistoryStore()
        for i in range(10):
            store.append(make_reading(timestamp=BASE_TS + i))

        assert [r.timestamp for r in store.query(limit=3)] == [BASE_TS + 7, BASE_TS + 8, BASE_TS + 9]

    @pytest.mark.parametrize("requested,expected", [(None, 100), (0, 100), (-4, 100), (20, 20), (900, 500)])
    def test_normalize_limit(self, requested, expected):
        store = BoundedHistoryStore()
        assert store.normalize_limit(requested) == expected

    def test_limit_hard_cap(self, make_reading):
        store = BoundedHistoryStore(capacity=600)
        for i in range(600):
            store.append(make_reading(timestamp=BASE_TS + i))

        assert len(store.query(limit=10_000)) == 500


# =============================================================================
# CONCURRENCIA
# =============================================================================

class TestConcurrentAccess:
    """Los lectores nunca observan un estado parcialmente desalojado."""

    def test_readers_see_bounded_contiguous_windows(self, make_reading):
        capacity = 50
        store = BoundedHistoryStore(capacity=capacity, max_limit=capacity)
        errors = []
        stop = threading.Event()

        def writer():
            for i in range(5000):
                store.append(make_reading(timestamp=BASE_TS + i))
            stop.set()

        def reader():
            while not stop.is_set():
                snapshot = store.backend.snapshot()
                if len(snapshot) > capacity:
                    errors.append(f"size {len(snapshot)}")
                timestamps = [r.timestamp for r in snapshot]
                if timestamps and timestamps[-1] - timestamps[0] != len(timestamps) - 1:
                    errors.append("gap in window")

        threads = [threading.Thread(target=writer)] + [threading.Thread(target=reader) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert errors == []
        assert len(store) == capacity


# =============================================================================
# BACKEND REDIS
# =============================================================================

@pytest.fixture
def redis_client():
    client = MagicMock()
    pipe = MagicMock()
    pipe.__enter__ = MagicMock(return_value=pipe)
    pipe.__exit__ = MagicMock(return_value=False)
    client.pipeline = MagicMock(return_value=pipe)
    return client


@pytest.fixture
def redis_connection(redis_client):
    connection = MagicMock()
    connection.client = redis_client
    connection.ping = MagicMock(return_value=True)
    return connection


class TestRedisBackend:
    """RPUSH + LTRIM transaccional y traducción de errores."""

    def test_append_uses_transaction_with_trim(self, redis_client, redis_connection, make_reading):
        pipe = redis_client.pipeline.return_value
        pipe.execute.return_value = [4, True, 3]
        backend = RedisHistoryBackend(redis_connection, key="test:readings")
        reading = make_reading()

        size = backend.append(reading, capacity=3)

        assert size == 3
        redis_client.pipeline.assert_called_once_with(transaction=True)
        pipe.rpush.assert_called_once_with("test:readings", orjson.dumps(reading.to_dict()))
        pipe.ltrim.assert_called_once_with("test:readings", -3, -1)

    def test_snapshot_decodes_and_skips_corrupt_entries(self, redis_client, redis_connection, make_reading):
        good = make_reading(error="fault")
        redis_client.lrange.return_value = [orjson.dumps(good.to_dict()), b"{not json", orjson.dumps({"x": 1})]
        backend = RedisHistoryBackend(redis_connection)

        assert backend.snapshot() == [good]

    def test_redis_error_on_append_is_store_unavailable(self, redis_client, redis_connection, make_reading):
        redis_client.pipeline.return_value.execute.side_effect = redis.ConnectionError("down")
        backend = RedisHistoryBackend(redis_connection)

        with pytest.raises(StoreUnavailable) as exc_info:
            backend.append(make_reading(), capacity=10)
        assert exc_info.value.operation == "append"

    def test_redis_timeout_on_query_is_store_unavailable(self, redis_client, redis_connection):
        redis_client.lrange.side_effect = redis.TimeoutError("slow")
        store = BoundedHistoryStore(backend=RedisHistoryBackend(redis_connection))

        with pytest.raises(StoreUnavailable):
            store.query()

    def test_not_connected_is_store_unavailable(self, make_reading):
        connection = MagicMock()
        connection.client = None
        connection.connect = MagicMock(return_value=False)
        backend = RedisHistoryBackend(connection)

        with pytest.raises(StoreUnavailable):
            backend.append(make_reading(), capacity=10)


class TestInMemoryBackend:
    def test_compaction_keeps_window(self, make_reading):
        backend = InMemoryHistoryBackend()
        readings = [make_reading(timestamp=BASE_TS + i) for i in range(25)]
        for reading in readings:
            backend.append(reading, capacity=4)

        assert backend.snapshot() == readings[-4:]
        assert backend.size() == 4
        assert backend.ping() is True
