"""
Test services/storage.py and the storage backends
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from database.backends import JsonFileBackend, MemoryBackend, StorageBackend
from database.db import SqliteBackend
from models.errors import StorageError
from models.readings import DeviceClass, StoreState
from services import storage
from services.storage import ReadingStore, create_backend

PH_MEASUREMENTS = {"temp1": 25.5, "hum1": 65.0, "temp2": 24.8, "hum2": 70.0, "ph_value": 6.5}
EC_MEASUREMENTS = {"ec_value": 1200.0, "voltage": 1.85, "temperature": 25.0}


class BrokenBackend(StorageBackend):
    """Backend whose reads always fail"""

    def __init__(self, fail_writes=False):
        self.fail_writes = fail_writes
        self.written = None

    async def read_state(self):
        raise StorageError("medium unreachable")

    async def write_state(self, state):
        if self.fail_writes:
            raise StorageError("medium unreachable")
        self.written = state


class TestReadingStore:
    """Latest reading and bounded history semantics"""

    def test_empty_store_returns_default_state(self):
        store = ReadingStore(MemoryBackend())
        state = asyncio.run(store.get_latest())
        assert state == StoreState()
        assert state.ph_monitor is None
        assert state.ec_history == []

    def test_save_sets_latest(self):
        store = ReadingStore(MemoryBackend())
        reading = asyncio.run(store.save(DeviceClass.PH, PH_MEASUREMENTS))
        state = asyncio.run(store.get_latest())

        assert state.ph_monitor == reading
        assert state.ph_monitor.measurements == PH_MEASUREMENTS
        assert state.ph_history == [reading]
        assert state.ec_monitor is None

    def test_save_assigns_utc_timestamp(self):
        store = ReadingStore(MemoryBackend())
        before = datetime.now(timezone.utc)
        reading = asyncio.run(store.save(DeviceClass.EC, EC_MEASUREMENTS, device_id="ESP32_EC"))
        assert reading.recorded_at >= before
        assert reading.recorded_at.tzinfo is not None
        assert reading.device_id == "ESP32_EC"

    def test_device_classes_are_independent(self):
        store = ReadingStore(MemoryBackend())
        asyncio.run(store.save(DeviceClass.PH, PH_MEASUREMENTS))
        asyncio.run(store.save(DeviceClass.EC, EC_MEASUREMENTS))
        asyncio.run(store.save(DeviceClass.EC, {**EC_MEASUREMENTS, "ec_value": 900.0}))
        state = asyncio.run(store.get_latest())

        assert len(state.ph_history) == 1
        assert len(state.ec_history) == 2
        assert state.ec_monitor.value("ec_value") == 900.0
        assert state.ph_monitor.value("ph_value") == 6.5

    def test_history_capped_at_most_recent_100(self):
        store = ReadingStore(MemoryBackend())

        async def save_many():
            for i in range(150):
                await store.save(DeviceClass.PH, {**PH_MEASUREMENTS, "temp1": float(i)})
            return await store.get_latest()

        state = asyncio.run(save_many())
        assert len(state.ph_history) == 100
        assert [r.value("temp1") for r in state.ph_history] == [float(i) for i in range(50, 150)]
        assert state.ph_monitor.value("temp1") == 149.0

    def test_ec_history_capped_at_most_recent_100(self):
        store = ReadingStore(MemoryBackend())

        async def save_many():
            for i in range(150):
                await store.save(DeviceClass.EC, {**EC_MEASUREMENTS, "ec_value": float(i)})
            return await store.get_latest()

        state = asyncio.run(save_many())
        assert len(state.ec_history) == 100
        assert [r.value("ec_value") for r in state.ec_history] == [float(i) for i in range(50, 150)]
        assert state.ec_monitor.value("ec_value") == 149.0
        assert state.ph_history == []

    def test_oversized_stored_history_trimmed_on_read(self):
        backend = MemoryBackend()
        store = ReadingStore(backend)

        async def scenario():
            for i in range(5):
                await store.save(DeviceClass.PH, {**PH_MEASUREMENTS, "temp1": float(i)})
            state = await backend.read_state()
            state.ph_history = state.ph_history * 30
            await backend.write_state(state)
            return await store.get_latest()

        state = asyncio.run(scenario())
        assert len(state.ph_history) == 100

    def test_timestamps_non_decreasing(self):
        store = ReadingStore(MemoryBackend())

        async def save_many():
            for _ in range(20):
                await store.save(DeviceClass.EC, EC_MEASUREMENTS)
            return await store.get_latest()

        history = asyncio.run(save_many()).ec_history
        stamps = [r.recorded_at for r in history]
        assert stamps == sorted(stamps)

    def test_timestamp_never_goes_backwards(self):
        backend = MemoryBackend()
        store = ReadingStore(backend)
        first = asyncio.run(store.save(DeviceClass.PH, PH_MEASUREMENTS))

        # Simulate a stored reading from a clock that was ahead
        state = asyncio.run(backend.read_state())
        future = first.recorded_at + timedelta(hours=1)
        state.ph_monitor = state.ph_monitor.model_copy(update={"recorded_at": future})
        asyncio.run(backend.write_state(state))

        second = asyncio.run(store.save(DeviceClass.PH, PH_MEASUREMENTS))
        assert second.recorded_at == future

    def test_save_after_read_failure_starts_from_empty(self):
        backend = BrokenBackend()
        store = ReadingStore(backend)
        reading = asyncio.run(store.save(DeviceClass.EC, EC_MEASUREMENTS))

        assert backend.written.ec_monitor == reading
        assert backend.written.ec_history == [reading]
        assert backend.written.ph_monitor is None

    def test_save_write_failure_raises(self):
        store = ReadingStore(BrokenBackend(fail_writes=True))
        with pytest.raises(StorageError):
            asyncio.run(store.save(DeviceClass.PH, PH_MEASUREMENTS))

    def test_get_latest_never_fails(self):
        store = ReadingStore(BrokenBackend())
        assert asyncio.run(store.get_latest()) == StoreState()

    def test_memory_backend_does_not_alias_state(self):
        store = ReadingStore(MemoryBackend())
        asyncio.run(store.save(DeviceClass.PH, PH_MEASUREMENTS))
        state = asyncio.run(store.get_latest())
        state.ph_history.clear()
        assert len(asyncio.run(store.get_latest()).ph_history) == 1

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValueError):
            create_backend("redis")


class TestJsonFileBackend:
    """File persistence and corruption fallback"""

    def test_missing_file_is_empty_state(self, tmp_path):
        backend = JsonFileBackend(tmp_path / "sensor_data.json")
        assert asyncio.run(backend.read_state()) == StoreState()

    def test_state_survives_new_store_instance(self, tmp_path):
        path = tmp_path / "sensor_data.json"
        saved = asyncio.run(ReadingStore(JsonFileBackend(path)).save(DeviceClass.PH, PH_MEASUREMENTS))

        state = asyncio.run(ReadingStore(JsonFileBackend(path)).get_latest())
        assert state.ph_monitor == saved
        assert not (tmp_path / "sensor_data.json.tmp").exists()

    def test_corrupt_file_raises_on_read(self, tmp_path):
        path = tmp_path / "sensor_data.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError):
            asyncio.run(JsonFileBackend(path).read_state())

    def test_save_recovers_from_corrupt_file(self, tmp_path):
        path = tmp_path / "sensor_data.json"
        path.write_text("{not json", encoding="utf-8")
        store = ReadingStore(JsonFileBackend(path))

        assert asyncio.run(store.get_latest()) == StoreState()
        reading = asyncio.run(store.save(DeviceClass.EC, EC_MEASUREMENTS))
        state = asyncio.run(store.get_latest())
        assert state.ec_monitor == reading
        assert len(state.ec_history) == 1

    def test_undecodable_file_falls_back_to_empty(self, tmp_path):
        path = tmp_path / "sensor_data.json"
        path.write_bytes(b"\xff\xfe\x00garbage")
        store = ReadingStore(JsonFileBackend(path))

        with pytest.raises(StorageError):
            asyncio.run(store.backend.read_state())
        assert asyncio.run(store.get_latest()) == StoreState()

        reading = asyncio.run(store.save(DeviceClass.PH, PH_MEASUREMENTS))
        assert asyncio.run(store.get_latest()).ph_history == [reading]

    def test_concurrent_writes_use_separate_temp_files(self, tmp_path):
        path = tmp_path / "sensor_data.json"
        store = ReadingStore(JsonFileBackend(path))

        async def scenario():
            return await asyncio.gather(
                *(store.save(DeviceClass.EC, EC_MEASUREMENTS) for _ in range(8))
            )

        readings = asyncio.run(scenario())
        assert len(readings) == 8
        state = asyncio.run(store.get_latest())
        assert state.ec_monitor in readings
        assert list(tmp_path.glob("*.tmp")) == []

    def test_unwritable_path_raises(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        store = ReadingStore(JsonFileBackend(blocker / "sensor_data.json"))
        with pytest.raises(StorageError):
            asyncio.run(store.save(DeviceClass.PH, PH_MEASUREMENTS))


class TestSqliteBackend:
    """SQLite persistence through aiosqlite"""

    def test_persists_latest_and_history(self, tmp_path):
        db_path = str(tmp_path / "readings.db")

        async def scenario():
            store = ReadingStore(SqliteBackend(db_path), history_limit=3)
            for i in range(5):
                await store.save(DeviceClass.PH, {**PH_MEASUREMENTS, "hum2": float(i)})
            await store.save(DeviceClass.EC, EC_MEASUREMENTS, device_id="ESP32_EC")
            await store.close()

            reopened = ReadingStore(SqliteBackend(db_path))
            state = await reopened.get_latest()
            await reopened.close()
            return state

        state = asyncio.run(scenario())
        assert [r.value("hum2") for r in state.ph_history] == [2.0, 3.0, 4.0]
        assert state.ph_monitor.value("hum2") == 4.0
        assert state.ec_monitor.device_id == "ESP32_EC"
        assert state.ec_monitor.device_class is DeviceClass.EC
        assert state.ec_history == [state.ec_monitor]

    def test_connection_reused_until_closed(self, tmp_path):
        backend = SqliteBackend(str(tmp_path / "readings.db"))

        async def scenario():
            await backend.read_state()
            first = backend._db
            await backend.write_state(StoreState())
            same = backend._db is first
            await backend.close()
            return same, backend._db

        same, after_close = asyncio.run(scenario())
        assert same
        assert after_close is None

    def test_unreachable_database_raises(self, tmp_path):
        backend = SqliteBackend(str(tmp_path / "missing" / "readings.db"))
        with pytest.raises(StorageError):
            asyncio.run(backend.read_state())

    def test_concurrent_saves_keep_cap_and_last_write(self, tmp_path):
        db_path = str(tmp_path / "readings.db")

        async def scenario():
            store = ReadingStore(SqliteBackend(db_path))
            for i in range(100):
                await store.save(DeviceClass.PH, {**PH_MEASUREMENTS, "temp1": float(i)})
            results = await asyncio.gather(
                *(store.save(DeviceClass.PH, {**PH_MEASUREMENTS, "temp1": 500.0 + i}) for i in range(4)),
                return_exceptions=True,
            )
            state = await store.get_latest()
            await store.close()
            return results, state

        results, state = asyncio.run(scenario())
        assert not any(isinstance(result, Exception) for result in results)
        assert len(state.ph_history) == 100
        assert state.ph_monitor in results
        assert state.ph_history[-1] == state.ph_monitor


class TestSharedStore:
    """Process-scoped store lifecycle"""

    def test_concurrent_first_use_builds_one_store(self, monkeypatch):
        monkeypatch.setattr(storage, "_store", None)

        async def scenario():
            stores = await asyncio.gather(*(storage.get_store() for _ in range(5)))
            await storage.close_store()
            return stores

        stores = asyncio.run(scenario())
        assert all(store is stores[0] for store in stores)
        assert storage._store is None
