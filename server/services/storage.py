"""Storage service keeping the latest reading and bounded history per device class"""
from datetime import datetime, timezone
from typing import Optional

from config.logger import logger
from config.settings import DATA_FILE, DB_PATH, HISTORY_MAX_SIZE, STORAGE_BACKEND
from database.backends import JsonFileBackend, MemoryBackend, StorageBackend
from database.db import SqliteBackend
from models.errors import StorageError
from models.readings import DeviceClass, Reading, StoreState


class ReadingStore:
    """
    Latest reading plus the last `history_limit` readings for pH and EC.

    Every save is a full read-modify-write of the backend state, so
    concurrent writers race and the last complete write wins.
    """

    def __init__(self, backend: StorageBackend, history_limit: int = HISTORY_MAX_SIZE):
        self.backend = backend
        self.history_limit = history_limit

    async def save(
        self,
        device_class: DeviceClass,
        measurements: dict[str, float],
        device_id: Optional[str] = None,
    ) -> Reading:
        """Store a reading as latest and append it to history"""
        try:
            state = await self.backend.read_state()
        except StorageError as e:
            # Corrupt or unreadable state must not block new readings
            logger.error(f"Could not load stored state, starting from empty: {e}")
            state = StoreState()

        reading = Reading(
            device_class=device_class,
            measurements=dict(measurements),
            device_id=device_id,
            recorded_at=_next_timestamp(state.latest(device_class)),
        )
        state.record(reading, self.history_limit)
        state.trim(self.history_limit)
        await self.backend.write_state(state)
        return reading

    async def get_latest(self) -> StoreState:
        """Latest readings and histories; empty state if nothing is available"""
        try:
            state = await self.backend.read_state()
        except StorageError as e:
            logger.error(f"Could not load stored state: {e}")
            return StoreState()
        state.trim(self.history_limit)
        return state

    async def close(self):
        await self.backend.close()


def _next_timestamp(previous: Optional[Reading]) -> datetime:
    """Current UTC time, never earlier than the previous reading of the class"""
    now = datetime.now(timezone.utc)
    if previous is not None and previous.recorded_at > now:
        return previous.recorded_at
    return now


def create_backend(kind: str = STORAGE_BACKEND) -> StorageBackend:
    """Build the configured storage backend"""
    if kind == "memory":
        return MemoryBackend()
    if kind == "file":
        return JsonFileBackend(DATA_FILE)
    if kind == "sqlite":
        return SqliteBackend(DB_PATH)
    raise ValueError(f"Unknown storage backend: {kind!r}")


# Process-scoped store, created on first use
_store: Optional[ReadingStore] = None


async def get_store() -> ReadingStore:
    """Get the shared reading store (lazy init, then reused).

    Runs on the event loop; there is no await between the check and the assignment.
    """
    global _store
    if _store is None:
        _store = ReadingStore(create_backend())
        logger.info(f"Reading store initialized ({STORAGE_BACKEND} backend)")
    return _store


async def close_store():
    """Release the shared reading store"""
    global _store
    if _store is not None:
        await _store.close()
        _store = None
