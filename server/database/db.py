"""Database logic"""
import asyncio
import json
from datetime import datetime
from typing import Optional

import aiosqlite
from config.logger import logger
from config.settings import DB_PATH, DB_TIMEOUT_SECONDS
from database.backends import StorageBackend
from models.errors import StorageError
from models.readings import DeviceClass, Reading, StoreState

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS readings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        device_class TEXT NOT NULL,
        device_id TEXT,
        recorded_at TEXT NOT NULL,
        measurements TEXT NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_device_class ON readings(device_class, id)
    """,
    """
    CREATE TABLE IF NOT EXISTS latest_readings (
        device_class TEXT PRIMARY KEY,
        device_id TEXT,
        recorded_at TEXT NOT NULL,
        measurements TEXT NOT NULL
    )
    """,
)


def _to_row(reading: Reading) -> tuple:
    return (
        reading.device_class.value,
        reading.device_id,
        reading.recorded_at.isoformat(),
        json.dumps(reading.measurements),
    )


def _from_row(row) -> Reading:
    device_class, device_id, recorded_at, measurements = row
    return Reading(
        device_class=DeviceClass(device_class),
        device_id=device_id,
        recorded_at=datetime.fromisoformat(recorded_at),
        measurements=json.loads(measurements),
    )


class SqliteBackend(StorageBackend):
    """
    SQLite storage (async via aiosqlite).

    The connection is opened on first use, reused for every later call
    and released by close(). Calls are serialized on one lock so a write
    transaction never interleaves with another coroutine's statements.
    """

    def __init__(self, db_path: str = DB_PATH, timeout: float = DB_TIMEOUT_SECONDS):
        self.db_path = db_path
        self.timeout = timeout
        self._db: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    async def _connection(self) -> aiosqlite.Connection:
        """Open the connection if needed; caller holds the lock"""
        if self._db is None:
            db = await aiosqlite.connect(self.db_path, timeout=self.timeout)
            try:
                for statement in SCHEMA:
                    await db.execute(statement)
                await db.commit()
            except aiosqlite.Error:
                await db.close()
                raise
            self._db = db
            logger.info(f"SQLite database opened at {self.db_path}")
        return self._db

    async def read_state(self) -> StoreState:
        async with self._lock:
            try:
                db = await self._connection()
                async with db.execute(
                    "SELECT device_class, device_id, recorded_at, measurements FROM readings ORDER BY id"
                ) as cursor:
                    history = [_from_row(row) for row in await cursor.fetchall()]
                async with db.execute(
                    "SELECT device_class, device_id, recorded_at, measurements FROM latest_readings"
                ) as cursor:
                    latest = {row[0]: _from_row(row) for row in await cursor.fetchall()}
            except (aiosqlite.Error, OSError, ValueError) as e:
                raise StorageError(f"SQLite read error: {e}") from e

        return StoreState(
            ph_monitor=latest.get(DeviceClass.PH.value),
            ec_monitor=latest.get(DeviceClass.EC.value),
            ph_history=[r for r in history if r.device_class is DeviceClass.PH],
            ec_history=[r for r in history if r.device_class is DeviceClass.EC],
        )

    async def write_state(self, state: StoreState):
        latest = [r for r in (state.ph_monitor, state.ec_monitor) if r is not None]
        async with self._lock:
            try:
                db = await self._connection()
                await db.execute("DELETE FROM readings")
                await db.execute("DELETE FROM latest_readings")
                await db.executemany("""
                    INSERT INTO readings (device_class, device_id, recorded_at, measurements)
                    VALUES (?, ?, ?, ?)
                """, [_to_row(r) for r in state.ph_history + state.ec_history])
                await db.executemany("""
                    INSERT INTO latest_readings (device_class, device_id, recorded_at, measurements)
                    VALUES (?, ?, ?, ?)
                """, [_to_row(r) for r in latest])
                await db.commit()
            except (aiosqlite.Error, OSError, ValueError) as e:
                if self._db is not None:
                    try:
                        await self._db.rollback()
                    except aiosqlite.Error as rollback_error:
                        logger.warning(f"SQLite rollback failed: {rollback_error}")
                raise StorageError(f"SQLite write error: {e}") from e

    async def close(self):
        async with self._lock:
            if self._db is not None:
                await self._db.close()
                self._db = None
                logger.info("SQLite database closed")
