"""Storage backends holding the whole store state"""
import asyncio
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from models.errors import StorageError
from models.readings import StoreState


class StorageBackend(ABC):
    """Reads and writes the full store state from a persistence medium"""

    @abstractmethod
    async def read_state(self) -> StoreState:
        """Return the stored state, or an empty one if nothing was saved yet.

        Raises StorageError if the medium cannot be read.
        """

    @abstractmethod
    async def write_state(self, state: StoreState):
        """Replace the stored state. Raises StorageError on failure."""

    async def close(self):
        """Release any held resources"""


class MemoryBackend(StorageBackend):
    """Process memory, lost on restart"""

    def __init__(self):
        self._state = StoreState()

    async def read_state(self) -> StoreState:
        return self._state.model_copy(deep=True)

    async def write_state(self, state: StoreState):
        self._state = state.model_copy(deep=True)


class JsonFileBackend(StorageBackend):
    """Single JSON document on local scratch storage"""

    def __init__(self, path):
        self.path = Path(path)

    def _read(self) -> StoreState:
        if not self.path.exists():
            return StoreState()
        try:
            # Raw bytes, so undecodable content is reported as invalid JSON
            return StoreState.model_validate_json(self.path.read_bytes())
        except (OSError, ValueError) as e:
            raise StorageError(f"Error reading data file {self.path}: {e}") from e

    def _write(self, state: StoreState):
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(state.model_dump_json(indent=2))
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Error writing data file {self.path}: {e}") from e

    async def read_state(self) -> StoreState:
        return await asyncio.to_thread(self._read)

    async def write_state(self, state: StoreState):
        await asyncio.to_thread(self._write, state)
