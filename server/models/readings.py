"""Domain models for stored sensor readings"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class DeviceClass(str, Enum):
    """The two fixed sensor roles"""
    PH = "ph"
    EC = "ec"


class Reading(BaseModel):
    """One timestamped measurement submission from a device class"""
    device_class: DeviceClass
    measurements: dict[str, float]
    device_id: Optional[str] = None
    recorded_at: datetime

    def value(self, name: str, default: float = 0) -> float:
        return self.measurements.get(name, default)


class StoreState(BaseModel):
    """
    Latest reading and bounded history for both device classes.

    History lists are insertion-ordered, oldest first.
    """
    ph_monitor: Optional[Reading] = None
    ec_monitor: Optional[Reading] = None
    ph_history: list[Reading] = Field(default_factory=list)
    ec_history: list[Reading] = Field(default_factory=list)

    def latest(self, device_class: DeviceClass) -> Optional[Reading]:
        if device_class is DeviceClass.PH:
            return self.ph_monitor
        return self.ec_monitor

    def history(self, device_class: DeviceClass) -> list[Reading]:
        if device_class is DeviceClass.PH:
            return self.ph_history
        return self.ec_history

    def record(self, reading: Reading, limit: int):
        """Set reading as latest and append it, keeping the last `limit` entries"""
        history = self.history(reading.device_class) + [reading]
        history = history[-limit:] if limit > 0 else []
        if reading.device_class is DeviceClass.PH:
            self.ph_monitor = reading
            self.ph_history = history
        else:
            self.ec_monitor = reading
            self.ec_history = history

    def trim(self, limit: int):
        """Drop the oldest history entries beyond `limit` for both classes"""
        self.ph_history = self.ph_history[-limit:] if limit > 0 else []
        self.ec_history = self.ec_history[-limit:] if limit > 0 else []
