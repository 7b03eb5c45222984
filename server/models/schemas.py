"""DTOs and schemas for request and response bodies"""
import math
from datetime import datetime
from typing import ClassVar, Optional, Union

from config.settings import DEFAULT_EC_DEVICE_ID, EC_RANGE, PH_RANGE
from models.errors import ValidationError
from pydantic import BaseModel, StrictFloat, StrictInt

# JSON numbers or numeric strings; booleans are rejected
NumberInput = Optional[Union[StrictFloat, StrictInt, str]]


def _parse_number(value: Union[float, int, str]) -> float:
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise ValidationError("All values must be valid numbers") from None
    value = float(value)
    if not math.isfinite(value):
        raise ValidationError("All values must be valid numbers")
    return value


def _require(body: BaseModel, names: tuple[str, ...]) -> dict[str, float]:
    """Check presence of every field first, then parse each as a finite number"""
    values = {name: getattr(body, name) for name in names}
    if any(value is None for value in values.values()):
        raise ValidationError(f"Missing required fields: {', '.join(names)}")
    return {name: _parse_number(value) for name, value in values.items()}


def _check_range(name: str, value: float, bounds: tuple[float, float], unit: str = ""):
    low, high = bounds
    if value < low or value > high:
        suffix = f" {unit}" if unit else ""
        raise ValidationError(f"{name} out of range ({low:g}-{high:g}{suffix})")


class PHReadingIn(BaseModel):
    """Body posted by the pH monitor"""
    REQUIRED: ClassVar[tuple[str, ...]] = ("temp1", "hum1", "temp2", "hum2", "ph_val")

    temp1: NumberInput = None
    hum1: NumberInput = None
    temp2: NumberInput = None
    hum2: NumberInput = None
    ph_val: NumberInput = None

    def to_measurements(self) -> dict[str, float]:
        values = _require(self, self.REQUIRED)
        _check_range("ph_val", values["ph_val"], PH_RANGE)
        values["ph_value"] = values.pop("ph_val")
        return values


class ECReadingIn(BaseModel):
    """Body posted by the EC monitor"""
    REQUIRED: ClassVar[tuple[str, ...]] = ("ec_value", "voltage", "temperature")

    device_id: Optional[str] = None
    ec_value: NumberInput = None
    voltage: NumberInput = None
    temperature: NumberInput = None

    def to_measurements(self) -> dict[str, float]:
        values = _require(self, self.REQUIRED)
        _check_range("ec_value", values["ec_value"], EC_RANGE, "µS/cm")
        return values

    @property
    def resolved_device_id(self) -> str:
        return self.device_id or DEFAULT_EC_DEVICE_ID


class SaveResponse(BaseModel):
    """Schema for a stored reading acknowledgement"""
    success: bool = True
    message: str
    timestamp: datetime


class PlantMonitoringEntry(BaseModel):
    temperature: float
    humidity: float
    soil_moisture: float
    light_intensity: float
    timestamp: datetime


class WaterQualityEntry(BaseModel):
    ph_value: float
    tds_value: int
    ec_value: float  # mS/cm
    water_temp: float
    water_level: float
    voltage: float
    timestamp: datetime


class DeviceStatus(BaseModel):
    ph_connected: bool
    ec_connected: bool
    ph_monitor: str
    ec_monitor: str
    ph_last_update: Optional[datetime] = None
    ec_last_update: Optional[datetime] = None


class DashboardPayload(BaseModel):
    """Aggregated view built from the latest pH and EC readings"""
    plant_monitoring: list[PlantMonitoringEntry]
    water_quality: list[WaterQualityEntry]
    device_status: DeviceStatus


class DashboardData(BaseModel):
    plant_monitoring: list[PlantMonitoringEntry]
    water_quality: list[WaterQualityEntry]


class GetDataResponse(BaseModel):
    """Schema for the dashboard polling endpoint"""
    success: bool = True
    timestamp: datetime
    data: DashboardData
    device_status: DeviceStatus


class DeviceAvailability(BaseModel):
    ph_monitor: str
    ec_monitor: str


class ReadingsStored(BaseModel):
    ph_history_count: int
    ec_history_count: int


class HealthResponse(BaseModel):
    """Schema for health check"""
    success: bool = True
    message: str
    uptime: float
    devices: DeviceAvailability
    readings_stored: ReadingsStored
    timestamp: datetime


class ApiInfoResponse(BaseModel):
    """Schema for API info"""
    message: str
    version: str
    endpoints: dict[str, str]
    status: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
