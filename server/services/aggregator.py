"""Dashboard aggregation of the latest pH and EC readings"""
import math
from datetime import datetime, timezone
from typing import Optional

from config.settings import (
    LIGHT_INTENSITY_PLACEHOLDER,
    TDS_CONVERSION_FACTOR,
    WATER_LEVEL_PLACEHOLDER,
)
from models.readings import Reading
from models.schemas import (
    DashboardPayload,
    DeviceStatus,
    PlantMonitoringEntry,
    WaterQualityEntry,
)


def ec_to_ms_per_cm(ec_us_per_cm: float) -> float:
    """Convert EC from µS/cm to mS/cm, 2 decimal places"""
    return round(ec_us_per_cm / 1000, 2)


def ec_to_tds(ec_us_per_cm: float, factor: float = TDS_CONVERSION_FACTOR) -> int:
    """Approximate TDS (ppm) from EC with a linear factor, rounded half up"""
    return int(math.floor(ec_us_per_cm * factor + 0.5))


def compose(
    ph: Optional[Reading],
    ec: Optional[Reading],
    *,
    tds_factor: float = TDS_CONVERSION_FACTOR,
    now: Optional[datetime] = None,
) -> DashboardPayload:
    """
    Build the dashboard view from the latest readings.

    Either reading may be missing. Plant monitoring is only reported with a
    pH reading; water quality always has one entry, with 0 for every value
    no reading provides.
    """
    plant_monitoring = []
    if ph is not None:
        plant_monitoring.append(PlantMonitoringEntry(
            temperature=ph.value("temp1"),
            humidity=ph.value("hum1"),
            soil_moisture=ph.value("hum2"),
            light_intensity=LIGHT_INTENSITY_PLACEHOLDER,
            timestamp=ph.recorded_at,
        ))

    if ph is not None:
        water_temp = ph.value("temp2")
    elif ec is not None:
        water_temp = ec.value("temperature")
    else:
        water_temp = 0

    if ec is not None:
        timestamp = ec.recorded_at
    elif ph is not None:
        timestamp = ph.recorded_at
    else:
        timestamp = now or datetime.now(timezone.utc)

    water_quality = WaterQualityEntry(
        ph_value=ph.value("ph_value") if ph else 0,
        tds_value=ec_to_tds(ec.value("ec_value"), tds_factor) if ec else 0,
        ec_value=ec_to_ms_per_cm(ec.value("ec_value")) if ec else 0,
        water_temp=water_temp,
        water_level=WATER_LEVEL_PLACEHOLDER,
        voltage=ec.value("voltage") if ec else 0,
        timestamp=timestamp,
    )

    device_status = DeviceStatus(
        ph_connected=ph is not None,
        ec_connected=ec is not None,
        ph_monitor="connected" if ph else "disconnected",
        ec_monitor="connected" if ec else "disconnected",
        ph_last_update=ph.recorded_at if ph else None,
        ec_last_update=ec.recorded_at if ec else None,
    )

    return DashboardPayload(
        plant_monitoring=plant_monitoring,
        water_quality=[water_quality],
        device_status=device_status,
    )
