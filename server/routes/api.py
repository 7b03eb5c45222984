"""API routes"""
import time
from datetime import datetime, timezone
from typing import Optional

from config.logger import logger
from fastapi import APIRouter, Depends
from models.readings import DeviceClass
from models.schemas import (
    ApiInfoResponse,
    DashboardData,
    ECReadingIn,
    ErrorResponse,
    GetDataResponse,
    HealthResponse,
    PHReadingIn,
    SaveResponse,
)
from services.aggregator import compose
from services.storage import ReadingStore, get_store

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Missing, non-numeric or out-of-range field"},
    405: {"model": ErrorResponse, "description": "Wrong HTTP method"},
    500: {"model": ErrorResponse, "description": "Storage failure"},
}

STARTED_AT = time.monotonic()


@router.get("/", response_model=ApiInfoResponse)
async def home():
    """API info endpoint"""
    return {
        "message": "Hydroponic Monitor API",
        "version": "1.0.0",
        "endpoints": {
            "update_ph": "POST /api/update-ph",
            "update_ec": "POST /api/update-ec",
            "get_data": "GET /api/get-data",
            "health": "GET /api/health",
        },
        "status": "running"
    }


@router.post("/api/update-ph", response_model=SaveResponse, responses=ERROR_RESPONSES)
async def update_ph(
    body: Optional[PHReadingIn] = None,
    store: ReadingStore = Depends(get_store),
):
    """Receive a reading from the pH monitor"""
    logger.debug(f"Received pH update: {body}")
    measurements = (body or PHReadingIn()).to_measurements()

    reading = await store.save(DeviceClass.PH, measurements)
    logger.info(
        f"pH data saved: pH={measurements['ph_value']}, "
        f"T1={measurements['temp1']}°C, H1={measurements['hum1']}%, "
        f"T2={measurements['temp2']}°C, H2={measurements['hum2']}%"
    )
    return {
        "success": True,
        "message": "Data saved successfully",
        "timestamp": reading.recorded_at,
    }


@router.post("/api/update-ec", response_model=SaveResponse, responses=ERROR_RESPONSES)
async def update_ec(
    body: Optional[ECReadingIn] = None,
    store: ReadingStore = Depends(get_store),
):
    """Receive a reading from the EC monitor"""
    body = body or ECReadingIn()
    measurements = body.to_measurements()

    reading = await store.save(DeviceClass.EC, measurements, device_id=body.resolved_device_id)
    logger.info(
        f"EC data saved: EC={measurements['ec_value']} µS/cm, "
        f"V={measurements['voltage']}V, T={measurements['temperature']}°C"
    )
    return {
        "success": True,
        "message": "Data saved successfully",
        "timestamp": reading.recorded_at,
    }


@router.get("/api/get-data", response_model=GetDataResponse)
async def get_data(store: ReadingStore = Depends(get_store)):
    """Combined latest data from both devices (polled by the dashboard)"""
    state = await store.get_latest()
    payload = compose(state.ph_monitor, state.ec_monitor)
    return GetDataResponse(
        timestamp=datetime.now(timezone.utc),
        data=DashboardData(
            plant_monitoring=payload.plant_monitoring,
            water_quality=payload.water_quality,
        ),
        device_status=payload.device_status,
    )


@router.get("/api/health", response_model=HealthResponse)
async def health(store: ReadingStore = Depends(get_store)):
    """Health check endpoint"""
    state = await store.get_latest()
    return {
        "success": True,
        "message": "Hydroponic API is running",
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "devices": {
            "ph_monitor": "has data" if state.ph_monitor else "no data yet",
            "ec_monitor": "has data" if state.ec_monitor else "no data yet",
        },
        "readings_stored": {
            "ph_history_count": len(state.ph_history),
            "ec_history_count": len(state.ec_history),
        },
        "timestamp": datetime.now(timezone.utc),
    }
