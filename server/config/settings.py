"""Application configuration"""
import os

# Storage settings
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "file")  # memory | file | sqlite
DATA_FILE = os.getenv("DATA_FILE", "/tmp/sensor_data.json")
DB_PATH = os.getenv("DB_PATH", "sensor_data.db")
DB_TIMEOUT_SECONDS = float(os.getenv("DB_TIMEOUT_SECONDS", "5"))
HISTORY_MAX_SIZE = int(os.getenv("HISTORY_MAX_SIZE", "100"))

# Dashboard conversions (TDS ppm ~= EC uS/cm * factor)
TDS_CONVERSION_FACTOR = float(os.getenv("TDS_CONVERSION_FACTOR", "0.5"))

# No light or water level sensor is installed
LIGHT_INTENSITY_PLACEHOLDER = 500
WATER_LEVEL_PLACEHOLDER = 75

# Input validation ranges
PH_RANGE = (0.0, 14.0)
EC_RANGE = (0.0, 100000.0)  # uS/cm
DEFAULT_EC_DEVICE_ID = "ESP32_EC"

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Server settings
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
