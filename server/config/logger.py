"""Logging setup for the hydroponic API (stdout only)"""
import logging
import sys

from config.settings import LOG_LEVEL

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)

# Failed requests are reported by middleware/logging.py
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

logger = logging.getLogger("hydroponic_api")
