"""Application lifespan management"""
from contextlib import asynccontextmanager

from config.logger import logger
from config.settings import STORAGE_BACKEND
from services.storage import close_store


@asynccontextmanager
async def lifespan(app):
    """
    Manage application lifespan (startup and shutdown).

    The reading store is created lazily on the first request and
    released here on shutdown.
    """
    # Startup
    logger.info(f"Starting application (storage backend: {STORAGE_BACKEND})...")
    logger.info("Application started successfully")

    yield  # Application is running

    # Shutdown
    logger.info("Shutting down application...")
    await close_store()
    logger.info("Application shut down successfully")
