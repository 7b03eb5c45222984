"""Request logging middleware"""
import time

from config.logger import logger
from fastapi import Request


async def log_requests(request: Request, call_next):
    """Log failed requests (4xx, 5xx); successful ones only at debug level"""
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    client_host = request.client.host if request.client else "Unknown"

    # Devices post every minute, keep successful requests out of INFO
    if response.status_code >= 400:
        logger.warning(
            f"{request.method} {request.url.path} from {client_host} - "
            f"Status: {response.status_code} ({elapsed_ms:.1f} ms)"
        )
    else:
        logger.debug(f"{request.method} {request.url.path} from {client_host} ({elapsed_ms:.1f} ms)")
    return response
