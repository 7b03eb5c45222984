"""Exception handlers mapping errors to {success: false, error} responses"""
from config.logger import logger
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from models.errors import MethodNotAllowed, MonitorError, StorageError, ValidationError
from models.schemas import ErrorResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

NUMBER_ERROR_TYPES = {"float_parsing", "float_type"}


def error_response(message: str, status_code: int, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
        headers=headers,
    )


async def monitor_error_handler(request: Request, exc: MonitorError):
    if isinstance(exc, StorageError):
        logger.error(f"{request.method} {request.url.path} - Storage error: {exc.message}")
        return error_response(f"Database error: {exc.message}", exc.status_code)
    return error_response(exc.message, exc.status_code)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    error_types = {error.get("type") for error in exc.errors()}
    if error_types & NUMBER_ERROR_TYPES:
        error = ValidationError("All values must be valid numbers")
    elif "json_invalid" in error_types:
        error = ValidationError("Request body must be valid JSON")
    else:
        error = ValidationError("Invalid request body")
    return error_response(error.message, error.status_code)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 405:
        allowed = (exc.headers or {}).get("Allow", "")
        error = MethodNotAllowed(f"Only {allowed} method allowed")
        return error_response(error.message, error.status_code, headers=exc.headers)
    return error_response(str(exc.detail), exc.status_code, headers=exc.headers)


def register_exception_handlers(app):
    app.add_exception_handler(MonitorError, monitor_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
