"""Error taxonomy shared by the store and the HTTP layer"""


class MonitorError(Exception):
    """Base class for all application errors"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(MonitorError):
    """Missing, non-numeric or out-of-range input field"""
    status_code = 400


class StorageError(MonitorError):
    """Persistence medium unreachable, timed out or corrupt"""
    status_code = 500


class MethodNotAllowed(MonitorError):
    """Wrong HTTP verb for an endpoint"""
    status_code = 405
