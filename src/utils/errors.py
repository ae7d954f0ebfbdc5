"""
Domain exceptions for AgriLink

Each error carries the HTTP status it maps to and a client-safe message.
The API layer renders them as ``{"error": message}``.
"""

from typing import Optional


class AgriLinkError(Exception):
    """Base class for errors surfaced to API callers"""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AgriLinkError):
    """Malformed or inconsistent request data, rejected before storage access"""
    status_code = 422
    default_message = "Invalid request body"


class Unauthorized(AgriLinkError):
    """Missing or invalid caller credential"""
    status_code = 401
    default_message = "Unauthorized"


class PermissionDenied(AgriLinkError):
    """Caller is authenticated but the ownership policy rejects the operation"""
    status_code = 403
    default_message = "Operation not permitted"


class NotFound(AgriLinkError):
    status_code = 404
    default_message = "Not found"


class DeviceNotFound(NotFound):
    """Ingestion device id does not resolve to a moisture sensor"""
    default_message = "Device not found"


class DeviceNotFoundOrUnauthorized(NotFound):
    """Pump lookup miss; missing and foreign devices are not distinguished"""
    default_message = "Device not found or unauthorized"


class Conflict(AgriLinkError):
    status_code = 409
    default_message = "Conflict"


class PersistenceError(AgriLinkError):
    """The storage layer failed; nothing from the request was recorded"""
    status_code = 500
    default_message = "Failed to persist data"
