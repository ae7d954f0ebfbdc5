"""
Utility modules for AgriLink
"""

from .clock import as_utc, utcnow
from .errors import (
    AgriLinkError,
    Conflict,
    DeviceNotFound,
    DeviceNotFoundOrUnauthorized,
    NotFound,
    PermissionDenied,
    PersistenceError,
    Unauthorized,
    ValidationError,
)
from .logger import get_logger, setup_logging

__all__ = [
    'as_utc',
    'utcnow',
    'AgriLinkError',
    'Conflict',
    'DeviceNotFound',
    'DeviceNotFoundOrUnauthorized',
    'NotFound',
    'PermissionDenied',
    'PersistenceError',
    'Unauthorized',
    'ValidationError',
    'get_logger',
    'setup_logging'
]
