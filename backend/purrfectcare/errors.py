"""
PurrfectCare Backend - Error Types

Purpose: Domain errors raised by the reminder services. The API layer maps
them to HTTP responses via ``status_code``.
"""

from typing import Any, Dict, Optional


class ReminderError(Exception):
    """Base class for reminder domain errors"""

    status_code: int = 500
    error_code: str = "REMINDER_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(ReminderError):
    """Missing or invalid field on a lifecycle call (never retried)"""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class NotFoundError(ReminderError):
    """Id does not resolve, is soft-deleted, or belongs to another pet"""

    status_code = 404
    error_code = "NOT_FOUND"


class ForbiddenError(ReminderError):
    """Acting owner does not control the pet"""

    status_code = 403
    error_code = "FORBIDDEN"


class TransientDispatchError(ReminderError):
    """Mail transport failure; the reminder stays eligible for the next sweep"""

    status_code = 503
    error_code = "DISPATCH_FAILED"
