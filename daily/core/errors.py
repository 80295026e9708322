"""
Typed errors raised by the stores.

Stores never retry and never translate errors into HTTP responses themselves. The app registers a single handler for
`DailyError` that renders `{"error": <kind>, "detail": <message>}` with the status code carried by the error class.
"""
from typing import Any, Optional


class DailyError(Exception):
    """Base class for all store errors."""

    status_code: int = 500
    kind: str = "error"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFound(DailyError):
    """An id or username lookup missed."""

    status_code = 404
    kind = "not_found"


class Conflict(DailyError):
    """Duplicate username, duplicate friend request or already friends."""

    status_code = 409
    kind = "conflict"


class SelfReferenceError(DailyError):
    status_code = 400
    kind = "self_reference"


class InvalidState(DailyError):
    """The record exists but is not in a state that allows the operation."""

    status_code = 409
    kind = "invalid_state"


class DailyLimitExceeded(DailyError):
    """The author already posted during the current calendar day."""

    status_code = 403
    kind = "daily_limit_exceeded"


class ValidationError(DailyError):
    """A required field is blank or malformed."""

    status_code = 400
    kind = "validation_error"

    def __init__(self, field: str, message: str):
        super().__init__(message, {"field": field})
        self.field = field


class StorageError(DailyError):
    """The underlying database failed. The in-flight operation was rolled back."""

    status_code = 503
    kind = "storage_error"
