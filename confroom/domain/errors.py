"""Error taxonomy for booking operations.

Every error carries a machine-readable code, a user-safe message and the
HTTP status the API layer answers with.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from confroom.domain.models import ConflictResult


class ErrorCode(Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    NOT_FOUND = "NOT_FOUND"
    BOOKING_CONFLICT = "BOOKING_CONFLICT"
    AUDIT_WRITE_FAILED = "AUDIT_WRITE_FAILED"


class BookingError(Exception):
    """Base error with code and user-safe message."""

    status_code = 500

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(BookingError):
    """Raised for missing or malformed input and broken date/amount invariants."""

    status_code = 400

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(ErrorCode.VALIDATION_ERROR, message)
        self.field = field


class InvalidTransitionError(ValidationError):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            f"Cannot change booking status from {current} to {target}",
            field="status",
        )
        self.code = ErrorCode.INVALID_TRANSITION
        self.current = current
        self.target = target


class NotFoundError(BookingError):
    """Raised when a booking (or the room it points at) does not exist."""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str) -> None:
        super().__init__(
            ErrorCode.NOT_FOUND,
            f"{resource_type.replace('_', ' ').capitalize()} not found",
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ConflictError(BookingError):
    """Raised when a booking overlaps a confirmed booking in the same room."""

    status_code = 409

    def __init__(self, result: ConflictResult) -> None:
        super().__init__(
            ErrorCode.BOOKING_CONFLICT,
            "Booking conflict detected with "
            f"{result.conflicting_event_name} ({result.conflicting_booking_number})",
        )
        self.result = result


class AuditWriteFailure(BookingError):
    """Raised by an audit store that could not persist an entry.

    Never reaches the end user: the recorder logs and drops it.
    """

    def __init__(self, message: str = "Failed to write audit entry") -> None:
        super().__init__(ErrorCode.AUDIT_WRITE_FAILED, message)
