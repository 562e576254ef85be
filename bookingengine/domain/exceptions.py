"""
Domain-specific exception hierarchy for the booking engine.
"""

from __future__ import annotations


class BookingEngineError(Exception):
    """Base class for all engine-level errors."""

    code = "booking_error"


class FormatError(BookingEngineError, ValueError):
    """Raised when a wall-clock string is not a valid "HH:MM" value."""

    code = "format_error"


class ValidationError(BookingEngineError, ValueError):
    """Raised for impossible ranges, bad durations or unmet lead time."""

    code = "validation_error"


class InvalidStateTransition(BookingEngineError):
    """Raised when an action is not legal for the booking's current status."""

    code = "invalid_state_transition"

    def __init__(self, status, action, message: str | None = None):
        self.status = status
        self.action = action
        super().__init__(
            message or f"Cannot {action.value} a booking in status {status.value}"
        )


class ConflictError(BookingEngineError):
    """Raised when a commit would double-book a provider."""

    code = "conflict"

    def __init__(self, scheduled_at, message: str | None = None):
        self.scheduled_at = scheduled_at
        super().__init__(message or "This time slot is no longer available")


class BookingNotFoundError(BookingEngineError):
    """Raised when a booking or series cannot be found in the store."""

    code = "not_found"
