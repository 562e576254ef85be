"""
Domain layer - Pure business logic without external dependencies.
"""

from .conflicts import find_conflicts, has_conflict
from .exceptions import (
    BookingEngineError,
    BookingNotFoundError,
    ConflictError,
    FormatError,
    InvalidStateTransition,
    ValidationError,
)
from .lifecycle import (
    BookingAction,
    TransitionResult,
    allowed_actions,
    can_transition,
    cancel,
    confirm,
    decline,
    mark_completed,
    mark_no_show,
    reschedule,
)
from .models import (
    Booking,
    BookingStatus,
    BookingType,
    DayAvailability,
    ProviderSchedule,
    RecurrencePattern,
    TimeSlot,
)
from .recurrence import generate_recurring_dates
from .slot_generator import SlotGenerator, generate_available_slots
from .time_utils import format_time, is_lead_time_satisfied, parse_time

__all__ = [
    "Booking",
    "BookingAction",
    "BookingEngineError",
    "BookingNotFoundError",
    "BookingStatus",
    "BookingType",
    "ConflictError",
    "DayAvailability",
    "FormatError",
    "InvalidStateTransition",
    "ProviderSchedule",
    "RecurrencePattern",
    "SlotGenerator",
    "TimeSlot",
    "TransitionResult",
    "ValidationError",
    "allowed_actions",
    "can_transition",
    "cancel",
    "confirm",
    "decline",
    "find_conflicts",
    "format_time",
    "generate_available_slots",
    "generate_recurring_dates",
    "has_conflict",
    "is_lead_time_satisfied",
    "mark_completed",
    "mark_no_show",
    "parse_time",
    "reschedule",
]
