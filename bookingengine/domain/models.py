"""
Domain models for provider schedules, slots and bookings.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional, Tuple

import pendulum
from pendulum import Date, DateTime

from .exceptions import ValidationError
from .time_utils import format_time_for_display, parse_time

DEFAULT_BOOKING_DURATION = 30

# pendulum day_of_week: 0=Monday, 6=Sunday
WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def blocks_slot(self) -> bool:
        """Whether a booking in this status still occupies its time interval."""
        return self not in (BookingStatus.CANCELLED, BookingStatus.NO_SHOW)


TERMINAL_STATUSES = frozenset(
    {BookingStatus.CANCELLED, BookingStatus.COMPLETED, BookingStatus.NO_SHOW}
)


class BookingType(str, Enum):
    TOUR = "TOUR"
    ENROLLMENT = "ENROLLMENT"


class RecurrencePattern(str, Enum):
    NONE = "NONE"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"


def weekday_name(day: Date) -> str:
    """Return the three-letter weekday name ("Mon".."Sun") for a date."""
    return WEEKDAY_NAMES[day.day_of_week]


@dataclass(frozen=True)
class ProviderSchedule:
    """
    A provider's weekly operating hours.

    Opening and closing times are wall-clock values on the same calendar day
    in the provider's timezone. Windows that wrap past midnight are not
    supported and simply produce no slots.
    """
    opening_time: str
    closing_time: str
    operating_days: FrozenSet[str]
    timezone: str = "UTC"

    def __post_init__(self):
        # Fail fast on malformed wall-clock values
        parse_time(self.opening_time)
        parse_time(self.closing_time)

        days = frozenset(self.operating_days)
        unknown = sorted(days - set(WEEKDAY_NAMES))
        if unknown:
            raise ValidationError(
                f"Unknown weekday name(s) {unknown}; expected any of {list(WEEKDAY_NAMES)}"
            )
        object.__setattr__(self, "operating_days", days)

    def is_open_on(self, day: Date) -> bool:
        """Check whether the provider operates on the given date."""
        return weekday_name(day) in self.operating_days


@dataclass(frozen=True)
class TimeSlot:
    """A candidate start time. Recomputed on every query, never stored."""
    time: str
    datetime: DateTime
    available: bool

    @property
    def display_time(self) -> str:
        return format_time_for_display(self.time)


@dataclass(frozen=True)
class DayAvailability:
    """All candidate slots of one calendar day."""
    date: Date
    day_of_week: str
    is_open: bool
    slots: Tuple[TimeSlot, ...] = ()

    @property
    def date_string(self) -> str:
        return self.date.to_date_string()

    @property
    def available_count(self) -> int:
        return sum(1 for slot in self.slots if slot.available)

    def available_slots(self) -> Tuple[TimeSlot, ...]:
        return tuple(slot for slot in self.slots if slot.available)


@dataclass(frozen=True)
class Booking:
    """
    A tour or enrollment request for a provider.

    Bookings are immutable values: lifecycle transitions return a new
    instance and leave the original untouched.
    """
    id: str
    type: BookingType
    provider_id: str
    requester_id: str
    status: BookingStatus = BookingStatus.PENDING
    scheduled_at: Optional[DateTime] = None
    duration: Optional[int] = DEFAULT_BOOKING_DURATION
    subject_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: DateTime = field(default_factory=pendulum.now)
    series_id: Optional[str] = None
    recurrence: RecurrencePattern = RecurrencePattern.NONE
    confirmed_at: Optional[DateTime] = None
    cancelled_at: Optional[DateTime] = None
    cancel_reason: Optional[str] = None

    def __post_init__(self):
        if self.duration is not None and self.duration <= 0:
            raise ValidationError(f"Duration must be positive, got {self.duration}")

    @property
    def effective_duration(self) -> int:
        """Duration in minutes, falling back to the default when unset."""
        return self.duration or DEFAULT_BOOKING_DURATION

    @property
    def ends_at(self) -> Optional[DateTime]:
        if self.scheduled_at is None:
            return None
        return self.scheduled_at.add(minutes=self.effective_duration)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal
