"""
Core business logic for turning operating hours into bookable slots.

Pure domain logic: no storage, no clock reads beyond an injectable "now".
"""

import logging
from typing import Iterable, List, Optional, Tuple

import pendulum
from pendulum import Date, DateTime

from .conflicts import BookedInterval, has_conflict
from .exceptions import ValidationError
from .models import DayAvailability, ProviderSchedule, TimeSlot, weekday_name
from .time_utils import DEFAULT_LEAD_HOURS, format_time, is_lead_time_satisfied, parse_time

logger = logging.getLogger(__name__)

DEFAULT_DAYS_AHEAD = 14
DEFAULT_SLOT_DURATION = 30

# The last slot must start at least this long before closing
CLOSING_BUFFER_MINUTES = 60


class SlotGenerator:
    """
    Builds a day-by-day availability calendar for one provider.

    Algorithm:
    1. Normalize "now" to midnight in the provider's timezone
    2. Walk days_ahead consecutive days, marking each open or closed
    3. On open days, step from opening time in slot-sized increments,
       leaving at least one hour before closing
    4. A slot is available when it respects the lead time and does not
       collide with an existing booking
    """

    def __init__(
        self,
        schedule: ProviderSchedule,
        min_lead_hours: int = DEFAULT_LEAD_HOURS
    ):
        self.schedule = schedule
        self.min_lead_hours = min_lead_hours

    def generate(
        self,
        existing_bookings: Iterable[BookedInterval] = (),
        days_ahead: int = DEFAULT_DAYS_AHEAD,
        slot_duration_minutes: int = DEFAULT_SLOT_DURATION,
        now: Optional[DateTime] = None
    ) -> List[DayAvailability]:
        """
        Generate availability for the next days_ahead days, starting today.

        Args:
            existing_bookings: The provider's bookings (any status)
            days_ahead: Number of calendar days to cover
            slot_duration_minutes: Step between slot starts and the length
                checked for conflicts
            now: Reference instant; defaults to the current time

        Returns:
            One DayAvailability per day, in chronological order
        """
        if days_ahead < 1:
            raise ValidationError(f"days_ahead must be at least 1, got {days_ahead}")
        if slot_duration_minutes <= 0:
            raise ValidationError(
                f"Slot duration must be positive, got {slot_duration_minutes}"
            )

        tz = self.schedule.timezone
        now = (now or pendulum.now(tz)).in_timezone(tz)
        today = now.start_of("day").date()
        bookings = list(existing_bookings)

        days = [
            self._build_day(today.add(days=offset), bookings, slot_duration_minutes, now)
            for offset in range(days_ahead)
        ]

        logger.debug(
            "Generated %d day(s) of availability from %s with %d booking(s) considered",
            len(days), today, len(bookings)
        )
        return days

    def _build_day(
        self,
        day: Date,
        bookings: List[BookedInterval],
        slot_duration_minutes: int,
        now: DateTime
    ) -> DayAvailability:
        if not self.schedule.is_open_on(day):
            return DayAvailability(date=day, day_of_week=weekday_name(day), is_open=False)

        slots = tuple(
            TimeSlot(
                time=label,
                datetime=start,
                available=(
                    is_lead_time_satisfied(start, now, self.min_lead_hours)
                    and not has_conflict(start, slot_duration_minutes, bookings)
                )
            )
            for label, start in self._slot_starts(day, slot_duration_minutes)
        )

        return DayAvailability(date=day, day_of_week=weekday_name(day), is_open=True, slots=slots)

    def _slot_starts(self, day: Date, slot_duration_minutes: int) -> List[Tuple[str, DateTime]]:
        """
        ("HH:MM", instant) pairs for one open day.

        Steps are taken on the wall clock, so a DST change shifts instants
        but not the slot labels.
        """
        open_h, open_m = parse_time(self.schedule.opening_time)
        close_h, close_m = parse_time(self.schedule.closing_time)

        current = open_h * 60 + open_m
        last_start = close_h * 60 + close_m - CLOSING_BUFFER_MINUTES

        starts: List[Tuple[str, DateTime]] = []
        while current <= last_start:
            hours, minutes = divmod(current, 60)
            starts.append((
                format_time(hours, minutes),
                pendulum.datetime(
                    day.year, day.month, day.day, hours, minutes,
                    tz=self.schedule.timezone
                )
            ))
            current += slot_duration_minutes

        return starts


def generate_available_slots(
    schedule: ProviderSchedule,
    existing_bookings: Iterable[BookedInterval] = (),
    days_ahead: int = DEFAULT_DAYS_AHEAD,
    slot_duration_minutes: int = DEFAULT_SLOT_DURATION,
    now: Optional[DateTime] = None,
    min_lead_hours: int = DEFAULT_LEAD_HOURS
) -> List[DayAvailability]:
    """Functional shortcut for SlotGenerator(schedule).generate(...)."""
    return SlotGenerator(schedule, min_lead_hours=min_lead_hours).generate(
        existing_bookings=existing_bookings,
        days_ahead=days_ahead,
        slot_duration_minutes=slot_duration_minutes,
        now=now
    )


def get_slots_for_date(availability: Iterable[DayAvailability], date_string: str) -> List[TimeSlot]:
    """Return the slots of the day matching "YYYY-MM-DD", or an empty list."""
    for day in availability:
        if day.date_string == date_string:
            return list(day.slots)
    return []


def is_slot_available(availability: Iterable[DayAvailability], moment: DateTime) -> bool:
    """Check whether moment matches an available slot in the calendar."""
    for day in availability:
        for slot in day.slots:
            if slot.datetime == moment:
                return slot.available
    return False
