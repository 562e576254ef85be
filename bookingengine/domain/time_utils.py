"""
Wall-clock helpers shared by the slot generator and the lifecycle rules.
"""

from typing import Tuple

from pendulum import DateTime

from .exceptions import FormatError

DEFAULT_LEAD_HOURS = 24


def parse_time(value: str) -> Tuple[int, int]:
    """
    Parse an "HH:MM" string into an (hours, minutes) tuple.

    Raises:
        FormatError: If the value is not a valid 24h wall-clock time
    """
    if not isinstance(value, str):
        raise FormatError(f"Time must be a string in HH:MM format, got {value!r}")

    parts = value.strip().split(":")
    if len(parts) != 2 or not all(part.isdigit() for part in parts):
        raise FormatError(f"Time must be in HH:MM format, got {value!r}")

    hours, minutes = int(parts[0]), int(parts[1])
    if not 0 <= hours <= 23 or not 0 <= minutes <= 59:
        raise FormatError(f"Time out of range: {value!r}")

    return hours, minutes


def format_time(hours: int, minutes: int) -> str:
    """Format hours and minutes as a zero-padded "HH:MM" string."""
    return f"{hours:02d}:{minutes:02d}"


def format_time_for_display(value: str) -> str:
    """Format "HH:MM" for humans, e.g. "13:30" -> "1:30 PM"."""
    hours, minutes = parse_time(value)
    suffix = "PM" if hours >= 12 else "AM"
    display_hour = hours % 12 or 12
    return f"{display_hour}:{minutes:02d} {suffix}"


def hours_until(moment: DateTime, now: DateTime) -> float:
    """Return the (possibly negative) number of hours from now until moment."""
    return (moment - now).total_seconds() / 3600


def is_lead_time_satisfied(
    candidate: DateTime,
    now: DateTime,
    min_lead_hours: int = DEFAULT_LEAD_HOURS
) -> bool:
    """Check that candidate lies at least min_lead_hours after now."""
    return candidate >= now.add(hours=min_lead_hours)
