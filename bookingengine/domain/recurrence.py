"""
Expansion of a repetition pattern into concrete occurrence dates.
"""

import uuid
from typing import List

from pendulum import DateTime

from .exceptions import ValidationError
from .models import RecurrencePattern

MAX_OCCURRENCES = 12
DEFAULT_RECURRENCE_MONTHS = 3

RECURRENCE_LABELS = {
    RecurrencePattern.NONE: "One-time",
    RecurrencePattern.WEEKLY: "Weekly",
    RecurrencePattern.BIWEEKLY: "Every 2 weeks",
    RecurrencePattern.MONTHLY: "Monthly",
}


def _occurrence(pattern: RecurrencePattern, start_date: DateTime, index: int) -> DateTime:
    # Offsets are computed from the start so month-end days do not drift
    # (Jan 31 -> Feb 28 -> Mar 31).
    if pattern == RecurrencePattern.WEEKLY:
        return start_date.add(weeks=index)
    if pattern == RecurrencePattern.BIWEEKLY:
        return start_date.add(weeks=2 * index)
    if pattern == RecurrencePattern.MONTHLY:
        return start_date.add(months=index)
    raise ValidationError(f"Unsupported recurrence pattern: {pattern}")


def generate_recurring_dates(
    pattern: RecurrencePattern,
    start_date: DateTime,
    end_date: DateTime,
    max_occurrences: int = MAX_OCCURRENCES
) -> List[DateTime]:
    """
    Expand a recurrence into its occurrence start times.

    Args:
        pattern: How often the booking repeats
        start_date: First occurrence (always included)
        end_date: Last allowed occurrence, inclusive
        max_occurrences: Lowers the cap; values above MAX_OCCURRENCES are clamped

    Returns:
        Chronological list with at most max_occurrences entries

    Raises:
        ValidationError: If the range is inverted or the pattern is unknown
    """
    pattern = RecurrencePattern(pattern)

    if pattern == RecurrencePattern.NONE:
        return [start_date]

    if end_date < start_date:
        raise ValidationError(
            f"Recurrence end {end_date} must not be before start {start_date}"
        )
    if max_occurrences < 1:
        raise ValidationError(f"max_occurrences must be at least 1, got {max_occurrences}")
    max_occurrences = min(max_occurrences, MAX_OCCURRENCES)

    dates: List[DateTime] = []
    index = 0
    current = start_date

    while current <= end_date and len(dates) < max_occurrences:
        dates.append(current)
        index += 1
        current = _occurrence(pattern, start_date, index)

    return dates


def recurrence_label(pattern: RecurrencePattern) -> str:
    """Human-readable name of a pattern."""
    return RECURRENCE_LABELS.get(RecurrencePattern(pattern), "One-time")


def default_recurrence_end(start_date: DateTime, months: int = DEFAULT_RECURRENCE_MONTHS) -> DateTime:
    """Default series end when the requester gives none."""
    return start_date.add(months=months)


def generate_series_id() -> str:
    """Identifier shared by every booking of one recurring request."""
    return f"series_{uuid.uuid4().hex[:16]}"
