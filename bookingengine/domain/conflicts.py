"""
Double-booking detection.

This is the single place that decides whether a candidate interval collides
with a provider's existing bookings. It is used for display-time slot
availability and, authoritatively, by the store at commit time.
"""

from typing import Iterable, List, Optional, Protocol

from pendulum import DateTime

from .exceptions import ValidationError
from .models import DEFAULT_BOOKING_DURATION, BookingStatus


class BookedInterval(Protocol):
    """Anything that occupies provider time: a Booking or a storage row."""

    scheduled_at: Optional[DateTime]
    duration: Optional[int]
    status: BookingStatus


def _blocks_slot(booking: BookedInterval) -> bool:
    if booking.scheduled_at is None:
        return False
    return BookingStatus(booking.status).blocks_slot


def _overlaps(candidate_start: DateTime, candidate_end: DateTime, booking: BookedInterval) -> bool:
    booking_start = booking.scheduled_at
    booking_end = booking_start.add(minutes=booking.duration or DEFAULT_BOOKING_DURATION)
    # Half-open intervals: back-to-back bookings do not collide
    return candidate_start < booking_end and candidate_end > booking_start


def find_conflicts(
    candidate_start: DateTime,
    candidate_duration_minutes: int,
    existing_bookings: Iterable[BookedInterval],
    exclude_id: Optional[str] = None
) -> List[BookedInterval]:
    """
    Return every existing booking that overlaps the candidate interval.

    Cancelled, no-show and unscheduled bookings never conflict. exclude_id
    skips the booking being moved during a reschedule.
    """
    if candidate_duration_minutes <= 0:
        raise ValidationError(
            f"Duration must be positive, got {candidate_duration_minutes}"
        )

    candidate_end = candidate_start.add(minutes=candidate_duration_minutes)

    return [
        booking for booking in existing_bookings
        if _blocks_slot(booking)
        and (exclude_id is None or getattr(booking, "id", None) != exclude_id)
        and _overlaps(candidate_start, candidate_end, booking)
    ]


def has_conflict(
    candidate_start: DateTime,
    candidate_duration_minutes: int,
    existing_bookings: Iterable[BookedInterval],
    exclude_id: Optional[str] = None
) -> bool:
    """Check whether the candidate interval overlaps any slot-holding booking."""
    if candidate_duration_minutes <= 0:
        raise ValidationError(
            f"Duration must be positive, got {candidate_duration_minutes}"
        )

    candidate_end = candidate_start.add(minutes=candidate_duration_minutes)

    for booking in existing_bookings:
        if not _blocks_slot(booking):
            continue
        if exclude_id is not None and getattr(booking, "id", None) == exclude_id:
            continue
        if _overlaps(candidate_start, candidate_end, booking):
            return True

    return False
