"""
In-memory booking store.

Reference implementation of the BookingStore protocol used by tests and the
CLI. It shows the commit discipline a real storage layer must provide:
conflict re-check inside the write, and status-guarded updates.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pendulum

from ..domain.conflicts import find_conflicts
from ..domain.exceptions import ConflictError
from ..domain.models import Booking, BookingStatus, BookingType, RecurrencePattern

logger = logging.getLogger(__name__)


class MemoryBookingStore:
    """
    Thread-safe dict-backed store.

    A single lock serialises writes, which stands in for the database
    transaction around "check conflicts, then insert" and for
    "UPDATE ... WHERE id = ? AND status = ?".
    """

    def __init__(self, bookings: Iterable[Booking] = ()):
        self._lock = threading.Lock()
        self._bookings: Dict[str, Booking] = {b.id: b for b in bookings}

    def get(self, booking_id: str) -> Optional[Booking]:
        return self._bookings.get(booking_id)

    def list_for_provider(self, provider_id: str) -> List[Booking]:
        """All bookings of a provider, ordered by start (unscheduled last)."""
        bookings = [b for b in self._bookings.values() if b.provider_id == provider_id]
        return sorted(
            bookings,
            key=lambda b: (b.scheduled_at is None, b.scheduled_at or b.created_at)
        )

    def list_series(self, series_id: str) -> List[Booking]:
        bookings = [b for b in self._bookings.values() if b.series_id == series_id]
        return sorted(bookings, key=lambda b: b.scheduled_at or b.created_at)

    def insert_if_free(self, booking: Booking) -> Booking:
        """
        Insert a booking unless its interval is already taken.

        Raises:
            ConflictError: If another slot-holding booking overlaps
        """
        with self._lock:
            if booking.id in self._bookings:
                raise ValueError(f"Booking {booking.id} already exists")

            if booking.scheduled_at is not None:
                provider_bookings = [
                    b for b in self._bookings.values() if b.provider_id == booking.provider_id
                ]
                clashes = find_conflicts(
                    booking.scheduled_at, booking.effective_duration, provider_bookings
                )
                if clashes:
                    logger.warning(
                        "Rejected booking %s at %s: overlaps %s",
                        booking.id, booking.scheduled_at, [c.id for c in clashes]
                    )
                    raise ConflictError(booking.scheduled_at)

            self._bookings[booking.id] = booking
            return booking

    def compare_and_set(
        self,
        updated: Booking,
        expected_status: BookingStatus,
        check_conflicts: bool = False
    ) -> bool:
        """
        Replace a booking only if its stored status still equals expected_status.

        With check_conflicts the new interval is re-validated against the
        provider's other bookings inside the same critical section.

        Returns:
            False when the stored status has moved on (or the booking vanished)

        Raises:
            ConflictError: If check_conflicts is set and the new interval is taken
        """
        with self._lock:
            current = self._bookings.get(updated.id)
            if current is None or current.status != expected_status:
                return False

            if check_conflicts and updated.scheduled_at is not None:
                others = [
                    b for b in self._bookings.values() if b.provider_id == updated.provider_id
                ]
                if find_conflicts(
                    updated.scheduled_at, updated.effective_duration, others, exclude_id=updated.id
                ):
                    raise ConflictError(updated.scheduled_at)

            self._bookings[updated.id] = updated
            return True

    def __len__(self) -> int:
        return len(self._bookings)

    @classmethod
    def load_from_json(cls, data_file: Path, timezone: str = "UTC") -> "MemoryBookingStore":
        """
        Load a booking snapshot from a JSON list.

        Each entry needs id, provider_id, requester_id and may carry type,
        status, scheduled_at (ISO 8601), duration, subject_id, notes and
        series_id. Invalid entries are skipped with a warning.
        """
        with open(data_file, "r", encoding="utf-8") as f:
            raw = json.load(f)

        bookings: List[Booking] = []
        for entry in raw:
            try:
                bookings.append(booking_from_dict(entry, timezone))
            except (KeyError, ValueError) as exc:
                logger.warning("Skipping invalid booking entry %r: %s", entry.get("id"), exc)

        return cls(bookings)


def booking_from_dict(entry: dict, timezone: str = "UTC") -> Booking:
    """Build a Booking from a plain mapping (JSON snapshot row)."""
    scheduled_at = entry.get("scheduled_at")
    created_at = entry.get("created_at")

    return Booking(
        id=str(entry["id"]),
        type=BookingType(entry.get("type", BookingType.TOUR.value)),
        provider_id=str(entry["provider_id"]),
        requester_id=str(entry["requester_id"]),
        status=BookingStatus(entry.get("status", BookingStatus.PENDING.value)),
        scheduled_at=pendulum.parse(scheduled_at, tz=timezone) if scheduled_at else None,
        duration=entry.get("duration"),
        subject_id=entry.get("subject_id"),
        notes=entry.get("notes"),
        created_at=pendulum.parse(created_at, tz=timezone) if created_at else pendulum.now(timezone),
        series_id=entry.get("series_id"),
        recurrence=RecurrencePattern(entry.get("recurrence", RecurrencePattern.NONE.value)),
    )
