"""
Tests for the conflict detector.
"""

from dataclasses import dataclass
from typing import Optional

import pendulum
import pytest

from bookingengine.domain.conflicts import find_conflicts, has_conflict
from bookingengine.domain.exceptions import ValidationError
from bookingengine.domain.models import Booking, BookingStatus, BookingType

TZ = "Europe/Berlin"


def _at(value: str):
    return pendulum.parse(value, tz=TZ)


def _booking(start: Optional[str], duration=30, status=BookingStatus.CONFIRMED, booking_id="b1") -> Booking:
    return Booking(
        id=booking_id,
        type=BookingType.TOUR,
        provider_id="p1",
        requester_id="u1",
        status=status,
        scheduled_at=_at(start) if start else None,
        duration=duration
    )


@dataclass
class StorageRow:
    """A bare storage row with a plain-string status."""
    scheduled_at: Optional[pendulum.DateTime]
    duration: Optional[int]
    status: str


class TestHasConflict:
    """Tests for has_conflict."""

    def test_partial_overlap_conflicts(self):
        """Test that 10:15 collides with a 10:00-10:30 booking."""
        existing = [_booking("2024-11-25 10:00")]

        assert has_conflict(_at("2024-11-25 10:15"), 30, existing)

    def test_back_to_back_does_not_conflict(self):
        """Test that half-open intervals allow adjacent bookings."""
        existing = [_booking("2024-11-25 10:00")]

        assert not has_conflict(_at("2024-11-25 10:30"), 30, existing)
        assert not has_conflict(_at("2024-11-25 09:30"), 30, existing)

    def test_containing_interval_conflicts(self):
        """Test that a long candidate spanning a booking collides."""
        existing = [_booking("2024-11-25 10:00", duration=15)]

        assert has_conflict(_at("2024-11-25 09:00"), 120, existing)

    def test_uses_booking_duration(self):
        """Test that the existing booking's own duration defines its end."""
        existing = [_booking("2024-11-25 10:00", duration=90)]

        assert has_conflict(_at("2024-11-25 11:00"), 30, existing)
        assert not has_conflict(_at("2024-11-25 11:30"), 30, existing)

    @pytest.mark.parametrize("status", [BookingStatus.CANCELLED, BookingStatus.NO_SHOW])
    def test_released_statuses_are_ignored(self, status):
        """Test that cancelled and no-show bookings do not conflict."""
        existing = [_booking("2024-11-25 10:00", status=status)]

        assert not has_conflict(_at("2024-11-25 10:00"), 30, existing)

    @pytest.mark.parametrize("status", [BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.COMPLETED])
    def test_holding_statuses_conflict(self, status):
        """Test that pending, confirmed and completed bookings hold their slot."""
        existing = [_booking("2024-11-25 10:00", status=status)]

        assert has_conflict(_at("2024-11-25 10:00"), 30, existing)

    def test_unscheduled_bookings_are_ignored(self):
        """Test that bookings without a start never conflict."""
        existing = [_booking(None)]

        assert not has_conflict(_at("2024-11-25 10:00"), 30, existing)

    def test_storage_rows_with_string_status(self):
        """Test that plain rows with null duration are accepted."""
        existing = [
            StorageRow(scheduled_at=_at("2024-11-25 10:00"), duration=None, status="CONFIRMED"),
            StorageRow(scheduled_at=_at("2024-11-25 12:00"), duration=60, status="CANCELLED"),
        ]

        assert has_conflict(_at("2024-11-25 10:20"), 10, existing)
        assert not has_conflict(_at("2024-11-25 10:30"), 30, existing)
        assert not has_conflict(_at("2024-11-25 12:00"), 30, existing)

    def test_exclude_id_skips_booking(self):
        """Test that a booking can be excluded (used when rescheduling)."""
        existing = [_booking("2024-11-25 10:00", booking_id="moving")]

        assert not has_conflict(_at("2024-11-25 10:15"), 30, existing, exclude_id="moving")

    def test_other_timezones_compare_by_instant(self):
        """Test that overlap is decided on absolute time."""
        existing = [_booking("2024-11-25 10:00")]  # 09:00 UTC

        assert has_conflict(pendulum.parse("2024-11-25 09:10", tz="UTC"), 10, existing)

    @pytest.mark.parametrize("duration", [0, -30])
    def test_non_positive_duration_raises(self, duration):
        """Test that a candidate duration must be positive."""
        with pytest.raises(ValidationError):
            has_conflict(_at("2024-11-25 10:00"), duration, [])


class TestFindConflicts:
    """Tests for find_conflicts."""

    def test_returns_all_overlapping_bookings(self):
        """Test that every overlapping booking is reported."""
        existing = [
            _booking("2024-11-25 10:00", booking_id="a"),
            _booking("2024-11-25 10:30", booking_id="b"),
            _booking("2024-11-25 11:00", booking_id="c"),
        ]

        clashes = find_conflicts(_at("2024-11-25 10:15"), 30, existing)

        assert [b.id for b in clashes] == ["a", "b"]
