"""
Tests for slot generator.
"""

import pendulum
import pytest

from bookingengine.domain.exceptions import ValidationError
from bookingengine.domain.models import Booking, BookingStatus, BookingType, ProviderSchedule
from bookingengine.domain.slot_generator import (
    SlotGenerator,
    generate_available_slots,
    get_slots_for_date,
    is_slot_available,
)

TZ = "Europe/Berlin"
WEEKDAYS = frozenset({"Mon", "Tue", "Wed", "Thu", "Fri"})


def _schedule(opening="07:00", closing="18:00", days=WEEKDAYS) -> ProviderSchedule:
    return ProviderSchedule(opening_time=opening, closing_time=closing, operating_days=days, timezone=TZ)


def _booking(start: str, duration=30, status=BookingStatus.CONFIRMED, booking_id="b1") -> Booking:
    return Booking(
        id=booking_id,
        type=BookingType.TOUR,
        provider_id="p1",
        requester_id="u1",
        status=status,
        scheduled_at=pendulum.parse(start, tz=TZ),
        duration=duration
    )


class TestSlotGenerator:
    """Tests for SlotGenerator."""

    def test_full_weekday_without_bookings(self):
        """Test a Monday 07:00-18:00 yields 21 available slots from 07:00 to 17:00."""
        now = pendulum.parse("2024-11-24 06:00", tz=TZ)  # Sunday, > 24h before Monday 07:00

        days = generate_available_slots(_schedule(), [], days_ahead=2, slot_duration_minutes=30, now=now)

        sunday, monday = days
        assert not sunday.is_open
        assert sunday.slots == ()

        assert monday.is_open
        assert monday.day_of_week == "Mon"
        assert len(monday.slots) == 21
        assert monday.slots[0].time == "07:00"
        assert monday.slots[-1].time == "17:00"
        assert all(slot.available for slot in monday.slots)

    def test_last_slot_leaves_one_hour_before_closing(self):
        """Test that no slot starts later than closing minus one hour."""
        now = pendulum.parse("2024-11-20 00:00", tz=TZ)
        schedule = _schedule(opening="08:15", closing="12:40")

        days = generate_available_slots(schedule, [], days_ahead=7, slot_duration_minutes=45, now=now)

        for day in days:
            for slot in day.slots:
                assert "08:15" <= slot.time <= "11:40"
        open_day = next(day for day in days if day.is_open)
        assert [s.time for s in open_day.slots] == ["08:15", "09:00", "09:45", "10:30", "11:15"]

    def test_horizon_length_and_order(self):
        """Test that exactly days_ahead consecutive days are produced."""
        now = pendulum.parse("2024-11-22 15:00", tz=TZ)  # Friday

        days = generate_available_slots(_schedule(), [], days_ahead=14, now=now)

        assert len(days) == 14
        assert days[0].date_string == "2024-11-22"
        assert days[-1].date_string == "2024-12-05"
        assert [d.day_of_week for d in days[:4]] == ["Fri", "Sat", "Sun", "Mon"]
        assert [d.is_open for d in days[:4]] == [True, False, False, True]

    def test_slots_inside_lead_time_are_unavailable(self):
        """Test that slots less than 24h ahead are never available."""
        now = pendulum.parse("2024-11-25 10:00", tz=TZ)  # Monday

        monday, tuesday = generate_available_slots(_schedule(), [], days_ahead=2, now=now)

        assert not any(slot.available for slot in monday.slots)
        unavailable = [s.time for s in tuesday.slots if not s.available]
        assert unavailable == ["07:00", "07:30", "08:00", "08:30", "09:00", "09:30"]
        for slot in tuesday.slots:
            assert slot.available == (slot.datetime >= now.add(hours=24))

    def test_booked_slots_are_unavailable(self):
        """Test that slots overlapping a confirmed booking are taken."""
        now = pendulum.parse("2024-11-20 00:00", tz=TZ)
        bookings = [_booking("2024-11-25 10:00", duration=60)]

        days = generate_available_slots(_schedule(), bookings, days_ahead=7, now=now)
        monday = get_slots_for_date(days, "2024-11-25")

        taken = [s.time for s in monday if not s.available]
        assert taken == ["10:00", "10:30"]

    def test_cancelled_and_no_show_bookings_free_the_slot(self):
        """Test that released bookings do not block slots."""
        now = pendulum.parse("2024-11-20 00:00", tz=TZ)
        bookings = [
            _booking("2024-11-25 10:00", status=BookingStatus.CANCELLED, booking_id="b1"),
            _booking("2024-11-25 11:00", status=BookingStatus.NO_SHOW, booking_id="b2"),
        ]

        days = generate_available_slots(_schedule(), bookings, days_ahead=7, now=now)

        assert all(slot.available for slot in get_slots_for_date(days, "2024-11-25"))

    def test_closed_days_have_no_slots(self):
        """Test that weekends are closed."""
        now = pendulum.parse("2024-11-22 00:00", tz=TZ)  # Friday

        days = generate_available_slots(_schedule(), [], days_ahead=3, now=now)

        assert [(d.day_of_week, d.is_open, len(d.slots)) for d in days] == [
            ("Fri", True, 21),
            ("Sat", False, 0),
            ("Sun", False, 0),
        ]

    def test_window_wrapping_midnight_has_no_slots(self):
        """Test that a closing time before the opening time yields nothing."""
        now = pendulum.parse("2024-11-20 00:00", tz=TZ)
        schedule = _schedule(opening="20:00", closing="02:00")

        days = generate_available_slots(schedule, [], days_ahead=3, now=now)

        assert all(day.slots == () for day in days)
        assert any(day.is_open for day in days)

    def test_generation_is_repeatable(self):
        """Test that identical inputs and now give identical output."""
        now = pendulum.parse("2024-11-20 08:00", tz=TZ)
        bookings = [_booking("2024-11-25 10:00")]
        generator = SlotGenerator(_schedule())

        first = generator.generate(bookings, days_ahead=7, now=now)
        second = generator.generate(bookings, days_ahead=7, now=now)

        assert first == second

    def test_now_is_normalized_to_provider_timezone(self):
        """Test that 'today' is taken in the provider's timezone."""
        # 23:30 UTC on Sunday is already Monday in Berlin
        now = pendulum.parse("2024-11-24 23:30", tz="UTC")

        days = generate_available_slots(_schedule(), [], days_ahead=1, now=now)

        assert days[0].date_string == "2024-11-25"
        assert days[0].slots[0].datetime.timezone_name == TZ

    @pytest.mark.parametrize("days_ahead, duration", [(0, 30), (3, 0), (3, -30)])
    def test_invalid_arguments_raise(self, days_ahead, duration):
        """Test that a non-positive horizon or slot size is rejected."""
        with pytest.raises(ValidationError):
            generate_available_slots(_schedule(), [], days_ahead=days_ahead, slot_duration_minutes=duration)

    def test_is_slot_available(self):
        """Test lookup of a specific datetime in the calendar."""
        now = pendulum.parse("2024-11-20 00:00", tz=TZ)
        days = generate_available_slots(_schedule(), [_booking("2024-11-25 10:00")], days_ahead=7, now=now)

        assert is_slot_available(days, pendulum.parse("2024-11-25 09:30", tz=TZ))
        assert not is_slot_available(days, pendulum.parse("2024-11-25 10:00", tz=TZ))
        # Not a slot boundary
        assert not is_slot_available(days, pendulum.parse("2024-11-25 09:45", tz=TZ))
        # Weekend
        assert not is_slot_available(days, pendulum.parse("2024-11-23 09:30", tz=TZ))

    def test_custom_lead_time(self):
        """Test that the lead time is configurable per generator."""
        now = pendulum.parse("2024-11-25 06:00", tz=TZ)

        monday = SlotGenerator(_schedule(), min_lead_hours=2).generate([], days_ahead=1, now=now)[0]

        assert [s.time for s in monday.slots if not s.available] == ["07:00", "07:30"]
