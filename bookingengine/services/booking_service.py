"""
Application service that applies the booking rules against a store.

The service is the thin orchestration layer: it reads a snapshot from the
store, asks the pure domain functions for a decision and commits the result
with a guarded write. Engine errors come back as ServiceResult failures so
callers can map them to user-facing messages; storage faults propagate.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Protocol

import pendulum
from pendulum import DateTime

from ..config import PolicyConfig
from ..domain import lifecycle
from ..domain.conflicts import has_conflict
from ..domain.exceptions import (
    BookingEngineError,
    BookingNotFoundError,
    ConflictError,
    InvalidStateTransition,
    ValidationError,
)
from ..domain.lifecycle import TransitionResult
from ..domain.models import (
    Booking,
    BookingStatus,
    BookingType,
    DayAvailability,
    ProviderSchedule,
    RecurrencePattern,
)
from ..domain.recurrence import (
    default_recurrence_end,
    generate_recurring_dates,
    generate_series_id,
)
from ..domain.slot_generator import SlotGenerator
from ..domain.time_utils import is_lead_time_satisfied

logger = logging.getLogger(__name__)


class BookingStore(Protocol):
    """Storage behaviour the service relies on."""

    def get(self, booking_id: str) -> Optional[Booking]:
        """Return the stored booking or None."""

    def list_for_provider(self, provider_id: str) -> List[Booking]:
        """Return every booking of a provider."""

    def list_series(self, series_id: str) -> List[Booking]:
        """Return every booking sharing a series id."""

    def insert_if_free(self, booking: Booking) -> Booking:
        """Insert atomically after re-checking conflicts; raise ConflictError if taken."""

    def compare_and_set(
        self,
        updated: Booking,
        expected_status: BookingStatus,
        check_conflicts: bool = False,
    ) -> bool:
        """Write updated only if the stored status still equals expected_status."""


class SeriesPolicy(str, Enum):
    """What to do when some occurrences of a recurring request are taken."""

    ALL_OR_NOTHING = "all_or_nothing"
    BEST_EFFORT = "best_effort"


@dataclass(frozen=True)
class ServiceResult:
    """Typed success/failure envelope returned by every command."""

    ok: bool
    value: Any = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def success(cls, value: Any = None) -> "ServiceResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, exc: BookingEngineError) -> "ServiceResult":
        return cls(ok=False, error=str(exc), error_code=exc.code)


@dataclass(frozen=True)
class BookingCreation:
    """Bookings committed by one create request."""

    bookings: List[Booking]
    series_id: Optional[str] = None
    skipped: List[DateTime] = field(default_factory=list)

    @property
    def booking_ids(self) -> List[str]:
        return [b.id for b in self.bookings]


def new_booking_id() -> str:
    return uuid.uuid4().hex


class BookingService:
    """
    Orchestrates availability reads and booking commands.

    Dependency inversion toward the BookingStore protocol keeps the service
    independent of any database; tests use the in-memory store.
    """

    def __init__(
        self,
        store: BookingStore,
        policy: Optional[PolicyConfig] = None,
        id_factory: Callable[[], str] = new_booking_id,
    ) -> None:
        self._store = store
        self._policy = policy or PolicyConfig()
        self._id_factory = id_factory

    # ==================== AVAILABILITY ====================

    def available_slots(
        self,
        *,
        provider_id: str,
        schedule: ProviderSchedule,
        days_ahead: Optional[int] = None,
        slot_duration_minutes: Optional[int] = None,
        now: Optional[DateTime] = None,
    ) -> List[DayAvailability]:
        """
        Compute the display calendar from the current store snapshot.

        The result may be stale by the time the user submits; creation
        re-checks conflicts at commit time.
        """
        generator = SlotGenerator(schedule, min_lead_hours=self._policy.min_lead_hours)
        return generator.generate(
            existing_bookings=self._store.list_for_provider(provider_id),
            days_ahead=days_ahead if days_ahead is not None else self._policy.days_ahead,
            slot_duration_minutes=(
                slot_duration_minutes if slot_duration_minutes is not None
                else self._policy.slot_duration_minutes
            ),
            now=now,
        )

    # ==================== CREATION ====================

    def create_booking(
        self,
        *,
        provider_id: str,
        requester_id: str,
        scheduled_at: DateTime,
        subject_id: Optional[str] = None,
        notes: Optional[str] = None,
        duration: Optional[int] = None,
        recurrence: RecurrencePattern = RecurrencePattern.NONE,
        recurrence_end: Optional[DateTime] = None,
        series_policy: SeriesPolicy = SeriesPolicy.ALL_OR_NOTHING,
        now: Optional[DateTime] = None,
    ) -> ServiceResult:
        """
        Create a tour booking, or a linked series of them, in PENDING.

        Every occurrence is conflict-checked on its own and committed with
        insert_if_free. Under ALL_OR_NOTHING, a conflict found before any
        commit fails the request, and one found during commit cancels the
        occurrences already written.
        """
        now = now or pendulum.now()
        recurrence = RecurrencePattern(recurrence)
        duration = duration if duration is not None else self._policy.tour_duration_minutes

        try:
            if not is_lead_time_satisfied(scheduled_at, now, self._policy.min_lead_hours):
                raise ValidationError(
                    f"Please select a time at least {self._policy.min_lead_hours} hours in advance"
                )

            dates = self._occurrence_dates(scheduled_at, recurrence, recurrence_end)
            is_recurring = recurrence != RecurrencePattern.NONE
            series_id = generate_series_id() if is_recurring else None

            if series_policy == SeriesPolicy.ALL_OR_NOTHING:
                self._precheck_dates(provider_id, dates, duration, is_recurring)

            created: List[Booking] = []
            skipped: List[DateTime] = []

            for date in dates:
                booking = Booking(
                    id=self._id_factory(),
                    type=BookingType.TOUR,
                    provider_id=provider_id,
                    requester_id=requester_id,
                    status=BookingStatus.PENDING,
                    scheduled_at=date,
                    duration=duration,
                    subject_id=subject_id,
                    notes=notes,
                    created_at=now,
                    series_id=series_id,
                    recurrence=recurrence,
                )
                try:
                    created.append(self._store.insert_if_free(booking))
                except ConflictError:
                    if series_policy == SeriesPolicy.ALL_OR_NOTHING:
                        self._roll_back(created, now)
                        raise
                    skipped.append(date)

            if not created:
                raise ConflictError(scheduled_at)

        except BookingEngineError as exc:
            logger.warning("Booking request for provider %s rejected: %s", provider_id, exc)
            return ServiceResult.failure(exc)

        logger.info(
            "Created %d booking(s) for provider %s%s",
            len(created), provider_id, f" in series {series_id}" if series_id else ""
        )
        return ServiceResult.success(
            BookingCreation(bookings=created, series_id=series_id, skipped=skipped)
        )

    def create_enrollment_request(
        self,
        *,
        provider_id: str,
        requester_id: str,
        subject_id: Optional[str] = None,
        desired_start: Optional[str] = None,
        notes: Optional[str] = None,
        now: Optional[DateTime] = None,
    ) -> ServiceResult:
        """Record an unscheduled enrollment request in PENDING."""
        lines = [line for line in (
            f"Desired start: {desired_start}" if desired_start else None,
            notes,
        ) if line]

        booking = Booking(
            id=self._id_factory(),
            type=BookingType.ENROLLMENT,
            provider_id=provider_id,
            requester_id=requester_id,
            status=BookingStatus.PENDING,
            scheduled_at=None,
            duration=None,
            subject_id=subject_id,
            notes="\n".join(lines) or None,
            created_at=now or pendulum.now(),
        )
        self._store.insert_if_free(booking)
        logger.info("Created enrollment request %s for provider %s", booking.id, provider_id)
        return ServiceResult.success(booking)

    # ==================== TRANSITIONS ====================

    def confirm(self, booking_id: str, *, now: Optional[DateTime] = None) -> ServiceResult:
        return self._transition(booking_id, lambda b: lifecycle.confirm(b, now=now))

    def decline(
        self,
        booking_id: str,
        *,
        reason: Optional[str] = None,
        now: Optional[DateTime] = None,
    ) -> ServiceResult:
        return self._transition(booking_id, lambda b: lifecycle.decline(b, reason=reason, now=now))

    def cancel(
        self,
        booking_id: str,
        *,
        reason: Optional[str] = None,
        now: Optional[DateTime] = None,
    ) -> ServiceResult:
        """Cancel a booking; late cancellations succeed but are flagged."""
        return self._transition(
            booking_id,
            lambda b: lifecycle.cancel(
                b, reason=reason, now=now, cancellation_hours=self._policy.cancellation_hours
            ),
        )

    def mark_completed(self, booking_id: str) -> ServiceResult:
        return self._transition(booking_id, lifecycle.mark_completed)

    def mark_no_show(self, booking_id: str) -> ServiceResult:
        return self._transition(booking_id, lifecycle.mark_no_show)

    def reschedule(
        self,
        booking_id: str,
        *,
        new_scheduled_at: DateTime,
        now: Optional[DateTime] = None,
    ) -> ServiceResult:
        """Move a booking and send it back to PENDING for re-confirmation."""
        return self._transition(
            booking_id,
            lambda b: lifecycle.reschedule(
                b, new_scheduled_at, now=now, min_lead_hours=self._policy.min_lead_hours
            ),
            check_conflicts=True,
        )

    def cancel_series(
        self,
        series_id: str,
        *,
        reason: Optional[str] = None,
        now: Optional[DateTime] = None,
    ) -> ServiceResult:
        """
        Cancel every upcoming, still-open booking of a series.

        Members that changed concurrently are skipped; each one is its own
        guarded write.
        """
        now = now or pendulum.now()
        members = [
            b for b in self._store.list_series(series_id)
            if not b.is_terminal and b.scheduled_at is not None and b.scheduled_at > now
        ]

        if not members:
            return ServiceResult.failure(
                BookingNotFoundError(f"No upcoming bookings found in series {series_id}")
            )

        results: List[TransitionResult] = []
        for member in members:
            outcome = self.cancel(member.id, reason=reason or "Series cancelled by requester", now=now)
            if outcome.ok:
                results.append(outcome.value)
            else:
                logger.warning("Skipped series member %s: %s", member.id, outcome.error)

        return ServiceResult.success(results)

    # ==================== HELPERS ====================

    def _transition(
        self,
        booking_id: str,
        action: Callable[[Booking], TransitionResult],
        check_conflicts: bool = False,
    ) -> ServiceResult:
        booking = self._store.get(booking_id)
        if booking is None:
            return ServiceResult.failure(BookingNotFoundError(f"Booking {booking_id} not found"))

        try:
            result = action(booking)
            if not self._store.compare_and_set(
                result.booking, booking.status, check_conflicts=check_conflicts
            ):
                raise InvalidStateTransition(
                    booking.status,
                    result.action,
                    f"Booking {booking_id} was modified concurrently; "
                    f"expected status {booking.status.value}",
                )
        except BookingEngineError as exc:
            logger.warning("Transition on booking %s rejected: %s", booking_id, exc)
            return ServiceResult.failure(exc)

        logger.info(
            "Booking %s: %s -> %s (%s)%s",
            booking_id,
            result.previous_status.value,
            result.new_status.value,
            result.action.value,
            " [late cancellation]" if result.late_cancellation else "",
        )
        return ServiceResult.success(result)

    def _occurrence_dates(
        self,
        scheduled_at: DateTime,
        recurrence: RecurrencePattern,
        recurrence_end: Optional[DateTime],
    ) -> List[DateTime]:
        if recurrence == RecurrencePattern.NONE:
            return [scheduled_at]
        end = recurrence_end or default_recurrence_end(
            scheduled_at, self._policy.default_recurrence_months
        )
        return generate_recurring_dates(
            recurrence, scheduled_at, end, max_occurrences=self._policy.max_recurrence_occurrences
        )

    def _precheck_dates(
        self,
        provider_id: str,
        dates: List[DateTime],
        duration: int,
        is_recurring: bool,
    ) -> None:
        existing = self._store.list_for_provider(provider_id)
        for date in dates:
            if has_conflict(date, duration, existing):
                if is_recurring:
                    raise ConflictError(
                        date,
                        f"Time slot on {date.to_date_string()} is not available. "
                        f"Please choose a different time.",
                    )
                raise ConflictError(date)

    def _roll_back(self, created: List[Booking], now: DateTime) -> List[str]:
        """Cancel already-written series members; returns the ids that could not be undone."""
        stuck: List[str] = []
        for booking in created:
            undone = lifecycle.cancel(booking, reason="Series creation failed", now=now)
            if not self._store.compare_and_set(undone.booking, booking.status):
                stuck.append(booking.id)
        if created:
            logger.warning(
                "Rolled back %d of %d booking(s) after a commit-time conflict",
                len(created) - len(stuck), len(created)
            )
        if stuck:
            logger.error("Could not roll back booking(s) changed concurrently: %s", ", ".join(stuck))
        return stuck
