"""
Booking lifecycle state machine.

Legal moves live in one table keyed by (status, action). Every action
function is total: it either returns a TransitionResult describing the new
booking or raises InvalidStateTransition. Who may perform an action is the
caller's concern.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

import pendulum
from pendulum import DateTime

from .exceptions import InvalidStateTransition, ValidationError
from .models import Booking, BookingStatus, BookingType
from .time_utils import DEFAULT_LEAD_HOURS, hours_until, is_lead_time_satisfied

DEFAULT_CANCELLATION_HOURS = 24

DECLINE_REASON = "Declined by provider"
CANCEL_REASON = "Cancelled by requester"


class BookingAction(str, Enum):
    CONFIRM = "confirm"
    DECLINE = "decline"
    CANCEL = "cancel"
    MARK_COMPLETED = "mark_completed"
    MARK_NO_SHOW = "mark_no_show"
    RESCHEDULE = "reschedule"


TRANSITIONS: Dict[Tuple[BookingStatus, BookingAction], BookingStatus] = {
    (BookingStatus.PENDING, BookingAction.CONFIRM): BookingStatus.CONFIRMED,
    (BookingStatus.PENDING, BookingAction.DECLINE): BookingStatus.CANCELLED,
    (BookingStatus.PENDING, BookingAction.CANCEL): BookingStatus.CANCELLED,
    (BookingStatus.PENDING, BookingAction.RESCHEDULE): BookingStatus.PENDING,
    (BookingStatus.CONFIRMED, BookingAction.CANCEL): BookingStatus.CANCELLED,
    (BookingStatus.CONFIRMED, BookingAction.MARK_COMPLETED): BookingStatus.COMPLETED,
    (BookingStatus.CONFIRMED, BookingAction.MARK_NO_SHOW): BookingStatus.NO_SHOW,
    (BookingStatus.CONFIRMED, BookingAction.RESCHEDULE): BookingStatus.PENDING,
}

# Actions restricted to particular booking types
TYPE_RESTRICTIONS: Dict[BookingAction, FrozenSet[BookingType]] = {
    BookingAction.MARK_COMPLETED: frozenset({BookingType.TOUR}),
}


@dataclass(frozen=True)
class TransitionResult:
    """
    Outcome of a successful transition.

    Carries everything the orchestrator needs to decide what to emit
    (notifications, audit entries) without re-deriving it.
    """
    booking: Booking
    previous_status: BookingStatus
    action: BookingAction
    reason: Optional[str] = None
    late_cancellation: bool = False

    @property
    def new_status(self) -> BookingStatus:
        return self.booking.status


def can_transition(
    status: BookingStatus,
    action: BookingAction,
    booking_type: Optional[BookingType] = None
) -> bool:
    """Check whether action is legal from status (and for booking_type, if given)."""
    if (status, action) not in TRANSITIONS:
        return False
    allowed_types = TYPE_RESTRICTIONS.get(action)
    if booking_type is not None and allowed_types is not None:
        return booking_type in allowed_types
    return True


def allowed_actions(
    status: BookingStatus,
    booking_type: Optional[BookingType] = None
) -> Tuple[BookingAction, ...]:
    """List the actions available from status, in declaration order."""
    return tuple(
        action for action in BookingAction
        if can_transition(status, action, booking_type)
    )


def _next_status(booking: Booking, action: BookingAction) -> BookingStatus:
    status = BookingStatus(booking.status)
    target = TRANSITIONS.get((status, action))

    if target is None:
        if status.is_terminal:
            raise InvalidStateTransition(
                status, action,
                f"Booking {booking.id} is already {status.value} and cannot change"
            )
        raise InvalidStateTransition(status, action)

    allowed_types = TYPE_RESTRICTIONS.get(action)
    if allowed_types is not None and booking.type not in allowed_types:
        raise InvalidStateTransition(
            status, action,
            f"Cannot {action.value} a booking of type {booking.type.value}"
        )

    return target


def is_late_cancellation(
    booking: Booking,
    now: DateTime,
    cancellation_hours: int = DEFAULT_CANCELLATION_HOURS
) -> bool:
    """A cancellation is late when the visit starts within cancellation_hours."""
    if booking.scheduled_at is None:
        return False
    return hours_until(booking.scheduled_at, now) < cancellation_hours


def confirm(booking: Booking, now: Optional[DateTime] = None) -> TransitionResult:
    """Provider accepts a pending request."""
    target = _next_status(booking, BookingAction.CONFIRM)
    updated = replace(booking, status=target, confirmed_at=now or pendulum.now())
    return TransitionResult(booking=updated, previous_status=booking.status, action=BookingAction.CONFIRM)


def decline(
    booking: Booking,
    reason: Optional[str] = None,
    now: Optional[DateTime] = None
) -> TransitionResult:
    """Provider turns down a pending request."""
    target = _next_status(booking, BookingAction.DECLINE)
    reason = reason or DECLINE_REASON
    updated = replace(
        booking,
        status=target,
        cancelled_at=now or pendulum.now(),
        cancel_reason=reason
    )
    return TransitionResult(
        booking=updated,
        previous_status=booking.status,
        action=BookingAction.DECLINE,
        reason=reason
    )


def cancel(
    booking: Booking,
    reason: Optional[str] = None,
    now: Optional[DateTime] = None,
    cancellation_hours: int = DEFAULT_CANCELLATION_HOURS
) -> TransitionResult:
    """
    Cancel a booking on behalf of the requester or staff.

    Inside the cancellation window the cancellation still succeeds; the
    result is flagged as late so account-standing logic can react.
    """
    target = _next_status(booking, BookingAction.CANCEL)
    now = now or pendulum.now()
    reason = reason or CANCEL_REASON
    updated = replace(booking, status=target, cancelled_at=now, cancel_reason=reason)
    return TransitionResult(
        booking=updated,
        previous_status=booking.status,
        action=BookingAction.CANCEL,
        reason=reason,
        late_cancellation=is_late_cancellation(booking, now, cancellation_hours)
    )


def mark_completed(booking: Booking) -> TransitionResult:
    """Record that a confirmed tour took place."""
    target = _next_status(booking, BookingAction.MARK_COMPLETED)
    return TransitionResult(
        booking=replace(booking, status=target),
        previous_status=booking.status,
        action=BookingAction.MARK_COMPLETED
    )


def mark_no_show(booking: Booking) -> TransitionResult:
    """Record that the requester did not turn up."""
    target = _next_status(booking, BookingAction.MARK_NO_SHOW)
    return TransitionResult(
        booking=replace(booking, status=target),
        previous_status=booking.status,
        action=BookingAction.MARK_NO_SHOW
    )


def reschedule(
    booking: Booking,
    new_scheduled_at: DateTime,
    now: Optional[DateTime] = None,
    min_lead_hours: int = DEFAULT_LEAD_HOURS
) -> TransitionResult:
    """
    Move a booking to a new start time and send it back for confirmation.

    Conflict checking against other bookings is left to the caller, which
    owns the snapshot to check against.
    """
    target = _next_status(booking, BookingAction.RESCHEDULE)
    now = now or pendulum.now()

    if not is_lead_time_satisfied(new_scheduled_at, now, min_lead_hours):
        raise ValidationError(
            f"Please select a time at least {min_lead_hours} hours in advance"
        )

    previous = booking.scheduled_at.to_iso8601_string() if booking.scheduled_at else "unscheduled"
    note = f"Rescheduled from {previous}"
    notes = f"{booking.notes}\n\n{note}" if booking.notes else note

    updated = replace(
        booking,
        status=target,
        scheduled_at=new_scheduled_at,
        notes=notes,
        confirmed_at=None
    )
    return TransitionResult(
        booking=updated,
        previous_status=booking.status,
        action=BookingAction.RESCHEDULE,
        reason=note
    )
