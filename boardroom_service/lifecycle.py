from datetime import datetime
from typing import Optional

from .errors import IllegalTransitionError
from .models import Booking, BookingStatus
from .timerange import TimeRange

APPROVE = "approve"
CANCEL = "cancel"
COMPLETE = "complete"

# (from, action) -> to
TRANSITIONS = {
    (BookingStatus.PENDING, APPROVE): BookingStatus.CONFIRMED,
    (BookingStatus.PENDING, CANCEL): BookingStatus.CANCELLED,
    (BookingStatus.CONFIRMED, CANCEL): BookingStatus.CANCELLED,
    (BookingStatus.CONFIRMED, COMPLETE): BookingStatus.COMPLETED,
}

ACTIVE_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS)
CANCELLABLE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)
TERMINAL_STATUSES = (BookingStatus.CANCELLED, BookingStatus.COMPLETED)


def is_active(status: BookingStatus) -> bool:
    return status in ACTIVE_STATUSES


def can_be_cancelled(status: BookingStatus) -> bool:
    return status in CANCELLABLE_STATUSES


def can_be_modified(status: BookingStatus) -> bool:
    # confirmed bookings are cancelled and re-requested instead
    return status == BookingStatus.PENDING


def next_status(status: BookingStatus, action: str) -> BookingStatus:
    """
    Look up the target of a lifecycle transition.

    Raises
    ------
    IllegalTransitionError
        If the (status, action) pair is not in the transition table.
    """
    try:
        return TRANSITIONS[(status, action)]
    except KeyError:
        raise IllegalTransitionError(status, action)


def has_ended(booking: Booking, as_of: datetime) -> bool:
    return TimeRange.of(booking).ends_at(booking.booking_date) < as_of


def is_past(booking: Booking, now: datetime) -> bool:
    return has_ended(booking, now)


def is_upcoming(booking: Booking, now: datetime) -> bool:
    return TimeRange.of(booking).starts_at(booking.booking_date) > now


def effective_status(booking: Booking, now: datetime) -> BookingStatus:
    """
    Status as seen at ``now``.

    A confirmed booking whose range contains ``now`` reads as IN_PROGRESS;
    every other status is returned as stored.
    """
    if booking.status != BookingStatus.CONFIRMED:
        return booking.status
    if booking.booking_date == now.date() and TimeRange.of(booking).contains(now.time()):
        return BookingStatus.IN_PROGRESS
    return booking.status


def approve(booking: Booking, approver_id: int, now: datetime) -> None:
    booking.status = next_status(booking.status, APPROVE)
    booking.approved_by = approver_id
    booking.approved_at = now
    booking.updated_at = now


def cancel(booking: Booking, actor_id: int, reason: Optional[str], now: datetime) -> None:
    booking.status = next_status(booking.status, CANCEL)
    booking.cancelled_by = actor_id
    booking.cancelled_reason = reason
    booking.cancelled_at = now
    booking.updated_at = now


def complete(booking: Booking, as_of: datetime) -> None:
    """
    Move a confirmed booking to COMPLETED.

    Raises
    ------
    IllegalTransitionError
        If the booking is not confirmed, or its date and end time are not
        strictly before ``as_of``.
    """
    target = next_status(booking.status, COMPLETE)
    if not has_ended(booking, as_of):
        raise IllegalTransitionError(booking.status, COMPLETE)
    booking.status = target
    booking.updated_at = as_of
