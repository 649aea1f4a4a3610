import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from . import models
from .errors import ConflictError
from .lifecycle import ACTIVE_STATUSES
from .timerange import TimeRange

logger = logging.getLogger(__name__)


@dataclass
class BookingCheck:
    conflicting_bookings: List[models.Booking] = field(default_factory=list)

    @property
    def free(self) -> bool:
        return not self.conflicting_bookings


@dataclass
class BlockCheck:
    blocking_entries: List[models.AvailabilityBlock] = field(default_factory=list)

    @property
    def open(self) -> bool:
        return not self.blocking_entries


def active_bookings_on(
    db: Session,
    room_id: int,
    day: date,
    exclude_booking_id: Optional[int] = None,
) -> List[models.Booking]:
    """
    Active (confirmed / in-progress) bookings of a room on one date.

    Parameters
    ----------
    db : Session
        Database session.
    room_id : int
        Room identifier.
    day : date
        Calendar date.
    exclude_booking_id : Optional[int]
        If provided, leave this booking out (used when re-validating it).

    Returns
    -------
    List[Booking]
        Matching bookings ordered by start time.
    """
    q = (
        db.query(models.Booking)
        .filter(models.Booking.room_id == room_id)
        .filter(models.Booking.booking_date == day)
        .filter(models.Booking.status.in_(ACTIVE_STATUSES))
    )
    if exclude_booking_id is not None:
        q = q.filter(models.Booking.id != exclude_booking_id)
    return q.order_by(models.Booking.start_time).all()


def blocked_entries_on(db: Session, room_id: int, day: date) -> List[models.AvailabilityBlock]:
    return (
        db.query(models.AvailabilityBlock)
        .filter(models.AvailabilityBlock.room_id == room_id)
        .filter(models.AvailabilityBlock.block_date == day)
        .filter(models.AvailabilityBlock.is_available.is_(False))
        .order_by(models.AvailabilityBlock.start_time)
        .all()
    )


def check_booking_conflict(
    db: Session,
    room_id: int,
    day: date,
    time_range: TimeRange,
    exclude_booking_id: Optional[int] = None,
) -> BookingCheck:
    """
    Find every active booking overlapping a candidate slot.

    Pending and cancelled bookings never conflict; several pending
    requests for the same slot may coexist until one is approved.

    Returns
    -------
    BookingCheck
        ``free`` is True when no active booking overlaps; otherwise
        ``conflicting_bookings`` lists all of them, not just the first.
    """
    overlapping = [
        booking
        for booking in active_bookings_on(db, room_id, day, exclude_booking_id)
        if TimeRange.of(booking).overlaps(time_range)
    ]
    return BookingCheck(overlapping)


def check_blocked(db: Session, room_id: int, day: date, time_range: TimeRange) -> BlockCheck:
    """
    Find every blocked availability entry overlapping a candidate slot.

    Returns
    -------
    BlockCheck
        ``open`` is True when nothing blocks the slot; otherwise
        ``blocking_entries`` lists every overlapping block.
    """
    overlapping = [
        block
        for block in blocked_entries_on(db, room_id, day)
        if TimeRange.of(block).overlaps(time_range)
    ]
    return BlockCheck(overlapping)


def ensure_slot_free(
    db: Session,
    room_id: int,
    day: date,
    time_range: TimeRange,
    exclude_booking_id: Optional[int] = None,
) -> None:
    """
    Run both checks and raise if either one fails.

    Raises
    ------
    ConflictError
        Carrying all conflicting bookings and all blocking entries found.
    """
    bookings = check_booking_conflict(db, room_id, day, time_range, exclude_booking_id)
    blocks = check_blocked(db, room_id, day, time_range)
    if bookings.free and blocks.open:
        return

    logger.warning(
        "Slot %s on %s for room %s rejected: bookings=%s blocks=%s",
        time_range,
        day,
        room_id,
        [b.id for b in bookings.conflicting_bookings],
        [b.id for b in blocks.blocking_entries],
    )
    raise ConflictError(bookings.conflicting_bookings, blocks.blocking_entries)
