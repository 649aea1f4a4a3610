from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Set

from sqlalchemy.orm import Session

from . import models
from .capacity import CapacityTier
from .conflicts import BlockCheck, BookingCheck, check_blocked, check_booking_conflict
from .lifecycle import ACTIVE_STATUSES
from .rooms import admin_room_ids, get_room
from .timerange import TimeRange


@dataclass
class SlotStatus:
    room_id: int
    bookings: BookingCheck
    blocks: BlockCheck

    @property
    def available(self) -> bool:
        return self.bookings.free and self.blocks.open


def check_slot(db: Session, room_id: int, day: date, time_range: TimeRange) -> SlotStatus:
    """Run both availability checks for one room and report them side by side."""
    get_room(db, room_id)
    return SlotStatus(
        room_id=room_id,
        bookings=check_booking_conflict(db, room_id, day, time_range),
        blocks=check_blocked(db, room_id, day, time_range),
    )


def _busy_room_ids(db: Session, day: date, time_range: TimeRange, room_ids: List[int]) -> Set[int]:
    # both sources are narrowed to the target date in SQL before the range test
    bookings = (
        db.query(models.Booking)
        .filter(models.Booking.booking_date == day)
        .filter(models.Booking.room_id.in_(room_ids))
        .filter(models.Booking.status.in_(ACTIVE_STATUSES))
        .all()
    )
    blocks = (
        db.query(models.AvailabilityBlock)
        .filter(models.AvailabilityBlock.block_date == day)
        .filter(models.AvailabilityBlock.room_id.in_(room_ids))
        .filter(models.AvailabilityBlock.is_available.is_(False))
        .all()
    )

    busy = set()
    for entry in [*bookings, *blocks]:
        if entry.room_id not in busy and TimeRange.of(entry).overlaps(time_range):
            busy.add(entry.room_id)
    return busy


def find_available_rooms(
    db: Session,
    day: date,
    time_range: TimeRange,
    capacity_tier: Optional[CapacityTier] = None,
    admin_id: Optional[int] = None,
) -> List[models.Room]:
    """
    Active rooms with neither an active booking nor a block over the slot.

    Parameters
    ----------
    db : Session
        Database session.
    day : date
        Date of the wanted slot.
    time_range : TimeRange
        Wanted ``[start, end)`` range.
    capacity_tier : Optional[CapacityTier]
        Only rooms of this tier.
    admin_id : Optional[int]
        Only rooms this user is an active admin of.

    Returns
    -------
    List[Room]
        By name; by capacity (smallest first) when a tier is given.
    """
    q = db.query(models.Room).filter(models.Room.is_active.is_(True))
    if capacity_tier is not None:
        q = q.filter(models.Room.capacity_tier == capacity_tier)
    if admin_id is not None:
        q = q.filter(models.Room.id.in_(admin_room_ids(db, admin_id)))

    candidates = q.all()
    if not candidates:
        return []

    busy = _busy_room_ids(db, day, time_range, [room.id for room in candidates])
    free = [room for room in candidates if room.id not in busy]

    if capacity_tier is not None:
        free.sort(key=lambda room: (room.capacity, room.name))
    else:
        free.sort(key=lambda room: room.name)
    return free
