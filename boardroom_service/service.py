"""
Booking and availability operations exposed to the API layer.

Every operation that relies on a conflict check runs its check and its
write inside ``schedule_guard`` for the booking's (room, date).
"""
import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Callable, List, Optional, TypeVar

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from common.cache import invalidate_availability

from . import blocks, lifecycle, models
from .bookings import get_booking
from .capacity import CapacityTier
from .conflicts import ensure_slot_free
from .errors import (
    AuthorizationError,
    ConcurrentModificationError,
    IllegalTransitionError,
    InvalidRangeError,
    NotFoundError,
    ValidationError,
)
from .identity import IdentityDirectory
from .rooms import get_room
from .search import find_available_rooms
from .timerange import TimeRange, local_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------- check-and-write window ----------


def _lock_query(db: Session, room_id: int, day: date):
    return (
        db.query(models.ScheduleLock)
        .filter(models.ScheduleLock.room_id == room_id)
        .filter(models.ScheduleLock.day == day)
        .with_for_update()
    )


def _acquire_lock_row(db: Session, room_id: int, day: date) -> models.ScheduleLock:
    lock = _lock_query(db, room_id, day).first()
    if lock is not None:
        return lock

    db.add(models.ScheduleLock(room_id=room_id, day=day, version=0))
    try:
        db.commit()
    except IntegrityError:
        # another writer created it first
        db.rollback()
    return _lock_query(db, room_id, day).one()


@contextmanager
def schedule_guard(db: Session, room_id: int, day: date):
    """
    Make a conflict check and the write depending on it atomic.

    The (room, day) lock row is read ``FOR UPDATE``, then the body runs its
    check and stages its writes, then the row's version is bumped only if
    nobody else bumped it meanwhile. Commits on success, rolls back on any
    error.

    Raises
    ------
    ConcurrentModificationError
        If another writer got in between, or the store aborted the
        transaction (lock timeout, serialization failure, constraint).
    """
    try:
        lock = _acquire_lock_row(db, room_id, day)
        seen = lock.version
        yield
        db.flush()
        result = db.execute(
            update(models.ScheduleLock)
            .where(models.ScheduleLock.id == lock.id)
            .where(models.ScheduleLock.version == seen)
            .values(version=seen + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConcurrentModificationError(
                f"Schedule of room {room_id} on {day} changed during the check, retry"
            )
        db.commit()
    except ConcurrentModificationError:
        db.rollback()
        logger.warning("Concurrent modification on room %s for %s", room_id, day)
        raise
    except (IntegrityError, OperationalError) as exc:
        db.rollback()
        logger.warning("Check-and-write aborted on room %s for %s: %s", room_id, day, exc)
        raise ConcurrentModificationError(
            f"Schedule of room {room_id} on {day} could not be updated atomically, retry"
        ) from exc
    except Exception:
        db.rollback()
        raise


def run_guarded(db: Session, room_id: int, day: date, apply: Callable[[], T]) -> T:
    """
    Run ``apply`` inside ``schedule_guard``, once more if another writer won the race.

    The second run starts from the committed state, so an overlap created
    by the winner comes back as ConflictError from the check itself. A
    second lost race is reported as ConcurrentModificationError.
    """
    try:
        with schedule_guard(db, room_id, day):
            return apply()
    except ConcurrentModificationError:
        logger.info("Re-running check on room %s for %s after a concurrent write", room_id, day)
    with schedule_guard(db, room_id, day):
        return apply()


# ---------- helpers ----------


def _require_admin(directory: IdentityDirectory, user_id: int, room_id: int, action: str) -> None:
    if not directory.is_admin_for(user_id, room_id):
        raise AuthorizationError(f"User {user_id} is not allowed to {action} for room {room_id}")


def _require_active_user(directory: IdentityDirectory, user_id: int) -> None:
    if not directory.user_exists(user_id):
        raise NotFoundError("User", user_id)
    if not directory.is_enabled(user_id):
        raise AuthorizationError(f"User {user_id} is disabled")


def _validate_details(
    purpose: Optional[str],
    attendee_count: Optional[int],
    required: bool = False,
) -> None:
    if required and (purpose is None or attendee_count is None):
        raise ValidationError("Purpose and attendee count are required")
    if purpose is not None and not purpose.strip():
        raise ValidationError("Purpose is required")
    if attendee_count is not None and attendee_count < 1:
        raise ValidationError("Attendee count must be at least 1")


# ---------- bookings ----------


def request_booking(
    db: Session,
    directory: IdentityDirectory,
    room_id: int,
    user_id: int,
    day: date,
    time_range: TimeRange,
    purpose: str,
    attendee_count: int,
    special_requirements: Optional[str] = None,
    contact_number: Optional[str] = None,
    now: Optional[datetime] = None,
) -> models.Booking:
    """
    Create a PENDING booking if the slot is free of active bookings and blocks.

    Parameters
    ----------
    db : Session
        Database session.
    directory : IdentityDirectory
        User lookups.
    room_id : int
        Room to book.
    user_id : int
        Requester.
    day : date
        Booking date; must not be in the past.
    time_range : TimeRange
        Requested ``[start, end)`` range.
    purpose : str
        Non-blank purpose text.
    attendee_count : int
        At least 1.

    Returns
    -------
    Booking
        The new booking, status PENDING.

    Raises
    ------
    InvalidRangeError
        If the date is in the past.
    ConflictError
        If an active booking or a block overlaps the slot.
    NotFoundError
        If the room or user does not exist.
    """
    now = now or local_now()
    if day < now.date():
        raise InvalidRangeError("Booking date cannot be in the past")
    _validate_details(purpose, attendee_count, required=True)
    get_room(db, room_id)
    _require_active_user(directory, user_id)

    def apply() -> models.Booking:
        ensure_slot_free(db, room_id, day, time_range)
        booking = models.Booking(
            room_id=room_id,
            user_id=user_id,
            booking_date=day,
            start_time=time_range.start,
            end_time=time_range.end,
            purpose=purpose.strip(),
            attendee_count=attendee_count,
            status=models.BookingStatus.PENDING,
            special_requirements=special_requirements,
            contact_number=contact_number,
            created_at=now,
            updated_at=now,
        )
        db.add(booking)
        return booking

    booking = run_guarded(db, room_id, day, apply)
    db.refresh(booking)
    invalidate_availability()
    logger.info(
        "Booking %s requested by user %s: room %s on %s %s",
        booking.id, user_id, room_id, day, time_range,
    )
    return booking


def approve_booking(
    db: Session,
    directory: IdentityDirectory,
    booking_id: int,
    approver_id: int,
    now: Optional[datetime] = None,
) -> models.Booking:
    """
    Confirm a pending booking.

    Both checks run again inside the guard: another request for the slot
    may have been approved, or an admin may have blocked it, since this
    one was made.

    Raises
    ------
    IllegalTransitionError
        If the booking is not PENDING.
    ConflictError
        If the slot is no longer free.
    AuthorizationError
        If the approver is not an admin of the room.
    """
    now = now or local_now()
    booking = get_booking(db, booking_id)
    _require_admin(directory, approver_id, booking.room_id, "approve bookings")
    lifecycle.next_status(booking.status, lifecycle.APPROVE)

    def apply() -> None:
        db.refresh(booking)
        ensure_slot_free(
            db,
            booking.room_id,
            booking.booking_date,
            TimeRange.of(booking),
            exclude_booking_id=booking.id,
        )
        lifecycle.approve(booking, approver_id, now)

    run_guarded(db, booking.room_id, booking.booking_date, apply)
    db.refresh(booking)
    invalidate_availability()
    logger.info("Booking %s approved by %s", booking.id, approver_id)
    return booking


def cancel_booking(
    db: Session,
    directory: IdentityDirectory,
    booking_id: int,
    actor_id: int,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> models.Booking:
    """
    Cancel a pending or confirmed booking.

    Allowed for the requester and for admins of the room. Blocks are
    never touched.
    """
    now = now or local_now()
    booking = get_booking(db, booking_id)
    if booking.user_id != actor_id:
        _require_admin(directory, actor_id, booking.room_id, "cancel other users' bookings")

    lifecycle.cancel(booking, actor_id, reason, now)
    db.add(booking)
    db.commit()
    db.refresh(booking)
    invalidate_availability()
    logger.info("Booking %s cancelled by %s (%s)", booking.id, actor_id, reason)
    return booking


def modify_booking(
    db: Session,
    booking_id: int,
    actor_id: int,
    day: Optional[date] = None,
    time_range: Optional[TimeRange] = None,
    purpose: Optional[str] = None,
    attendee_count: Optional[int] = None,
    special_requirements: Optional[str] = None,
    now: Optional[datetime] = None,
) -> models.Booking:
    """
    Edit a pending booking in place.

    Confirmed bookings cannot be edited; they are cancelled and requested
    again. A new date or range is checked like a fresh request, leaving
    the booking itself out of the check.
    """
    now = now or local_now()
    booking = get_booking(db, booking_id)
    if booking.user_id != actor_id:
        raise AuthorizationError("Only the requester can modify a booking")
    if not lifecycle.can_be_modified(booking.status):
        raise IllegalTransitionError(booking.status, "modify")
    _validate_details(purpose, attendee_count)

    new_day = day if day is not None else booking.booking_date
    new_range = time_range if time_range is not None else TimeRange.of(booking)
    if (day is not None or time_range is not None) and new_day < now.date():
        raise InvalidRangeError("Booking date cannot be in the past")

    def apply() -> None:
        db.refresh(booking)
        if not lifecycle.can_be_modified(booking.status):
            raise IllegalTransitionError(booking.status, "modify")
        ensure_slot_free(db, booking.room_id, new_day, new_range, exclude_booking_id=booking.id)
        booking.booking_date = new_day
        booking.start_time = new_range.start
        booking.end_time = new_range.end
        if purpose is not None:
            booking.purpose = purpose.strip()
        if attendee_count is not None:
            booking.attendee_count = attendee_count
        if special_requirements is not None:
            booking.special_requirements = special_requirements
        booking.updated_at = now

    run_guarded(db, booking.room_id, new_day, apply)
    db.refresh(booking)
    invalidate_availability()
    return booking


# ---------- availability blocks ----------


def block_slot(
    db: Session,
    directory: IdentityDirectory,
    room_id: int,
    day: date,
    time_range: TimeRange,
    admin_id: int,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> models.AvailabilityBlock:
    get_room(db, room_id)
    _require_admin(directory, admin_id, room_id, "block slots")
    return blocks.create_block(db, room_id, day, time_range, admin_id, reason, notes, now=now)


def unblock_slot(
    db: Session,
    directory: IdentityDirectory,
    block_id: int,
    admin_id: int,
    now: Optional[datetime] = None,
) -> models.AvailabilityBlock:
    block = blocks.get_block(db, block_id)
    _require_admin(directory, admin_id, block.room_id, "unblock slots")
    return blocks.unblock(db, block_id, now=now)


def reblock_slot(
    db: Session,
    directory: IdentityDirectory,
    block_id: int,
    admin_id: int,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> models.AvailabilityBlock:
    block = blocks.get_block(db, block_id)
    _require_admin(directory, admin_id, block.room_id, "block slots")
    return blocks.reblock(db, block_id, admin_id, reason, now=now)


def edit_block(
    db: Session,
    directory: IdentityDirectory,
    block_id: int,
    admin_id: int,
    day: Optional[date] = None,
    time_range: Optional[TimeRange] = None,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> models.AvailabilityBlock:
    block = blocks.get_block(db, block_id)
    _require_admin(directory, admin_id, block.room_id, "edit blocks")
    if time_range is None and day is None and reason is None and notes is None:
        return block
    return blocks.edit_block(db, block_id, day, time_range, reason, notes, now=now)


def delete_block(db: Session, directory: IdentityDirectory, block_id: int, admin_id: int) -> None:
    block = blocks.get_block(db, block_id)
    _require_admin(directory, admin_id, block.room_id, "delete blocks")
    blocks.delete_block(db, block_id)


# ---------- search ----------


def search_available_rooms(
    db: Session,
    day: date,
    time_range: TimeRange,
    capacity_tier: Optional[CapacityTier] = None,
    admin_id: Optional[int] = None,
) -> List[models.Room]:
    return find_available_rooms(db, day, time_range, capacity_tier, admin_id)
