import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from common.cache import invalidate_availability

from . import models
from .capacity import CapacityTier
from .errors import NotFoundError, ValidationError
from .timerange import local_now

logger = logging.getLogger(__name__)


def get_room(db: Session, room_id: int, active_only: bool = True) -> models.Room:
    """
    Load a room by ID or raise NotFoundError.

    Parameters
    ----------
    db : Session
        Database session.
    room_id : int
        Identifier of the room.
    active_only : bool
        Treat inactive (soft-deleted) rooms as missing.

    Returns
    -------
    Room
        The matching room.
    """
    room = db.query(models.Room).filter(models.Room.id == room_id).first()
    if not room or (active_only and not room.is_active):
        raise NotFoundError("Room", room_id)
    return room


def _ensure_unique_name(db: Session, name: str, ignore_room_id: Optional[int] = None) -> None:
    q = (
        db.query(models.Room)
        .filter(func.lower(models.Room.name) == name.strip().lower())
        .filter(models.Room.is_active.is_(True))
    )
    if ignore_room_id is not None:
        q = q.filter(models.Room.id != ignore_room_id)
    if db.query(q.exists()).scalar():
        raise ValidationError("Room with this name already exists")


def create_room(
    db: Session,
    name: str,
    location: str,
    capacity: int,
    description: Optional[str] = None,
    amenities: Optional[str] = None,
    now: Optional[datetime] = None,
) -> models.Room:
    """
    Create a room; its capacity tier is derived from capacity.

    Raises
    ------
    ValidationError
        If the capacity is below 1 or an active room already has the name.
    """
    if capacity < 1:
        raise ValidationError("Capacity must be at least 1")
    _ensure_unique_name(db, name)

    now = now or local_now()
    room = models.Room(
        name=name.strip(),
        location=location,
        description=description,
        amenities=amenities,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    room.set_capacity(capacity)
    db.add(room)
    db.commit()
    db.refresh(room)
    invalidate_availability()
    logger.info("Room %s '%s' created (%s)", room.id, room.name, room.capacity_tier.value)
    return room


def update_room(
    db: Session,
    room_id: int,
    name: Optional[str] = None,
    location: Optional[str] = None,
    capacity: Optional[int] = None,
    description: Optional[str] = None,
    amenities: Optional[str] = None,
    now: Optional[datetime] = None,
) -> models.Room:
    """
    Apply the given fields to a room.

    Changing the capacity always recomputes the tier in the same write.
    """
    room = get_room(db, room_id)

    if name is not None and name.strip().lower() != room.name.lower():
        _ensure_unique_name(db, name, ignore_room_id=room.id)
        room.name = name.strip()
    if location is not None:
        room.location = location
    if capacity is not None:
        if capacity < 1:
            raise ValidationError("Capacity must be at least 1")
        room.set_capacity(capacity)
    if description is not None:
        room.description = description
    if amenities is not None:
        room.amenities = amenities

    room.updated_at = now or local_now()
    db.add(room)
    db.commit()
    db.refresh(room)
    invalidate_availability()
    return room


def deactivate_room(db: Session, room_id: int, now: Optional[datetime] = None) -> models.Room:
    room = get_room(db, room_id)
    room.is_active = False
    room.updated_at = now or local_now()
    db.add(room)
    db.commit()
    invalidate_availability()
    logger.info("Room %s deactivated", room_id)
    return room


def delete_room_children(db: Session, room_id: int) -> None:
    """
    Delete every booking, block, assignment and lock row of a room.

    Does not commit; the caller owns the transaction.
    """
    for model in (
        models.Booking,
        models.AvailabilityBlock,
        models.AdminAssignment,
        models.ScheduleLock,
    ):
        db.query(model).filter(model.room_id == room_id).delete(synchronize_session=False)


def delete_room(db: Session, room_id: int) -> None:
    room = get_room(db, room_id, active_only=False)
    delete_room_children(db, room.id)
    db.delete(room)
    db.commit()
    invalidate_availability()
    logger.info("Room %s and its bookings/blocks deleted", room_id)


def list_rooms(
    db: Session,
    capacity_tier: Optional[CapacityTier] = None,
    min_capacity: Optional[int] = None,
    location: Optional[str] = None,
) -> List[models.Room]:
    """
    Active rooms, optionally filtered.

    Ordered by capacity when filtering on size, by name otherwise.
    """
    q = db.query(models.Room).filter(models.Room.is_active.is_(True))
    if capacity_tier is not None:
        q = q.filter(models.Room.capacity_tier == capacity_tier)
    if min_capacity is not None:
        q = q.filter(models.Room.capacity >= min_capacity)
    if location:
        q = q.filter(models.Room.location.icontains(location, autoescape=True))

    if capacity_tier is not None or min_capacity is not None:
        return q.order_by(models.Room.capacity, models.Room.name).all()
    return q.order_by(models.Room.name).all()


def search_rooms(db: Session, term: str) -> List[models.Room]:
    return (
        db.query(models.Room)
        .filter(models.Room.is_active.is_(True))
        .filter(
            models.Room.name.icontains(term, autoescape=True)
            | models.Room.location.icontains(term, autoescape=True)
        )
        .order_by(models.Room.name)
        .all()
    )


def admin_room_ids(db: Session, user_id: int) -> List[int]:
    rows = (
        db.query(models.AdminAssignment.room_id)
        .filter(models.AdminAssignment.user_id == user_id)
        .filter(models.AdminAssignment.is_active.is_(True))
        .all()
    )
    return [room_id for (room_id,) in rows]


def rooms_for_admin(db: Session, user_id: int) -> List[models.Room]:
    ids = admin_room_ids(db, user_id)
    if not ids:
        return []
    return (
        db.query(models.Room)
        .filter(models.Room.id.in_(ids))
        .filter(models.Room.is_active.is_(True))
        .order_by(models.Room.name)
        .all()
    )


def rooms_without_admins(db: Session) -> List[models.Room]:
    administered = select(models.AdminAssignment.room_id).where(
        models.AdminAssignment.is_active.is_(True)
    )
    return (
        db.query(models.Room)
        .filter(models.Room.is_active.is_(True))
        .filter(~models.Room.id.in_(administered))
        .order_by(models.Room.name)
        .all()
    )


def assign_admin(
    db: Session,
    room_id: int,
    user_id: int,
    assigned_by: Optional[int] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> models.AdminAssignment:
    """
    Make a user admin of a room; re-activates a revoked assignment.
    """
    get_room(db, room_id)
    now = now or local_now()

    assignment = (
        db.query(models.AdminAssignment)
        .filter(models.AdminAssignment.room_id == room_id)
        .filter(models.AdminAssignment.user_id == user_id)
        .first()
    )
    if assignment is None:
        assignment = models.AdminAssignment(room_id=room_id, user_id=user_id, assigned_at=now)

    assignment.is_active = True
    assignment.assigned_by = assigned_by
    assignment.notes = notes
    assignment.updated_at = now
    db.add(assignment)
    db.commit()
    db.refresh(assignment)
    logger.info("User %s is now admin for room %s", user_id, room_id)
    return assignment


def revoke_admin(db: Session, room_id: int, user_id: int, now: Optional[datetime] = None) -> None:
    assignment = (
        db.query(models.AdminAssignment)
        .filter(models.AdminAssignment.room_id == room_id)
        .filter(models.AdminAssignment.user_id == user_id)
        .filter(models.AdminAssignment.is_active.is_(True))
        .first()
    )
    if assignment is None:
        raise NotFoundError("Admin assignment", f"{user_id}@{room_id}")

    assignment.is_active = False
    assignment.updated_at = now or local_now()
    db.add(assignment)
    db.commit()
    logger.info("User %s is no longer admin for room %s", user_id, room_id)
