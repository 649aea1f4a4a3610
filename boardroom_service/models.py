from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
)

from .capacity import CapacityTier, classify
from .database import Base


class BookingStatus(str, PyEnum):
    """
    Enumeration of possible booking statuses.

    Values
    ------
    pending
        Booking has been requested and waits for an admin's approval.
    confirmed
        Booking is approved and holds the room for its time range.
    in_progress
        Read-time view of a confirmed booking whose range contains "now".
        Never written by an explicit action.
    cancelled
        Booking was cancelled by its requester or an admin.
    completed
        Booking's date and end time have passed (set by the sweep).
    """
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Room(Base):
    """
    SQLAlchemy model representing a bookable boardroom.

    Attributes
    ----------
    id : int
        Primary key.
    name : str
        Human-readable room name (e.g. 'Board Room A').
    location : str
        Physical location description (building, floor, etc.).
    capacity : int
        Maximum number of people the room can hold.
    capacity_tier : CapacityTier
        Derived from capacity; only ever written through ``set_capacity``.
    description : str
        Optional free text.
    amenities : str
        Optional comma-separated list (e.g. 'projector,whiteboard').
    is_active : bool
        Soft-delete flag; inactive rooms are never offered for booking.
    created_at, updated_at : datetime
        Set explicitly by the operation that writes the row.
    """
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    location = Column(String(200), nullable=False)
    capacity = Column(Integer, nullable=False)
    capacity_tier = Column(Enum(CapacityTier), nullable=False, index=True)
    description = Column(Text, nullable=True)
    amenities = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    def set_capacity(self, capacity: int) -> None:
        self.capacity = capacity
        self.capacity_tier = classify(capacity)

    @property
    def display_name(self) -> str:
        return f"{self.name} ({self.location})"


class Booking(Base):
    """
    SQLAlchemy model representing a reservation of one room on one date.

    Attributes
    ----------
    id : int
        Primary key.
    room_id : int
        Booked room.
    user_id : int
        Requester, as known by the users service.
    booking_date : date
        Calendar date of the reservation.
    start_time, end_time : time
        Half-open ``[start_time, end_time)`` range on booking_date.
    purpose : str
        Why the room is needed.
    attendee_count : int
        Expected attendees (at least 1).
    status : BookingStatus
        Persisted lifecycle status.
    approved_by, approved_at
        Approval metadata, set on approve.
    cancelled_by, cancelled_reason, cancelled_at
        Cancellation metadata, set on cancel.
    """
    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_room_date", "room_id", "booking_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    user_id = Column(Integer, index=True, nullable=False)
    booking_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    purpose = Column(Text, nullable=False)
    attendee_count = Column(Integer, nullable=False)
    status = Column(Enum(BookingStatus), nullable=False, default=BookingStatus.PENDING, index=True)
    special_requirements = Column(Text, nullable=True)
    contact_number = Column(String(50), nullable=True)
    approved_by = Column(Integer, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    cancelled_by = Column(Integer, nullable=True)
    cancelled_reason = Column(Text, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


class AvailabilityBlock(Base):
    """
    Admin-managed availability entry for a room slot.

    Only entries with ``is_available = False`` constrain bookings; a lifted
    block stays in the table for audit.
    """
    __tablename__ = "availability_blocks"
    __table_args__ = (
        Index("ix_blocks_room_date", "room_id", "block_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    block_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_available = Column(Boolean, nullable=False, default=False)
    blocked_by = Column(Integer, nullable=True, index=True)
    blocked_reason = Column(Text, nullable=True)
    admin_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


class AdminAssignment(Base):
    """Grants a user admin rights (approve, block) over one room."""
    __tablename__ = "room_admins"
    __table_args__ = (
        UniqueConstraint("user_id", "room_id", name="uq_room_admins_user_room"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False, index=True)
    assigned_by = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    assigned_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


class ScheduleLock(Base):
    """
    One row per (room, date) serialising check-and-write operations.

    ``version`` is bumped by every write that relies on a conflict check.
    """
    __tablename__ = "schedule_locks"
    __table_args__ = (
        UniqueConstraint("room_id", "day", name="uq_schedule_locks_room_day"),
    )

    id = Column(Integer, primary_key=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    day = Column(Date, nullable=False)
    version = Column(Integer, nullable=False, default=0)
