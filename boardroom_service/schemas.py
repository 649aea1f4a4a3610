from datetime import date, datetime, time
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .capacity import CapacityTier
from .models import BookingStatus


# ---------- Rooms ----------


class RoomBase(BaseModel):
    """
    Base schema for room information.

    Shared fields used when creating and reading rooms.
    """
    name: str = Field(..., min_length=1, max_length=100)
    location: str = Field(..., min_length=1, max_length=200)
    capacity: int = Field(..., ge=1)
    description: Optional[str] = None
    amenities: Optional[str] = None


class RoomCreate(RoomBase):
    pass


class RoomUpdate(BaseModel):
    """
    Schema for partial updates to a room.

    All fields are optional; a new capacity also moves the room to the
    matching capacity tier.
    """
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    location: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    description: Optional[str] = None
    amenities: Optional[str] = None


class RoomRead(RoomBase):
    id: int
    capacity_tier: CapacityTier
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AdminAssign(BaseModel):
    user_id: int = Field(..., ge=1)
    notes: Optional[str] = None


class AdminAssignmentRead(BaseModel):
    id: int
    user_id: int
    room_id: int
    assigned_by: Optional[int] = None
    notes: Optional[str] = None
    is_active: bool
    assigned_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------- Bookings ----------


class BookingBase(BaseModel):
    """
    Base schema for a booking's room, date and time range.

    Times are wall-clock times on ``booking_date``; the range is half-open.
    """
    room_id: int = Field(..., ge=1)
    booking_date: date
    start_time: time
    end_time: time


class BookingCreate(BookingBase):
    purpose: str = Field(..., min_length=1)
    attendee_count: int = Field(..., ge=1)
    special_requirements: Optional[str] = None
    contact_number: Optional[str] = Field(default=None, max_length=50)


class BookingUpdate(BaseModel):
    """
    Schema for editing a pending booking.

    The room cannot change; cancel and request again instead.
    """
    booking_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    purpose: Optional[str] = Field(default=None, min_length=1)
    attendee_count: Optional[int] = Field(default=None, ge=1)
    special_requirements: Optional[str] = None


class CancelRequest(BaseModel):
    reason: Optional[str] = None


class BookingRead(BookingBase):
    """
    Schema returned when reading booking information.

    ``effective_status`` is ``in_progress`` for a confirmed booking whose
    range contains the time of the request; it is never stored.
    """
    id: int
    user_id: int
    purpose: str
    attendee_count: int
    status: BookingStatus
    effective_status: Optional[BookingStatus] = None
    special_requirements: Optional[str] = None
    contact_number: Optional[str] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    cancelled_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RoomUsage(BaseModel):
    room_id: int
    bookings: int


class UserActivity(BaseModel):
    user_id: int
    bookings: int


class BookingStats(BaseModel):
    """
    Booking report.

    ``by_status`` counts every stored status; the rankings only count
    confirmed and completed bookings.
    """
    by_status: Dict[BookingStatus, int]
    most_booked_rooms: List[RoomUsage]
    most_active_users: List[UserActivity]


# ---------- Availability blocks ----------


class BlockCreate(BaseModel):
    room_id: int = Field(..., ge=1)
    block_date: date
    start_time: time
    end_time: time
    reason: Optional[str] = None
    notes: Optional[str] = None


class BlockUpdate(BaseModel):
    block_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    reason: Optional[str] = None
    notes: Optional[str] = None


class ReblockRequest(BaseModel):
    reason: Optional[str] = None


class BlockRead(BaseModel):
    id: int
    room_id: int
    block_date: date
    start_time: time
    end_time: time
    is_available: bool
    blocked_by: Optional[int] = None
    blocked_reason: Optional[str] = None
    admin_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BlockOverlapRead(BaseModel):
    first: BlockRead
    second: BlockRead


# ---------- Availability search ----------


class SlotCheckRead(BaseModel):
    """
    Both availability checks for one room and slot, side by side.
    """
    room_id: int
    booking_date: date
    start_time: time
    end_time: time
    available: bool
    conflicting_booking_ids: List[int] = []
    blocking_entry_ids: List[int] = []


# ---------- Maintenance ----------


class SweepRequest(BaseModel):
    as_of: Optional[datetime] = None


class SweepResult(BaseModel):
    as_of: datetime
    completed: int


class PurgeRequest(BaseModel):
    before: date


class PurgeResult(BaseModel):
    before: date
    deleted: int
