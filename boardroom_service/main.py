import logging
from datetime import date, time
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from common.cache import availability_key, get_cached_json, set_cached_json

from . import auth, blocks, bookings, lifecycle, models, rooms, schemas, search, service, sweep
from .auth import forbid_roles, get_current_user_claims, require_roles
from .capacity import CapacityTier
from .config import AVAILABILITY_CACHE_TTL_SECONDS, configure_logging
from .database import Base, engine, get_db
from .errors import (
    AuthorizationError,
    BookingError,
    ConcurrentModificationError,
    ConflictError,
    IdentityUnavailableError,
    IllegalTransitionError,
    NotFoundError,
    ValidationError,
)
from .identity import IdentityDirectory, UsersServiceDirectory
from .rate_limiter import booking_rate_limiter
from .timerange import TimeRange, local_now, to_local_naive

configure_logging()
logger = logging.getLogger(__name__)

# Create tables
Base.metadata.create_all(bind=engine)

app = FastAPI(title="Boardroom Service", version="1.0.0")
router_v1 = APIRouter(prefix="/api/v1")

SERVICE_NAME = "boardroom"

ERROR_STATUS_CODES = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    AuthorizationError: status.HTTP_403_FORBIDDEN,
    ConflictError: status.HTTP_409_CONFLICT,
    IllegalTransitionError: status.HTTP_409_CONFLICT,
    ConcurrentModificationError: status.HTTP_409_CONFLICT,
    IdentityUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _error_body(request: Request, status_code: int, detail) -> Dict:
    return {
        "service": SERVICE_NAME,
        "path": request.url.path,
        "method": request.method,
        "status_code": status_code,
        "detail": detail,
    }


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.status_code, exc.detail),
    )


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    for klass in type(exc).__mro__:
        if klass in ERROR_STATUS_CODES:
            status_code = ERROR_STATUS_CODES[klass]
            break

    content = _error_body(request, status_code, exc.message)
    content["error"] = exc.code
    if isinstance(exc, ConflictError):
        content["conflicting_booking_ids"] = [b.id for b in exc.conflicting_bookings]
        content["blocking_entry_ids"] = [b.id for b in exc.blocking_entries]
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=_error_body(request, 500, "Internal server error"),
    )


@app.get("/")
def root():
    """
    Health-check endpoint for the Boardroom service.

    Returns
    -------
    dict
        A small JSON payload indicating that the service is running.
    """
    return {"service": "boardroom", "status": "running"}


room_managers = require_roles(auth.ADMIN, auth.FACILITY_MANAGER)

admin_facility_or_auditor = require_roles(
    auth.ADMIN,
    auth.FACILITY_MANAGER,
    auth.AUDITOR,
    auth.SERVICE_ACCOUNT,  # internal read-only access
)

sweep_roles = require_roles(auth.ADMIN, auth.SERVICE_ACCOUNT)  # cron runs as service account

# ❗ read-only and service accounts never own bookings
booking_owners = forbid_roles(auth.AUDITOR, auth.SERVICE_ACCOUNT)


def get_directory(db: Session = Depends(get_db)) -> IdentityDirectory:
    """Identity lookups for the current request; overridden in tests."""
    return UsersServiceDirectory(db)


def booking_read(booking: models.Booking) -> schemas.BookingRead:
    out = schemas.BookingRead.model_validate(booking)
    out.effective_status = lifecycle.effective_status(booking, local_now())
    return out


# ---------- Rooms ----------


@router_v1.post("/rooms", response_model=schemas.RoomRead, status_code=status.HTTP_201_CREATED)
def create_room(
    room_in: schemas.RoomCreate,
    db: Session = Depends(get_db),
    _: Dict = Depends(room_managers),
):
    """
    Create a room; the capacity tier is derived from its capacity.

    Access
    ------
    - Allowed roles: admin, facility_manager.
    """
    return rooms.create_room(
        db,
        name=room_in.name,
        location=room_in.location,
        capacity=room_in.capacity,
        description=room_in.description,
        amenities=room_in.amenities,
    )


@router_v1.get("/rooms", response_model=List[schemas.RoomRead])
def list_rooms(
    capacity_tier: Optional[CapacityTier] = None,
    min_capacity: Optional[int] = Query(default=None, ge=1),
    location: Optional[str] = None,
    q: Optional[str] = Query(default=None, min_length=1),
    db: Session = Depends(get_db),
    _: Dict = Depends(get_current_user_claims),
):
    """
    List active rooms.

    Parameters
    ----------
    capacity_tier : Optional[CapacityTier]
        Only rooms of this tier (ordered by capacity).
    min_capacity : Optional[int]
        Only rooms holding at least this many people.
    location : Optional[str]
        Case-insensitive substring of the location.
    q : Optional[str]
        Free-text search over name and location; other filters are ignored.
    """
    if q is not None:
        return rooms.search_rooms(db, q)
    return rooms.list_rooms(db, capacity_tier, min_capacity, location)


@router_v1.get("/rooms/unassigned", response_model=List[schemas.RoomRead])
def list_rooms_without_admins(
    db: Session = Depends(get_db),
    _: Dict = Depends(room_managers),
):
    return rooms.rooms_without_admins(db)


@router_v1.get("/rooms/administered", response_model=List[schemas.RoomRead])
def list_my_rooms(
    db: Session = Depends(get_db),
    claims: Dict = Depends(get_current_user_claims),
):
    """Rooms the caller is an assigned admin of."""
    return rooms.rooms_for_admin(db, claims["user_id"])


@router_v1.get("/rooms/{room_id}", response_model=schemas.RoomRead)
def get_room(
    room_id: int,
    db: Session = Depends(get_db),
    _: Dict = Depends(get_current_user_claims),
):
    return rooms.get_room(db, room_id)


@router_v1.put("/rooms/{room_id}", response_model=schemas.RoomRead)
def update_room(
    room_id: int,
    update_data: schemas.RoomUpdate,
    db: Session = Depends(get_db),
    _: Dict = Depends(room_managers),
):
    data = update_data.model_dump(exclude_unset=True)
    return rooms.update_room(db, room_id, **data)


@router_v1.delete("/rooms/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_room(
    room_id: int,
    hard: bool = False,
    db: Session = Depends(get_db),
    _: Dict = Depends(room_managers),
):
    """
    Deactivate a room, or with ``hard=true`` delete it with all its
    bookings, blocks and admin assignments.
    """
    if hard:
        rooms.delete_room(db, room_id)
    else:
        rooms.deactivate_room(db, room_id)
    return


@router_v1.post(
    "/rooms/{room_id}/admins",
    response_model=schemas.AdminAssignmentRead,
    status_code=status.HTTP_201_CREATED,
)
def assign_room_admin(
    room_id: int,
    assign_in: schemas.AdminAssign,
    db: Session = Depends(get_db),
    claims: Dict = Depends(room_managers),
):
    return rooms.assign_admin(
        db, room_id, assign_in.user_id, assigned_by=claims["user_id"], notes=assign_in.notes
    )


@router_v1.delete("/rooms/{room_id}/admins/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_room_admin(
    room_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    _: Dict = Depends(room_managers),
):
    rooms.revoke_admin(db, room_id, user_id)
    return


# ---------- Bookings ----------


@router_v1.post(
    "/bookings",
    response_model=schemas.BookingRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(booking_rate_limiter)],
)
def create_booking(
    booking_in: schemas.BookingCreate,
    db: Session = Depends(get_db),
    directory: IdentityDirectory = Depends(get_directory),
    claims: Dict = Depends(booking_owners),
):
    """
    Request a booking for the authenticated user.

    Behavior
    --------
    - Rejects ranges whose end is not after their start, and past dates.
    - Rejects slots overlapping a confirmed booking or a blocked entry
      (409, with the ids of everything in the way).
    - The new booking waits in PENDING until a room admin approves it.

    Raises
    ------
    HTTPException
        If the caller's role cannot own bookings.
    """
    booking = service.request_booking(
        db,
        directory,
        room_id=booking_in.room_id,
        user_id=claims["user_id"],
        day=booking_in.booking_date,
        time_range=TimeRange(booking_in.start_time, booking_in.end_time),
        purpose=booking_in.purpose,
        attendee_count=booking_in.attendee_count,
        special_requirements=booking_in.special_requirements,
        contact_number=booking_in.contact_number,
    )
    return booking_read(booking)


@router_v1.get("/bookings", response_model=List[schemas.BookingRead])
def list_all_bookings(
    room_id: Optional[int] = Query(default=None, ge=1),
    user_id: Optional[int] = Query(default=None, ge=1),
    booking_status: Optional[models.BookingStatus] = Query(default=None, alias="status"),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
    _: Dict = Depends(admin_facility_or_auditor),
):
    """
    Admin/Facility/Auditor/Service Account: view all bookings with optional filters.

    Returns
    -------
    List[BookingRead]
        Matching bookings, newest first.
    """
    found = bookings.list_bookings(db, room_id, user_id, booking_status, date_from, date_to)
    return [booking_read(b) for b in found]


@router_v1.get("/bookings/me", response_model=List[schemas.BookingRead])
def list_my_bookings(
    upcoming: bool = False,
    db: Session = Depends(get_db),
    claims: Dict = Depends(get_current_user_claims),
):
    """
    List bookings that belong to the authenticated user.

    With ``upcoming=true`` only active bookings from today on are returned,
    soonest first.
    """
    if upcoming:
        found = bookings.upcoming_bookings(db, local_now().date(), user_id=claims["user_id"])
    else:
        found = bookings.list_bookings(db, user_id=claims["user_id"])
    return [booking_read(b) for b in found]


@router_v1.get("/bookings/pending", response_model=List[schemas.BookingRead])
def list_pending_bookings(
    db: Session = Depends(get_db),
    claims: Dict = Depends(get_current_user_claims),
):
    """
    Pending requests waiting for approval, oldest request first.

    System admins see every room; other users see the rooms they are
    assigned to.
    """
    room_ids = None
    if claims["role"] != auth.ADMIN:
        room_ids = rooms.admin_room_ids(db, claims["user_id"])
        if not room_ids:
            return []
    found = bookings.pending_approvals(db, local_now().date(), room_ids)
    return [booking_read(b) for b in found]


@router_v1.get("/bookings/in-progress", response_model=List[schemas.BookingRead])
def list_bookings_in_progress(
    db: Session = Depends(get_db),
    _: Dict = Depends(admin_facility_or_auditor),
):
    found = bookings.bookings_in_progress(db, local_now())
    return [booking_read(b) for b in found]


@router_v1.get("/bookings/today", response_model=List[schemas.BookingRead])
def list_todays_bookings(
    room_id: Optional[int] = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    _: Dict = Depends(admin_facility_or_auditor),
):
    found = bookings.todays_bookings(db, local_now().date(), room_id)
    return [booking_read(b) for b in found]


@router_v1.get("/bookings/calendar", response_model=List[schemas.BookingRead])
def booking_calendar(
    year: int = Query(..., ge=1, le=9999),
    month: int = Query(..., ge=1, le=12),
    room_id: Optional[int] = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    _: Dict = Depends(admin_facility_or_auditor),
):
    """
    Confirmed bookings of one month, for the whole building or one room.
    """
    found = bookings.calendar(db, year, month, room_id)
    return [booking_read(b) for b in found]


@router_v1.get("/bookings/stats", response_model=schemas.BookingStats)
def booking_stats(
    room_id: Optional[int] = Query(default=None, ge=1),
    limit: int = Query(default=5, ge=1, le=100),
    db: Session = Depends(get_db),
    _: Dict = Depends(admin_facility_or_auditor),
):
    """
    Booking counts per status plus the busiest rooms and most active users.

    ``room_id`` narrows the status counts only; the rankings always cover
    every room.
    """
    stats = bookings.booking_stats(db, room_id, limit)
    return schemas.BookingStats(
        by_status=stats["by_status"],
        most_booked_rooms=[
            schemas.RoomUsage(room_id=rid, bookings=count) for rid, count in stats["most_booked_rooms"]
        ],
        most_active_users=[
            schemas.UserActivity(user_id=uid, bookings=count) for uid, count in stats["most_active_users"]
        ],
    )


@router_v1.get("/bookings/{booking_id}", response_model=schemas.BookingRead)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    directory: IdentityDirectory = Depends(get_directory),
    claims: Dict = Depends(get_current_user_claims),
):
    booking = bookings.get_booking(db, booking_id)
    if booking.user_id != claims["user_id"] and claims["role"] not in (auth.ADMIN, auth.AUDITOR):
        if not directory.is_admin_for(claims["user_id"], booking.room_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not allowed to view this booking",
            )
    return booking_read(booking)


@router_v1.put(
    "/bookings/{booking_id}",
    response_model=schemas.BookingRead,
    dependencies=[Depends(booking_rate_limiter)],
)
def update_booking(
    booking_id: int,
    update_data: schemas.BookingUpdate,
    db: Session = Depends(get_db),
    claims: Dict = Depends(booking_owners),
):
    """
    Edit a pending booking owned by the caller.

    A new date or time range is checked like a fresh request. Confirmed
    bookings are not editable (409); cancel and request again instead.
    """
    time_range = None
    if update_data.start_time is not None or update_data.end_time is not None:
        current = bookings.get_booking(db, booking_id)
        time_range = TimeRange(
            update_data.start_time or current.start_time,
            update_data.end_time or current.end_time,
        )
    booking = service.modify_booking(
        db,
        booking_id,
        actor_id=claims["user_id"],
        day=update_data.booking_date,
        time_range=time_range,
        purpose=update_data.purpose,
        attendee_count=update_data.attendee_count,
        special_requirements=update_data.special_requirements,
    )
    return booking_read(booking)


@router_v1.post(
    "/bookings/{booking_id}/approve",
    response_model=schemas.BookingRead,
    dependencies=[Depends(booking_rate_limiter)],
)
def approve_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    directory: IdentityDirectory = Depends(get_directory),
    claims: Dict = Depends(get_current_user_claims),
):
    """
    Confirm a pending booking (room admins only).

    The slot is checked again at approval time; a competing request that
    was approved first, or a block added since, makes this one fail
    with 409.
    """
    booking = service.approve_booking(db, directory, booking_id, claims["user_id"])
    return booking_read(booking)


@router_v1.post(
    "/bookings/{booking_id}/cancel",
    response_model=schemas.BookingRead,
    dependencies=[Depends(booking_rate_limiter)],
)
def cancel_booking(
    booking_id: int,
    cancel_in: Optional[schemas.CancelRequest] = None,
    db: Session = Depends(get_db),
    directory: IdentityDirectory = Depends(get_directory),
    claims: Dict = Depends(get_current_user_claims),
):
    """
    Cancel a pending or confirmed booking.

    Access
    ------
    - The requester of the booking.
    - Admins of the booking's room.
    """
    reason = cancel_in.reason if cancel_in is not None else None
    booking = service.cancel_booking(db, directory, booking_id, claims["user_id"], reason)
    return booking_read(booking)


# ---------- Availability ----------


@router_v1.get("/availability/rooms", response_model=List[schemas.RoomRead])
def available_rooms(
    booking_date: date,
    start_time: time,
    end_time: time,
    capacity_tier: Optional[CapacityTier] = None,
    admin_id: Optional[int] = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    _: Dict = Depends(get_current_user_claims),
):
    """
    Rooms free of confirmed bookings and blocks over a slot.

    Results are cached in Redis for a short time; every booking, block
    and room write clears the cache.
    """
    time_range = TimeRange(start_time, end_time)
    cache_key = availability_key(
        booking_date.isoformat(),
        start_time.strftime("%H:%M:%S"),
        end_time.strftime("%H:%M:%S"),
        capacity_tier.value if capacity_tier else None,
        admin_id,
    )
    cached = get_cached_json(cache_key)
    if cached is not None:
        return cached

    found = service.search_available_rooms(db, booking_date, time_range, capacity_tier, admin_id)
    payload = [schemas.RoomRead.model_validate(room).model_dump(mode="json") for room in found]
    set_cached_json(cache_key, payload, ttl_seconds=AVAILABILITY_CACHE_TTL_SECONDS)
    return payload


@router_v1.get("/availability/check", response_model=schemas.SlotCheckRead)
def check_availability(
    room_id: int,
    booking_date: date,
    start_time: time,
    end_time: time,
    db: Session = Depends(get_db),
    _: Dict = Depends(get_current_user_claims),
):
    """
    Check one room over one slot.

    Returns
    -------
    SlotCheckRead
        ``available`` plus the ids of every confirmed booking and every
        blocked entry overlapping the slot.
    """
    slot = search.check_slot(db, room_id, booking_date, TimeRange(start_time, end_time))
    return schemas.SlotCheckRead(
        room_id=room_id,
        booking_date=booking_date,
        start_time=start_time,
        end_time=end_time,
        available=slot.available,
        conflicting_booking_ids=[b.id for b in slot.bookings.conflicting_bookings],
        blocking_entry_ids=[b.id for b in slot.blocks.blocking_entries],
    )


# ---------- Availability blocks ----------


@router_v1.post(
    "/blocks",
    response_model=schemas.BlockRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(booking_rate_limiter)],
)
def create_block(
    block_in: schemas.BlockCreate,
    db: Session = Depends(get_db),
    directory: IdentityDirectory = Depends(get_directory),
    claims: Dict = Depends(get_current_user_claims),
):
    """
    Block a slot of a room (room admins only).

    Bookings already inside the slot are kept; the block only stops new
    requests and approvals over it.
    """
    return service.block_slot(
        db,
        directory,
        room_id=block_in.room_id,
        day=block_in.block_date,
        time_range=TimeRange(block_in.start_time, block_in.end_time),
        admin_id=claims["user_id"],
        reason=block_in.reason,
        notes=block_in.notes,
    )


@router_v1.get("/blocks", response_model=List[schemas.BlockRead])
def list_blocks(
    room_id: Optional[int] = Query(default=None, ge=1),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    blocked_by: Optional[int] = Query(default=None, ge=1),
    only_blocked: bool = False,
    reason: Optional[str] = Query(default=None, min_length=1),
    db: Session = Depends(get_db),
    _: Dict = Depends(get_current_user_claims),
):
    """
    List availability entries.

    With ``reason`` set, returns the blocked entries whose reason contains
    the text (case-insensitive) and ignores the other filters.
    """
    if reason is not None:
        return blocks.search_blocks_by_reason(db, reason)
    return blocks.list_blocks(db, room_id, date_from, date_to, blocked_by, only_blocked)


@router_v1.get("/blocks/today", response_model=List[schemas.BlockRead])
def list_todays_blocks(
    room_id: Optional[int] = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    _: Dict = Depends(get_current_user_claims),
):
    return blocks.todays_blocks(db, local_now().date(), room_id)


@router_v1.get("/blocks/calendar", response_model=List[schemas.BlockRead])
def block_calendar(
    year: int = Query(..., ge=1, le=9999),
    month: int = Query(..., ge=1, le=12),
    room_id: Optional[int] = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    _: Dict = Depends(get_current_user_claims),
):
    return blocks.blocks_for_calendar(db, year, month, room_id)


@router_v1.get("/blocks/overlaps", response_model=List[schemas.BlockOverlapRead])
def list_overlapping_blocks(
    room_id: Optional[int] = Query(default=None, ge=1),
    only_blocked: bool = True,
    db: Session = Depends(get_db),
    _: Dict = Depends(admin_facility_or_auditor),
):
    """
    Pairs of entries stacked on the same room, date and time.
    """
    pairs = blocks.overlapping_block_pairs(db, room_id, only_blocked)
    return [
        schemas.BlockOverlapRead(
            first=schemas.BlockRead.model_validate(first),
            second=schemas.BlockRead.model_validate(second),
        )
        for first, second in pairs
    ]


@router_v1.put(
    "/blocks/{block_id}",
    response_model=schemas.BlockRead,
    dependencies=[Depends(booking_rate_limiter)],
)
def update_block(
    block_id: int,
    update_data: schemas.BlockUpdate,
    db: Session = Depends(get_db),
    directory: IdentityDirectory = Depends(get_directory),
    claims: Dict = Depends(get_current_user_claims),
):
    time_range = None
    if update_data.start_time is not None or update_data.end_time is not None:
        current = blocks.get_block(db, block_id)
        time_range = TimeRange(
            update_data.start_time or current.start_time,
            update_data.end_time or current.end_time,
        )
    return service.edit_block(
        db,
        directory,
        block_id,
        claims["user_id"],
        day=update_data.block_date,
        time_range=time_range,
        reason=update_data.reason,
        notes=update_data.notes,
    )


@router_v1.delete(
    "/blocks/{block_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(booking_rate_limiter)],
)
def delete_block(
    block_id: int,
    db: Session = Depends(get_db),
    directory: IdentityDirectory = Depends(get_directory),
    claims: Dict = Depends(get_current_user_claims),
):
    service.delete_block(db, directory, block_id, claims["user_id"])
    return


@router_v1.post(
    "/blocks/{block_id}/unblock",
    response_model=schemas.BlockRead,
    dependencies=[Depends(booking_rate_limiter)],
)
def unblock(
    block_id: int,
    db: Session = Depends(get_db),
    directory: IdentityDirectory = Depends(get_directory),
    claims: Dict = Depends(get_current_user_claims),
):
    """Lift a block; who blocked it and why stay on record."""
    return service.unblock_slot(db, directory, block_id, claims["user_id"])


@router_v1.post(
    "/blocks/{block_id}/reblock",
    response_model=schemas.BlockRead,
    dependencies=[Depends(booking_rate_limiter)],
)
def reblock(
    block_id: int,
    reblock_in: Optional[schemas.ReblockRequest] = None,
    db: Session = Depends(get_db),
    directory: IdentityDirectory = Depends(get_directory),
    claims: Dict = Depends(get_current_user_claims),
):
    reason = reblock_in.reason if reblock_in is not None else None
    return service.reblock_slot(db, directory, block_id, claims["user_id"], reason)


# ---------- Maintenance ----------


@router_v1.post("/maintenance/complete-sweep", response_model=schemas.SweepResult)
def complete_sweep(
    sweep_in: Optional[schemas.SweepRequest] = None,
    db: Session = Depends(get_db),
    _: Dict = Depends(sweep_roles),
):
    """
    Mark every confirmed booking that has ended as COMPLETED.

    Access
    ------
    - Allowed roles: admin, service_account (cron).
    """
    as_of = sweep_in.as_of if sweep_in is not None and sweep_in.as_of else local_now()
    as_of = to_local_naive(as_of)
    completed = sweep.run_completion_sweep(db, as_of)
    return schemas.SweepResult(as_of=as_of, completed=completed)


@router_v1.post("/maintenance/purge-blocks", response_model=schemas.PurgeResult)
def purge_blocks(
    purge_in: schemas.PurgeRequest,
    db: Session = Depends(get_db),
    _: Dict = Depends(room_managers),
):
    """
    Delete availability entries dated before ``before``, lifted or not.

    Access
    ------
    - Allowed roles: admin, facility_manager.
    """
    deleted = blocks.purge_blocks_before(db, purge_in.before)
    return schemas.PurgeResult(before=purge_in.before, deleted=deleted)


app.include_router(router_v1)
