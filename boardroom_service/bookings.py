from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from . import models
from .errors import NotFoundError
from .lifecycle import ACTIVE_STATUSES
from .timerange import TimeRange, month_bounds

# Statuses that count as real use of a room in reports
REPORTED_STATUSES = (models.BookingStatus.CONFIRMED, models.BookingStatus.COMPLETED)


def get_booking(db: Session, booking_id: int) -> models.Booking:
    booking = db.query(models.Booking).filter(models.Booking.id == booking_id).first()
    if not booking:
        raise NotFoundError("Booking", booking_id)
    return booking


def list_bookings(
    db: Session,
    room_id: Optional[int] = None,
    user_id: Optional[int] = None,
    status: Optional[models.BookingStatus] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[models.Booking]:
    """
    Bookings matching every given filter, newest first.

    Parameters
    ----------
    room_id : Optional[int]
        Restrict to one room.
    user_id : Optional[int]
        Restrict to one requester.
    status : Optional[BookingStatus]
        Restrict to one persisted status.
    date_from, date_to : Optional[date]
        Inclusive booking-date bounds.

    Returns
    -------
    List[Booking]
        Ordered by date then start time, descending.
    """
    q = db.query(models.Booking)
    if room_id is not None:
        q = q.filter(models.Booking.room_id == room_id)
    if user_id is not None:
        q = q.filter(models.Booking.user_id == user_id)
    if status is not None:
        q = q.filter(models.Booking.status == status)
    if date_from is not None:
        q = q.filter(models.Booking.booking_date >= date_from)
    if date_to is not None:
        q = q.filter(models.Booking.booking_date <= date_to)
    return q.order_by(
        models.Booking.booking_date.desc(),
        models.Booking.start_time.desc(),
    ).all()


def pending_approvals(
    db: Session,
    today: date,
    room_ids: Optional[List[int]] = None,
) -> List[models.Booking]:
    """Pending requests for today or later, oldest request first."""
    q = (
        db.query(models.Booking)
        .filter(models.Booking.status == models.BookingStatus.PENDING)
        .filter(models.Booking.booking_date >= today)
    )
    if room_ids is not None:
        q = q.filter(models.Booking.room_id.in_(room_ids))
    return q.order_by(models.Booking.created_at, models.Booking.id).all()


def upcoming_bookings(
    db: Session,
    today: date,
    user_id: Optional[int] = None,
    room_id: Optional[int] = None,
) -> List[models.Booking]:
    q = (
        db.query(models.Booking)
        .filter(models.Booking.booking_date >= today)
        .filter(models.Booking.status.in_(ACTIVE_STATUSES))
    )
    if user_id is not None:
        q = q.filter(models.Booking.user_id == user_id)
    if room_id is not None:
        q = q.filter(models.Booking.room_id == room_id)
    return q.order_by(models.Booking.booking_date, models.Booking.start_time).all()


def bookings_in_progress(db: Session, now: datetime) -> List[models.Booking]:
    todays = (
        db.query(models.Booking)
        .filter(models.Booking.booking_date == now.date())
        .filter(models.Booking.status == models.BookingStatus.CONFIRMED)
        .order_by(models.Booking.start_time)
        .all()
    )
    return [b for b in todays if TimeRange.of(b).contains(now.time())]


def todays_bookings(db: Session, today: date, room_id: Optional[int] = None) -> List[models.Booking]:
    q = (
        db.query(models.Booking)
        .filter(models.Booking.booking_date == today)
        .filter(models.Booking.status.in_(ACTIVE_STATUSES))
    )
    if room_id is not None:
        q = q.filter(models.Booking.room_id == room_id)
    return q.order_by(models.Booking.start_time, models.Booking.room_id).all()


def calendar(db: Session, year: int, month: int, room_id: Optional[int] = None) -> List[models.Booking]:
    """
    Active bookings of one calendar month, for a month view.

    Parameters
    ----------
    year, month : int
        Month to show; ``month`` is 1-12.
    room_id : Optional[int]
        Restrict to one room's calendar.

    Returns
    -------
    List[Booking]
        Ordered by date then start time.

    Raises
    ------
    ValidationError
        If ``month`` is out of range.
    """
    first, last = month_bounds(year, month)
    q = (
        db.query(models.Booking)
        .filter(models.Booking.booking_date >= first)
        .filter(models.Booking.booking_date <= last)
        .filter(models.Booking.status.in_(ACTIVE_STATUSES))
    )
    if room_id is not None:
        q = q.filter(models.Booking.room_id == room_id)
    return q.order_by(models.Booking.booking_date, models.Booking.start_time).all()


# ---------- Statistics ----------


def count_by_status(db: Session, room_id: Optional[int] = None) -> Dict[models.BookingStatus, int]:
    """Number of bookings per stored status; statuses with no bookings count 0."""
    q = db.query(models.Booking.status, func.count(models.Booking.id))
    if room_id is not None:
        q = q.filter(models.Booking.room_id == room_id)
    counts = {s: 0 for s in models.BookingStatus if s != models.BookingStatus.IN_PROGRESS}
    for booking_status, count in q.group_by(models.Booking.status).all():
        counts[booking_status] = count
    return counts


def most_booked_rooms(db: Session, limit: int = 5) -> List[Tuple[int, int]]:
    """``(room_id, bookings)`` pairs over confirmed and completed bookings, busiest first."""
    bookings_count = func.count(models.Booking.id)
    rows = (
        db.query(models.Booking.room_id, bookings_count)
        .filter(models.Booking.status.in_(REPORTED_STATUSES))
        .group_by(models.Booking.room_id)
        .order_by(bookings_count.desc(), models.Booking.room_id)
        .limit(limit)
        .all()
    )
    return [(room_id, count) for room_id, count in rows]


def most_active_users(db: Session, limit: int = 5) -> List[Tuple[int, int]]:
    """``(user_id, bookings)`` pairs over confirmed and completed bookings."""
    bookings_count = func.count(models.Booking.id)
    rows = (
        db.query(models.Booking.user_id, bookings_count)
        .filter(models.Booking.status.in_(REPORTED_STATUSES))
        .group_by(models.Booking.user_id)
        .order_by(bookings_count.desc(), models.Booking.user_id)
        .limit(limit)
        .all()
    )
    return [(user_id, count) for user_id, count in rows]


def booking_stats(db: Session, room_id: Optional[int] = None, limit: int = 5) -> Dict:
    """
    Booking report for dashboards.

    Returns
    -------
    Dict
        ``by_status`` counts (for one room when ``room_id`` is given),
        plus the ``most_booked_rooms`` and ``most_active_users`` rankings.
    """
    return {
        "by_status": count_by_status(db, room_id),
        "most_booked_rooms": most_booked_rooms(db, limit),
        "most_active_users": most_active_users(db, limit),
    }
