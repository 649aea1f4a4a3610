import logging
from datetime import date, datetime
from itertools import combinations, groupby
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from common.cache import invalidate_availability

from . import models
from .timerange import TimeRange, local_now, month_bounds
from .errors import NotFoundError

logger = logging.getLogger(__name__)


def get_block(db: Session, block_id: int) -> models.AvailabilityBlock:
    block = (
        db.query(models.AvailabilityBlock)
        .filter(models.AvailabilityBlock.id == block_id)
        .first()
    )
    if not block:
        raise NotFoundError("Availability block", block_id)
    return block


def create_block(
    db: Session,
    room_id: int,
    day: date,
    time_range: TimeRange,
    admin_id: int,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> models.AvailabilityBlock:
    """
    Block a slot of a room so no new booking can take it.

    Existing bookings inside the slot are left untouched: a block is not
    checked against bookings and never cancels one. It only stops bookings
    from being requested or approved over it afterwards.

    Parameters
    ----------
    db : Session
        Database session.
    room_id : int
        Room to block.
    day : date
        Date of the blocked slot.
    time_range : TimeRange
        Blocked ``[start, end)`` range.
    admin_id : int
        Admin creating the block (kept for audit).
    reason : Optional[str]
        Free-text reason (maintenance, event, ...).
    notes : Optional[str]
        Internal admin notes.

    Returns
    -------
    AvailabilityBlock
        The stored block, with ``is_available = False``.
    """
    now = now or local_now()
    block = models.AvailabilityBlock(
        room_id=room_id,
        block_date=day,
        start_time=time_range.start,
        end_time=time_range.end,
        is_available=False,
        blocked_by=admin_id,
        blocked_reason=reason,
        admin_notes=notes,
        created_at=now,
        updated_at=now,
    )
    db.add(block)
    db.commit()
    db.refresh(block)
    invalidate_availability()
    logger.info(
        "Admin %s blocked room %s on %s %s (%s)", admin_id, room_id, day, time_range, reason
    )
    return block


def unblock(db: Session, block_id: int, now: Optional[datetime] = None) -> models.AvailabilityBlock:
    """
    Lift a block by flipping it to available.

    The row, its admin and its reason are kept for audit. Lifting an
    already lifted block changes nothing but ``updated_at``.
    """
    block = get_block(db, block_id)
    block.is_available = True
    block.updated_at = now or local_now()
    db.add(block)
    db.commit()
    db.refresh(block)
    invalidate_availability()
    logger.info("Block %s on room %s lifted", block.id, block.room_id)
    return block


def reblock(
    db: Session,
    block_id: int,
    admin_id: int,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> models.AvailabilityBlock:
    block = get_block(db, block_id)
    block.is_available = False
    block.blocked_by = admin_id
    if reason is not None:
        block.blocked_reason = reason
    block.updated_at = now or local_now()
    db.add(block)
    db.commit()
    db.refresh(block)
    invalidate_availability()
    logger.info("Block %s on room %s re-applied by admin %s", block.id, block.room_id, admin_id)
    return block


def edit_block(
    db: Session,
    block_id: int,
    day: Optional[date] = None,
    time_range: Optional[TimeRange] = None,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> models.AvailabilityBlock:
    block = get_block(db, block_id)
    if day is not None:
        block.block_date = day
    if time_range is not None:
        block.start_time = time_range.start
        block.end_time = time_range.end
    if reason is not None:
        block.blocked_reason = reason
    if notes is not None:
        block.admin_notes = notes
    block.updated_at = now or local_now()
    db.add(block)
    db.commit()
    db.refresh(block)
    invalidate_availability()
    return block


def delete_block(db: Session, block_id: int) -> None:
    block = get_block(db, block_id)
    db.delete(block)
    db.commit()
    invalidate_availability()
    logger.info("Block %s on room %s deleted", block_id, block.room_id)


# ---------- Queries ----------


def list_blocks(
    db: Session,
    room_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    blocked_by: Optional[int] = None,
    only_blocked: bool = False,
) -> List[models.AvailabilityBlock]:
    """
    Availability entries matching every given filter.

    Parameters
    ----------
    room_id : Optional[int]
        Restrict to one room.
    date_from, date_to : Optional[date]
        Inclusive date bounds.
    blocked_by : Optional[int]
        Restrict to entries created by one admin.
    only_blocked : bool
        Leave out lifted (available) entries.

    Returns
    -------
    List[AvailabilityBlock]
        Ordered by date, room, then start time.
    """
    q = db.query(models.AvailabilityBlock)
    if room_id is not None:
        q = q.filter(models.AvailabilityBlock.room_id == room_id)
    if date_from is not None:
        q = q.filter(models.AvailabilityBlock.block_date >= date_from)
    if date_to is not None:
        q = q.filter(models.AvailabilityBlock.block_date <= date_to)
    if blocked_by is not None:
        q = q.filter(models.AvailabilityBlock.blocked_by == blocked_by)
    if only_blocked:
        q = q.filter(models.AvailabilityBlock.is_available.is_(False))
    return q.order_by(
        models.AvailabilityBlock.block_date,
        models.AvailabilityBlock.room_id,
        models.AvailabilityBlock.start_time,
    ).all()


def blocks_on(db: Session, room_id: int, day: date) -> List[models.AvailabilityBlock]:
    return list_blocks(db, room_id=room_id, date_from=day, date_to=day)


def overlapping_blocks(
    db: Session,
    room_id: int,
    day: date,
    time_range: TimeRange,
    only_blocked: bool = True,
) -> List[models.AvailabilityBlock]:
    entries = list_blocks(db, room_id=room_id, date_from=day, date_to=day, only_blocked=only_blocked)
    return [b for b in entries if TimeRange.of(b).overlaps(time_range)]


def search_blocks_by_reason(db: Session, text: str) -> List[models.AvailabilityBlock]:
    """Blocked entries whose reason contains ``text``, ignoring case."""
    return (
        db.query(models.AvailabilityBlock)
        .filter(models.AvailabilityBlock.is_available.is_(False))
        .filter(models.AvailabilityBlock.blocked_reason.icontains(text, autoescape=True))
        .order_by(models.AvailabilityBlock.block_date, models.AvailabilityBlock.start_time)
        .all()
    )


def todays_blocks(db: Session, today: date, room_id: Optional[int] = None) -> List[models.AvailabilityBlock]:
    return list_blocks(db, room_id=room_id, date_from=today, date_to=today, only_blocked=True)


def blocks_for_calendar(
    db: Session,
    year: int,
    month: int,
    room_id: Optional[int] = None,
) -> List[models.AvailabilityBlock]:
    """Every entry of one calendar month, lifted ones included."""
    first, last = month_bounds(year, month)
    return list_blocks(db, room_id=room_id, date_from=first, date_to=last)


def overlapping_block_pairs(
    db: Session,
    room_id: Optional[int] = None,
    only_blocked: bool = True,
) -> List[Tuple[models.AvailabilityBlock, models.AvailabilityBlock]]:
    """
    Pairs of entries on the same room and date whose ranges overlap.

    Admins may stack blocks on one slot; this lists them so duplicates can
    be cleaned up. Each pair appears once, earlier start first.

    Parameters
    ----------
    room_id : Optional[int]
        Restrict to one room.
    only_blocked : bool
        Leave lifted entries out, since they block nothing.
    """
    entries = list_blocks(db, room_id=room_id, only_blocked=only_blocked)
    pairs = []
    for _, group in groupby(entries, key=lambda b: (b.block_date, b.room_id)):
        for first, second in combinations(list(group), 2):
            if TimeRange.of(first).overlaps(TimeRange.of(second)):
                pairs.append((first, second))
    return pairs


def purge_blocks_before(db: Session, cutoff: date) -> int:
    """Delete every entry dated before ``cutoff``; returns how many went."""
    deleted = (
        db.query(models.AvailabilityBlock)
        .filter(models.AvailabilityBlock.block_date < cutoff)
        .delete(synchronize_session=False)
    )
    db.commit()
    if deleted:
        invalidate_availability()
    logger.info("Purged %d availability entries dated before %s", deleted, cutoff)
    return deleted
