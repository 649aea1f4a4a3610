"""
Completion sweep: move confirmed bookings that have fully ended to COMPLETED.

Meant to be triggered externally, e.g. from cron:

    python -m boardroom_service.sweep --as-of 2024-06-02T00:00:00
"""
import argparse
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from common.cache import invalidate_availability

from . import lifecycle, models
from .timerange import local_now, to_local_naive

logger = logging.getLogger(__name__)


def run_completion_sweep(db: Session, as_of: datetime) -> int:
    """
    Complete every CONFIRMED booking whose date and end time are before ``as_of``.

    Pending, cancelled and already completed bookings are never touched,
    so running the sweep twice with the same ``as_of`` changes nothing the
    second time.

    Parameters
    ----------
    db : Session
        Database session.
    as_of : datetime
        Reference time; a booking ending exactly at ``as_of`` is not past.
        An offset-aware value is first converted to local time.

    Returns
    -------
    int
        Number of bookings moved to COMPLETED by this run.
    """
    as_of = to_local_naive(as_of)
    candidates = (
        db.query(models.Booking)
        .filter(models.Booking.status == models.BookingStatus.CONFIRMED)
        .filter(models.Booking.booking_date <= as_of.date())
        .all()
    )

    completed = 0
    for booking in candidates:
        if lifecycle.has_ended(booking, as_of):
            lifecycle.complete(booking, as_of)
            completed += 1

    if completed:
        db.commit()
        invalidate_availability()
    logger.info("Completion sweep as of %s: %d booking(s) completed", as_of.isoformat(), completed)
    return completed


def main(argv: Optional[list] = None) -> int:
    from .config import configure_logging
    from .database import Base, SessionLocal, engine

    parser = argparse.ArgumentParser(description="Complete bookings whose time has passed.")
    parser.add_argument(
        "--as-of",
        type=datetime.fromisoformat,
        default=None,
        help="Reference time in ISO format (default: now)",
    )
    args = parser.parse_args(argv)

    configure_logging()
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        count = run_completion_sweep(db, args.as_of or local_now())
    finally:
        db.close()
    print(f"{count} booking(s) completed")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
