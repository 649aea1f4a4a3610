from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Tuple

from .errors import InvalidRangeError, ValidationError


@dataclass(frozen=True)
class TimeRange:
    """
    Half-open ``[start, end)`` interval of clock times on one calendar date.

    Back-to-back ranges (one ending at 10:00, the next starting at 10:00)
    do not overlap.

    Raises
    ------
    InvalidRangeError
        If start is not strictly before end, or either time carries a UTC
        offset (stored times are local wall-clock times).
    """
    start: time
    end: time

    def __post_init__(self):
        if self.start.tzinfo is not None or self.end.tzinfo is not None:
            raise InvalidRangeError("Times must be local wall-clock times without a UTC offset")
        if self.start >= self.end:
            raise InvalidRangeError("end_time must be after start_time")

    @classmethod
    def of(cls, row) -> "TimeRange":
        """Build the range stored on a booking or availability block row."""
        return cls(row.start_time, row.end_time)

    def overlaps(self, other: "TimeRange") -> bool:
        return self.start < other.end and self.end > other.start

    def contains(self, moment: time) -> bool:
        return self.start <= moment < self.end

    def duration_minutes(self) -> int:
        start = datetime.combine(date.min, self.start)
        end = datetime.combine(date.min, self.end)
        return int((end - start).total_seconds() // 60)

    def starts_at(self, day: date) -> datetime:
        return datetime.combine(day, self.start)

    def ends_at(self, day: date) -> datetime:
        return datetime.combine(day, self.end)

    def __str__(self) -> str:
        return f"{self.start:%H:%M} - {self.end:%H:%M}"


def local_now() -> datetime:
    """Current wall-clock time; every stored time shares this one implicit zone."""
    return datetime.now()


def to_local_naive(moment: datetime) -> datetime:
    """Convert an offset-aware datetime to naive local time; naive values pass through."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone().replace(tzinfo=None)


def overlaps_on(day_a: date, range_a: TimeRange, day_b: date, range_b: TimeRange) -> bool:
    """Ranges on different dates never overlap, whatever their clock times."""
    if day_a != day_b:
        return False
    return range_a.overlaps(range_b)


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last date of a calendar month."""
    if not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])
