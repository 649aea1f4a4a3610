from typing import Optional, Sequence


class BookingError(Exception):
    """
    Base class for every error raised by the scheduling core.

    Attributes
    ----------
    code : str
        Short machine-readable identifier, echoed in API error bodies.
    """
    code = "booking_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BookingError):
    """Input rejected before any conflict check runs."""
    code = "invalid"


class InvalidRangeError(ValidationError):
    """End is not after start, or a new request targets a past date."""
    code = "invalid_range"


class ConflictError(BookingError):
    """
    The candidate interval overlaps active bookings and/or admin blocks.

    Every overlapping entry is kept, never just the first one, so the
    caller can report each reason.

    Attributes
    ----------
    conflicting_bookings : list
        Active bookings whose range overlaps the candidate.
    blocking_entries : list
        Blocked availability entries whose range overlaps the candidate.
    """
    code = "conflict"

    def __init__(
        self,
        conflicting_bookings: Sequence = (),
        blocking_entries: Sequence = (),
        message: Optional[str] = None,
    ):
        self.conflicting_bookings = list(conflicting_bookings)
        self.blocking_entries = list(blocking_entries)
        if message is None:
            parts = []
            if self.conflicting_bookings:
                parts.append(f"{len(self.conflicting_bookings)} conflicting booking(s)")
            if self.blocking_entries:
                parts.append(f"{len(self.blocking_entries)} blocked slot(s)")
            message = "Room is not available for this time range: " + ", ".join(parts)
        super().__init__(message)


class IllegalTransitionError(BookingError):
    code = "illegal_transition"

    def __init__(self, status, action: str):
        self.status = status
        self.action = action
        label = getattr(status, "value", status)
        super().__init__(f"Cannot {action} a booking in status '{label}'")


class NotFoundError(BookingError):
    code = "not_found"

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class AuthorizationError(BookingError):
    code = "forbidden"


class ConcurrentModificationError(BookingError):
    """
    The check-and-write window for a (room, date) was interrupted.

    Nothing was written. The caller must re-read state and re-run the full
    check rather than assume the operation succeeded.
    """
    code = "concurrent_modification"


class IdentityUnavailableError(BookingError):
    code = "identity_unavailable"
