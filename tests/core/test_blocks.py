from datetime import date

import pytest

from boardroom_service import blocks, service
from boardroom_service.errors import AuthorizationError, NotFoundError
from boardroom_service.models import BookingStatus
from boardroom_service.timerange import TimeRange

from conftest import DAY, NOW, OTHER_USER_ID, REQUESTER_ID, ROOM_ADMIN_ID, SYSTEM_ADMIN_ID, t


def block(db, directory, room, start, end, reason=None, day=DAY, admin_id=ROOM_ADMIN_ID):
    return service.block_slot(
        db, directory, room.id, day, TimeRange(t(start), t(end)), admin_id, reason, now=NOW
    )


def test_block_is_created_blocked(db, directory, room):
    entry = block(db, directory, room, "14:00", "15:00", "Maintenance")
    assert entry.is_available is False
    assert entry.blocked_by == ROOM_ADMIN_ID
    assert entry.blocked_reason == "Maintenance"


def test_only_room_admins_can_block(db, directory, room):
    with pytest.raises(AuthorizationError):
        block(db, directory, room, "14:00", "15:00", admin_id=OTHER_USER_ID)
    assert block(db, directory, room, "14:00", "15:00", admin_id=SYSTEM_ADMIN_ID).id is not None


def test_block_over_confirmed_booking_keeps_the_booking(db, directory, room):
    booking = service.request_booking(
        db, directory, room.id, REQUESTER_ID, DAY, TimeRange(t("14:00"), t("15:00")), "Demo", 2, now=NOW
    )
    service.approve_booking(db, directory, booking.id, ROOM_ADMIN_ID, now=NOW)

    entry = block(db, directory, room, "13:00", "16:00", "Electrical work")
    assert entry.id is not None
    db.refresh(booking)
    assert booking.status == BookingStatus.CONFIRMED


def test_unblock_keeps_audit_fields_and_reblock(db, directory, room):
    entry = block(db, directory, room, "14:00", "15:00", "Maintenance")

    lifted = service.unblock_slot(db, directory, entry.id, ROOM_ADMIN_ID, now=NOW)
    assert lifted.is_available is True
    assert lifted.blocked_by == ROOM_ADMIN_ID
    assert lifted.blocked_reason == "Maintenance"
    assert blocks.overlapping_blocks(db, room.id, DAY, TimeRange(t("14:00"), t("15:00"))) == []

    again = service.reblock_slot(db, directory, entry.id, SYSTEM_ADMIN_ID, "Still broken", now=NOW)
    assert again.is_available is False
    assert again.blocked_by == SYSTEM_ADMIN_ID
    assert again.blocked_reason == "Still broken"


def test_lifted_block_does_not_stop_bookings(db, directory, room):
    entry = block(db, directory, room, "14:00", "15:00")
    service.unblock_slot(db, directory, entry.id, ROOM_ADMIN_ID, now=NOW)

    booking = service.request_booking(
        db, directory, room.id, REQUESTER_ID, DAY, TimeRange(t("14:00"), t("15:00")), "Demo", 2, now=NOW
    )
    assert booking.status == BookingStatus.PENDING


def test_edit_and_delete_block(db, directory, room):
    entry = block(db, directory, room, "14:00", "15:00", "Cleaning")

    edited = service.edit_block(
        db, directory, entry.id, ROOM_ADMIN_ID, time_range=TimeRange(t("16:00"), t("17:00")), notes="Deep clean"
    )
    assert (edited.start_time, edited.end_time) == (t("16:00"), t("17:00"))
    assert edited.admin_notes == "Deep clean"
    assert edited.blocked_reason == "Cleaning"

    with pytest.raises(AuthorizationError):
        service.delete_block(db, directory, entry.id, OTHER_USER_ID)
    service.delete_block(db, directory, entry.id, ROOM_ADMIN_ID)
    with pytest.raises(NotFoundError):
        blocks.get_block(db, entry.id)


def test_block_queries(db, directory, room):
    a = block(db, directory, room, "09:00", "10:00", "Projector repair")
    b = block(db, directory, room, "11:00", "12:00", "Board meeting", admin_id=SYSTEM_ADMIN_ID)
    c = block(db, directory, room, "09:00", "10:00", "PROJECTOR calibration", day=date(2024, 6, 3))
    service.unblock_slot(db, directory, b.id, ROOM_ADMIN_ID, now=NOW)

    assert [x.id for x in blocks.list_blocks(db, room_id=room.id)] == [a.id, b.id, c.id]
    assert [x.id for x in blocks.list_blocks(db, only_blocked=True)] == [a.id, c.id]
    assert [x.id for x in blocks.list_blocks(db, blocked_by=SYSTEM_ADMIN_ID)] == [b.id]
    assert [x.id for x in blocks.list_blocks(db, date_from=date(2024, 6, 2))] == [c.id]
    assert [x.id for x in blocks.blocks_on(db, room.id, DAY)] == [a.id, b.id]
    assert [x.id for x in blocks.search_blocks_by_reason(db, "projector")] == [a.id, c.id]
    assert blocks.search_blocks_by_reason(db, "board") == []

    hits = blocks.overlapping_blocks(db, room.id, DAY, TimeRange(t("09:30"), t("11:30")))
    assert [x.id for x in hits] == [a.id]
    hits = blocks.overlapping_blocks(db, room.id, DAY, TimeRange(t("09:30"), t("11:30")), only_blocked=False)
    assert [x.id for x in hits] == [a.id, b.id]
