import pytest

from boardroom_service import rooms, service
from boardroom_service.capacity import CapacityTier
from boardroom_service.errors import NotFoundError, ValidationError
from boardroom_service.models import AvailabilityBlock, Booking, ScheduleLock
from boardroom_service.timerange import TimeRange

from conftest import DAY, NOW, REQUESTER_ID, ROOM_ADMIN_ID, t


def test_room_names_are_unique_among_active_rooms(db, room):
    with pytest.raises(ValidationError):
        rooms.create_room(db, name="board room a", location="Elsewhere", capacity=4, now=NOW)

    rooms.deactivate_room(db, room.id, now=NOW)
    again = rooms.create_room(db, name="Board Room A", location="Elsewhere", capacity=4, now=NOW)
    assert again.id != room.id
    with pytest.raises(NotFoundError):
        rooms.get_room(db, room.id)
    assert rooms.get_room(db, room.id, active_only=False).is_active is False


def test_capacity_must_be_positive(db, room):
    with pytest.raises(ValidationError):
        rooms.create_room(db, name="Closet", location="B1", capacity=0, now=NOW)
    with pytest.raises(ValidationError):
        rooms.update_room(db, room.id, capacity=0, now=NOW)


def test_update_room_fields(db, room):
    updated = rooms.update_room(db, room.id, name="Board Room Alpha", amenities="projector,whiteboard", now=NOW)
    assert updated.name == "Board Room Alpha"
    assert updated.amenities == "projector,whiteboard"
    assert updated.capacity_tier == CapacityTier.MEDIUM
    assert updated.display_name == "Board Room Alpha (HQ, floor 3)"


def test_list_and_search_rooms(db, room):
    rooms.create_room(db, name="Huddle", location="Annex", capacity=4, now=NOW)
    rooms.create_room(db, name="Town Hall", location="HQ, ground floor", capacity=120, now=NOW)

    assert [r.name for r in rooms.list_rooms(db)] == ["Board Room A", "Huddle", "Town Hall"]
    assert [r.name for r in rooms.list_rooms(db, min_capacity=5)] == ["Board Room A", "Town Hall"]
    assert [r.name for r in rooms.list_rooms(db, capacity_tier=CapacityTier.SMALL)] == ["Huddle"]
    assert [r.name for r in rooms.list_rooms(db, location="hq")] == ["Board Room A", "Town Hall"]
    assert [r.name for r in rooms.search_rooms(db, "ANNEX")] == ["Huddle"]
    assert [r.name for r in rooms.search_rooms(db, "room")] == ["Board Room A"]


def test_admin_assignments(db, room):
    other = rooms.create_room(db, name="Huddle", location="Annex", capacity=4, now=NOW)
    assert [r.id for r in rooms.rooms_without_admins(db)] == [room.id, other.id]

    assignment = rooms.assign_admin(db, room.id, ROOM_ADMIN_ID, assigned_by=1, notes="Facilities", now=NOW)
    assert assignment.is_active
    assert [r.id for r in rooms.rooms_for_admin(db, ROOM_ADMIN_ID)] == [room.id]
    assert [r.id for r in rooms.rooms_without_admins(db)] == [other.id]

    rooms.revoke_admin(db, room.id, ROOM_ADMIN_ID, now=NOW)
    assert rooms.rooms_for_admin(db, ROOM_ADMIN_ID) == []
    with pytest.raises(NotFoundError):
        rooms.revoke_admin(db, room.id, ROOM_ADMIN_ID, now=NOW)

    again = rooms.assign_admin(db, room.id, ROOM_ADMIN_ID, now=NOW)
    assert again.id == assignment.id
    assert again.is_active


def test_delete_room_removes_children(db, directory, room):
    service.request_booking(
        db, directory, room.id, REQUESTER_ID, DAY, TimeRange(t("09:00"), t("10:00")), "Review", 2, now=NOW
    )
    service.block_slot(db, directory, room.id, DAY, TimeRange(t("14:00"), t("15:00")), ROOM_ADMIN_ID)
    rooms.assign_admin(db, room.id, ROOM_ADMIN_ID, now=NOW)

    rooms.delete_room(db, room.id)

    assert db.query(Booking).count() == 0
    assert db.query(AvailabilityBlock).count() == 0
    assert db.query(ScheduleLock).count() == 0
    with pytest.raises(NotFoundError):
        rooms.get_room(db, room.id, active_only=False)
