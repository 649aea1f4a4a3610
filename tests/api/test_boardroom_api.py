from datetime import date, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from boardroom_service.main import app, get_directory

from conftest import OTHER_USER_ID, REQUESTER_ID, ROOM_ADMIN_ID, SYSTEM_ADMIN_ID, auth_headers

client = TestClient(app)

# API requests go through the real clock, so book in the future
FUTURE = (datetime.now() + timedelta(days=30)).date().isoformat()


@pytest.fixture(autouse=True)
def identity(directory):
    app.dependency_overrides[get_directory] = lambda: directory
    yield directory
    app.dependency_overrides.clear()


@pytest.fixture
def room_id(identity):
    res = client.post(
        "/api/v1/rooms",
        json={"name": "Board Room A", "location": "HQ", "capacity": 10},
        headers=auth_headers(SYSTEM_ADMIN_ID, "admin"),
    )
    assert res.status_code == 201
    rid = res.json()["id"]
    identity.make_admin(ROOM_ADMIN_ID, rid)
    return rid


def booking_body(room_id, start="09:00", end="10:00", day=FUTURE):
    return {
        "room_id": room_id,
        "booking_date": day,
        "start_time": start,
        "end_time": end,
        "purpose": "Planning",
        "attendee_count": 5,
    }


def test_root():
    res = client.get("/")
    assert res.status_code == 200
    assert res.json() == {"service": "boardroom", "status": "running"}


def test_requests_need_a_token():
    res = client.get("/api/v1/rooms")
    assert res.status_code in (401, 403)


def test_create_room_derives_tier(room_id):
    res = client.get(f"/api/v1/rooms/{room_id}", headers=auth_headers(REQUESTER_ID))
    assert res.status_code == 200
    data = res.json()
    assert data["capacity_tier"] == "medium"
    assert data["is_active"] is True


def test_regular_user_cannot_create_rooms():
    res = client.post(
        "/api/v1/rooms",
        json={"name": "Mine", "location": "HQ", "capacity": 3},
        headers=auth_headers(REQUESTER_ID),
    )
    assert res.status_code == 403
    assert res.json()["service"] == "boardroom"


def test_update_and_deactivate_room(room_id):
    admin = auth_headers(SYSTEM_ADMIN_ID, "admin")
    res = client.put(f"/api/v1/rooms/{room_id}", json={"capacity": 40}, headers=admin)
    assert res.status_code == 200
    assert res.json()["capacity_tier"] == "large"

    res = client.delete(f"/api/v1/rooms/{room_id}", headers=admin)
    assert res.status_code == 204
    res = client.get(f"/api/v1/rooms/{room_id}", headers=admin)
    assert res.status_code == 404
    assert res.json()["error"] == "not_found"


def test_booking_flow(room_id):
    user = auth_headers(REQUESTER_ID)
    res = client.post("/api/v1/bookings", json=booking_body(room_id), headers=user)
    assert res.status_code == 201
    booking = res.json()
    assert booking["status"] == "pending"
    assert booking["user_id"] == REQUESTER_ID

    res = client.get("/api/v1/bookings/pending", headers=auth_headers(ROOM_ADMIN_ID))
    assert res.status_code == 200
    assert res.json() == []  # no local assignment yet

    res = client.post(
        f"/api/v1/rooms/{room_id}/admins",
        json={"user_id": ROOM_ADMIN_ID},
        headers=auth_headers(SYSTEM_ADMIN_ID, "admin"),
    )
    assert res.status_code == 201
    res = client.get("/api/v1/bookings/pending", headers=auth_headers(ROOM_ADMIN_ID))
    assert [b["id"] for b in res.json()] == [booking["id"]]

    res = client.post(f"/api/v1/bookings/{booking['id']}/approve", headers=auth_headers(ROOM_ADMIN_ID))
    assert res.status_code == 200
    assert res.json()["status"] == "confirmed"
    assert res.json()["approved_by"] == ROOM_ADMIN_ID

    res = client.post(
        "/api/v1/bookings",
        json=booking_body(room_id, "09:30", "10:30"),
        headers=auth_headers(OTHER_USER_ID),
    )
    assert res.status_code == 409
    body = res.json()
    assert body["error"] == "conflict"
    assert body["conflicting_booking_ids"] == [booking["id"]]
    assert body["blocking_entry_ids"] == []

    res = client.post(
        f"/api/v1/bookings/{booking['id']}/cancel",
        json={"reason": "Moved online"},
        headers=user,
    )
    assert res.status_code == 200
    assert res.json()["status"] == "cancelled"
    assert res.json()["cancelled_reason"] == "Moved online"

    res = client.post(f"/api/v1/bookings/{booking['id']}/cancel", headers=user)
    assert res.status_code == 409
    assert res.json()["error"] == "illegal_transition"


def test_invalid_range_and_past_date(room_id):
    user = auth_headers(REQUESTER_ID)
    res = client.post("/api/v1/bookings", json=booking_body(room_id, "10:00", "09:00"), headers=user)
    assert res.status_code == 400
    assert res.json()["error"] == "invalid_range"

    past = (date.today() - timedelta(days=1)).isoformat()
    res = client.post("/api/v1/bookings", json=booking_body(room_id, day=past), headers=user)
    assert res.status_code == 400


def test_only_admins_approve(room_id):
    res = client.post("/api/v1/bookings", json=booking_body(room_id), headers=auth_headers(REQUESTER_ID))
    booking_id = res.json()["id"]

    res = client.post(f"/api/v1/bookings/{booking_id}/approve", headers=auth_headers(OTHER_USER_ID))
    assert res.status_code == 403
    assert res.json()["error"] == "forbidden"


def test_modify_pending_booking(room_id):
    user = auth_headers(REQUESTER_ID)
    booking_id = client.post("/api/v1/bookings", json=booking_body(room_id), headers=user).json()["id"]

    res = client.put(
        f"/api/v1/bookings/{booking_id}",
        json={"end_time": "11:00", "purpose": "Longer planning"},
        headers=user,
    )
    assert res.status_code == 200
    assert res.json()["end_time"] == "11:00:00"
    assert res.json()["purpose"] == "Longer planning"

    res = client.put(f"/api/v1/bookings/{booking_id}", json={"purpose": "Mine now"}, headers=auth_headers(OTHER_USER_ID))
    assert res.status_code == 403


def test_booking_visibility(room_id):
    booking_id = client.post(
        "/api/v1/bookings", json=booking_body(room_id), headers=auth_headers(REQUESTER_ID)
    ).json()["id"]

    assert client.get(f"/api/v1/bookings/{booking_id}", headers=auth_headers(REQUESTER_ID)).status_code == 200
    assert client.get(f"/api/v1/bookings/{booking_id}", headers=auth_headers(ROOM_ADMIN_ID)).status_code == 200
    assert client.get(f"/api/v1/bookings/{booking_id}", headers=auth_headers(OTHER_USER_ID)).status_code == 403

    mine = client.get("/api/v1/bookings/me", headers=auth_headers(REQUESTER_ID)).json()
    assert [b["id"] for b in mine] == [booking_id]
    assert client.get("/api/v1/bookings/me", headers=auth_headers(OTHER_USER_ID)).json() == []

    assert client.get("/api/v1/bookings", headers=auth_headers(REQUESTER_ID)).status_code == 403
    res = client.get(
        "/api/v1/bookings",
        params={"room_id": room_id, "status": "pending"},
        headers=auth_headers(SYSTEM_ADMIN_ID, "auditor"),
    )
    assert [b["id"] for b in res.json()] == [booking_id]


def test_blocks_and_availability(room_id):
    admin = auth_headers(ROOM_ADMIN_ID)
    res = client.post(
        "/api/v1/blocks",
        json={
            "room_id": room_id,
            "block_date": FUTURE,
            "start_time": "14:00",
            "end_time": "15:00",
            "reason": "Maintenance",
        },
        headers=admin,
    )
    assert res.status_code == 201
    block = res.json()
    assert block["is_available"] is False

    user = auth_headers(REQUESTER_ID)
    params = {"booking_date": FUTURE, "start_time": "14:00", "end_time": "15:00"}
    res = client.get("/api/v1/availability/rooms", params=params, headers=user)
    assert res.status_code == 200
    assert res.json() == []

    res = client.get("/api/v1/availability/check", params={**params, "room_id": room_id}, headers=user)
    assert res.json()["available"] is False
    assert res.json()["blocking_entry_ids"] == [block["id"]]

    res = client.post("/api/v1/bookings", json=booking_body(room_id, "14:30", "15:30"), headers=user)
    assert res.status_code == 409
    assert res.json()["blocking_entry_ids"] == [block["id"]]

    res = client.post(f"/api/v1/blocks/{block['id']}/unblock", headers=user)
    assert res.status_code == 403

    res = client.post(f"/api/v1/blocks/{block['id']}/unblock", headers=admin)
    assert res.status_code == 200
    assert res.json()["is_available"] is True
    assert res.json()["blocked_reason"] == "Maintenance"

    res = client.get("/api/v1/availability/rooms", params=params, headers=user)
    assert [r["id"] for r in res.json()] == [room_id]

    res = client.get("/api/v1/blocks", params={"reason": "maint"}, headers=user)
    assert res.json() == []
    res = client.post(f"/api/v1/blocks/{block['id']}/reblock", json={"reason": "Maintenance again"}, headers=admin)
    assert res.status_code == 200
    res = client.get("/api/v1/blocks", params={"reason": "maint"}, headers=user)
    assert [b["id"] for b in res.json()] == [block["id"]]

    res = client.put(f"/api/v1/blocks/{block['id']}", json={"end_time": "16:00"}, headers=admin)
    assert res.json()["end_time"] == "16:00:00"

    res = client.delete(f"/api/v1/blocks/{block['id']}", headers=admin)
    assert res.status_code == 204
    assert client.get("/api/v1/blocks", headers=user).json() == []


def test_completion_sweep_endpoint(room_id):
    booking_id = client.post(
        "/api/v1/bookings", json=booking_body(room_id), headers=auth_headers(REQUESTER_ID)
    ).json()["id"]
    client.post(f"/api/v1/bookings/{booking_id}/approve", headers=auth_headers(ROOM_ADMIN_ID))

    res = client.post("/api/v1/maintenance/complete-sweep", headers=auth_headers(REQUESTER_ID))
    assert res.status_code == 403

    after = f"{FUTURE}T23:00:00"
    res = client.post(
        "/api/v1/maintenance/complete-sweep",
        json={"as_of": after},
        headers=auth_headers(0, "service_account"),
    )
    assert res.status_code == 200
    assert res.json()["completed"] == 1

    res = client.get(f"/api/v1/bookings/{booking_id}", headers=auth_headers(REQUESTER_ID))
    assert res.json()["status"] == "completed"


def test_offset_aware_sweep_time_is_read_as_local_time(room_id):
    booking_id = client.post(
        "/api/v1/bookings", json=booking_body(room_id), headers=auth_headers(REQUESTER_ID)
    ).json()["id"]
    client.post(f"/api/v1/bookings/{booking_id}/approve", headers=auth_headers(ROOM_ADMIN_ID))

    next_day = (date.fromisoformat(FUTURE) + timedelta(days=1)).isoformat()
    res = client.post(
        "/api/v1/maintenance/complete-sweep",
        json={"as_of": f"{next_day}T12:00:00Z"},
        headers=auth_headers(0, "service_account"),
    )
    assert res.status_code == 200
    assert res.json()["completed"] == 1
    assert not res.json()["as_of"].endswith("Z")


def test_offset_aware_clock_times_are_rejected(room_id):
    user = auth_headers(REQUESTER_ID)
    params = {"booking_date": FUTURE, "start_time": "09:30:00Z", "end_time": "10:30:00Z"}

    res = client.get("/api/v1/availability/rooms", params=params, headers=user)
    assert res.status_code == 400
    assert res.json()["error"] == "invalid_range"

    res = client.get("/api/v1/availability/check", params={**params, "room_id": room_id}, headers=user)
    assert res.status_code == 400

    res = client.post(
        "/api/v1/bookings", json=booking_body(room_id, "09:00:00+02:00", "10:00:00+02:00"), headers=user
    )
    assert res.status_code == 400


def test_reports_calendar_and_block_maintenance(room_id):
    user = auth_headers(REQUESTER_ID)
    admin = auth_headers(ROOM_ADMIN_ID)
    auditor = auth_headers(SYSTEM_ADMIN_ID, "auditor")

    booking_id = client.post("/api/v1/bookings", json=booking_body(room_id), headers=user).json()["id"]
    client.post(f"/api/v1/bookings/{booking_id}/approve", headers=admin)
    client.post("/api/v1/bookings", json=booking_body(room_id, "11:00", "12:00"), headers=user)

    assert client.get("/api/v1/bookings/stats", headers=user).status_code == 403
    res = client.get("/api/v1/bookings/stats", headers=auditor)
    assert res.status_code == 200
    assert res.json()["by_status"]["confirmed"] == 1
    assert res.json()["by_status"]["pending"] == 1
    assert res.json()["most_booked_rooms"] == [{"room_id": room_id, "bookings": 1}]
    assert res.json()["most_active_users"] == [{"user_id": REQUESTER_ID, "bookings": 1}]

    year, month = int(FUTURE[:4]), int(FUTURE[5:7])
    res = client.get(
        "/api/v1/bookings/calendar",
        params={"year": year, "month": month, "room_id": room_id},
        headers=auditor,
    )
    assert [b["id"] for b in res.json()] == [booking_id]
    res = client.get("/api/v1/bookings/calendar", params={"year": year, "month": 13}, headers=auditor)
    assert res.status_code == 422
    assert client.get("/api/v1/bookings/today", headers=auditor).json() == []

    first = client.post(
        "/api/v1/blocks",
        json={"room_id": room_id, "block_date": FUTURE, "start_time": "14:00", "end_time": "15:00"},
        headers=admin,
    ).json()
    second = client.post(
        "/api/v1/blocks",
        json={"room_id": room_id, "block_date": FUTURE, "start_time": "14:30", "end_time": "16:00"},
        headers=admin,
    ).json()
    res = client.get("/api/v1/blocks/overlaps", headers=auditor)
    assert [(p["first"]["id"], p["second"]["id"]) for p in res.json()] == [(first["id"], second["id"])]

    res = client.get("/api/v1/blocks/calendar", params={"year": year, "month": month}, headers=user)
    assert [b["id"] for b in res.json()] == [first["id"], second["id"]]
    assert client.get("/api/v1/blocks/today", headers=user).json() == []

    purge = {"before": FUTURE}
    assert client.post("/api/v1/maintenance/purge-blocks", json=purge, headers=user).status_code == 403
    res = client.post("/api/v1/maintenance/purge-blocks", json=purge, headers=auth_headers(SYSTEM_ADMIN_ID, "admin"))
    assert res.json() == {"before": FUTURE, "deleted": 0}
    after = (date.fromisoformat(FUTURE) + timedelta(days=1)).isoformat()
    res = client.post("/api/v1/maintenance/purge-blocks", json={"before": after}, headers=auth_headers(SYSTEM_ADMIN_ID, "admin"))
    assert res.json()["deleted"] == 2
