import os
import sys
import tempfile
from datetime import date, datetime, time, timedelta, timezone

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# Must be set before any boardroom_service module is imported
_DB_DIR = tempfile.mkdtemp(prefix="boardroom-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_DB_DIR, "boardroom.db")
os.environ["TESTING"] = "1"
os.environ.pop("REDIS_URL", None)

import pytest
from jose import jwt

from boardroom_service.database import Base, SessionLocal, engine
from boardroom_service.identity import IdentityDirectory
from boardroom_service.rooms import create_room

SECRET_KEY = "super-secret-smart-meeting-room-key"
ALGORITHM = "HS256"

# A fixed "now" well before every date used in the tests
NOW = datetime(2024, 5, 31, 12, 0)
DAY = date(2024, 6, 1)

REQUESTER_ID = 1
OTHER_USER_ID = 2
ROOM_ADMIN_ID = 10
SYSTEM_ADMIN_ID = 99
DISABLED_USER_ID = 50


class FakeDirectory(IdentityDirectory):
    """In-memory users; admin rights are granted per room or globally."""

    def __init__(self):
        self.users = {}
        self.room_admins = set()
        self.system_admins = set()

    def add_user(self, user_id: int, name: str = None, enabled: bool = True, system_admin: bool = False):
        self.users[user_id] = {"name": name or f"user{user_id}", "enabled": enabled}
        if system_admin:
            self.system_admins.add(user_id)

    def make_admin(self, user_id: int, room_id: int):
        self.room_admins.add((user_id, room_id))

    def user_exists(self, user_id: int) -> bool:
        return user_id in self.users

    def is_enabled(self, user_id: int) -> bool:
        return self.users.get(user_id, {}).get("enabled", False)

    def display_name(self, user_id: int) -> str:
        return self.users.get(user_id, {}).get("name", "Unknown User")

    def is_admin_for(self, user_id: int, room_id: int) -> bool:
        if not self.is_enabled(user_id):
            return False
        return user_id in self.system_admins or (user_id, room_id) in self.room_admins


def make_token(user_id: int, username: str, role: str) -> str:
    payload = {
        "sub": username,
        "role": role,
        "user_id": user_id,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=30),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def auth_headers(user_id: int, role: str = "regular") -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, f'user{user_id}', role)}"}


def t(hhmm: str) -> time:
    hours, minutes = hhmm.split(":")
    return time(int(hours), int(minutes))


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(reset_db):
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def directory():
    d = FakeDirectory()
    d.add_user(REQUESTER_ID, "Requester")
    d.add_user(OTHER_USER_ID, "Other")
    d.add_user(ROOM_ADMIN_ID, "Room Admin")
    d.add_user(SYSTEM_ADMIN_ID, "System Admin", system_admin=True)
    d.add_user(DISABLED_USER_ID, "Disabled", enabled=False)
    return d


@pytest.fixture
def room(db, directory):
    r = create_room(db, name="Board Room A", location="HQ, floor 3", capacity=10, now=NOW)
    directory.make_admin(ROOM_ADMIN_ID, r.id)
    return r
