import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import httpx
from jose import jwt
from sqlalchemy.orm import Session

from common.cache import get_cached_json, set_cached_json

from . import models
from .auth import ADMIN, SERVICE_ACCOUNT
from .circuit_breaker import users_circuit_breaker
from .config import JWT_ALGORITHM, JWT_SECRET_KEY, USER_CACHE_TTL_SECONDS, USERS_SERVICE_URL
from .errors import IdentityUnavailableError

logger = logging.getLogger(__name__)

SERVICE_ACCOUNT_USERNAME = "boardroom_service"
SERVICE_ACCOUNT_USER_ID = 0
SERVICE_ACCOUNT_ROLE = SERVICE_ACCOUNT

SYSTEM_ADMIN_ROLE = ADMIN


class IdentityDirectory(ABC):
    """
    What the scheduling core needs to know about users.

    User records live outside this service; the core only asks these
    questions and never stores user data beyond ids.
    """

    @abstractmethod
    def user_exists(self, user_id: int) -> bool:
        ...

    @abstractmethod
    def is_enabled(self, user_id: int) -> bool:
        ...

    @abstractmethod
    def display_name(self, user_id: int) -> str:
        ...

    @abstractmethod
    def is_admin_for(self, user_id: int, room_id: int) -> bool:
        ...


def has_active_assignment(db: Session, user_id: int, room_id: int) -> bool:
    q = (
        db.query(models.AdminAssignment)
        .filter(models.AdminAssignment.user_id == user_id)
        .filter(models.AdminAssignment.room_id == room_id)
        .filter(models.AdminAssignment.is_active.is_(True))
    )
    return db.query(q.exists()).scalar()


def make_service_account_token() -> str:
    payload = {
        "sub": SERVICE_ACCOUNT_USERNAME,
        "role": SERVICE_ACCOUNT_ROLE,
        "user_id": SERVICE_ACCOUNT_USER_ID,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
    }
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


class UsersServiceDirectory(IdentityDirectory):
    """
    Identity lookups against the Users service over HTTP.

    Admin rights for a room come from the local ``room_admins`` table, or
    from the global ``admin`` role held in the Users service.

    Parameters
    ----------
    db : Session
        Session used for admin-assignment lookups.
    base_url : str
        Users service root URL.
    """

    def __init__(self, db: Session, base_url: str = USERS_SERVICE_URL):
        self.db = db
        self.base_url = base_url.rstrip("/")
        self._users: Dict[int, Optional[Dict[str, Any]]] = {}

    def _fetch_user(self, user_id: int) -> Optional[Dict[str, Any]]:
        if user_id in self._users:
            return self._users[user_id]

        cache_key = f"user:{user_id}"
        cached = get_cached_json(cache_key)
        if cached is not None:
            self._users[user_id] = cached
            return cached

        if not users_circuit_breaker.allow_request():
            logger.warning("Users service circuit open, cannot resolve user %s", user_id)
            raise IdentityUnavailableError(
                "Users service temporarily unavailable (circuit open)"
            )

        headers = {"Authorization": f"Bearer {make_service_account_token()}"}
        try:
            resp = httpx.get(
                f"{self.base_url}/api/v1/users/by-id/{user_id}",
                headers=headers,
                timeout=5.0,
            )
        except httpx.RequestError as exc:
            users_circuit_breaker.record_failure()
            logger.warning("Failed to contact users service: %s", exc)
            raise IdentityUnavailableError("Failed to contact users service")

        if resp.status_code == 404:
            users_circuit_breaker.record_success()
            self._users[user_id] = None
            return None

        if resp.status_code != 200:
            users_circuit_breaker.record_failure()
            raise IdentityUnavailableError("Users service returned an error")

        users_circuit_breaker.record_success()
        user = resp.json()
        set_cached_json(cache_key, user, ttl_seconds=USER_CACHE_TTL_SECONDS)
        self._users[user_id] = user
        return user

    def user_exists(self, user_id: int) -> bool:
        return self._fetch_user(user_id) is not None

    def is_enabled(self, user_id: int) -> bool:
        user = self._fetch_user(user_id)
        return bool(user and user.get("is_active", True))

    def display_name(self, user_id: int) -> str:
        user = self._fetch_user(user_id)
        if not user:
            return "Unknown User"
        return user.get("name") or user.get("username") or f"user {user_id}"

    def is_admin_for(self, user_id: int, room_id: int) -> bool:
        if not self.is_enabled(user_id):
            return False
        user = self._fetch_user(user_id)
        if user.get("role") == SYSTEM_ADMIN_ROLE:
            return True
        return has_active_assignment(self.db, user_id, room_id)
