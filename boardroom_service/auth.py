from typing import Any, Callable, Dict

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from .config import JWT_ALGORITHM, JWT_SECRET_KEY

# Roles issued by the users service
ADMIN = "admin"
FACILITY_MANAGER = "facility_manager"
REGULAR = "regular"
AUDITOR = "auditor"
SERVICE_ACCOUNT = "service_account"

security = HTTPBearer()


async def get_current_user_claims(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Dict[str, Any]:
    """
    Decode the caller's bearer token.

    Tokens are signed by the users service with the shared JWT secret and
    carry ``sub`` (username), ``role`` and ``user_id``.

    Returns
    -------
    Dict[str, Any]
        ``username``, ``role`` and ``user_id`` (as int).

    Raises
    ------
    HTTPException
        401 if the signature, expiry or any of the three claims is bad.
    """
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(credentials.credentials, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise unauthorized

    claims = {
        "username": payload.get("sub"),
        "role": payload.get("role"),
        "user_id": payload.get("user_id"),
    }
    if any(value is None for value in claims.values()):
        raise unauthorized
    claims["user_id"] = int(claims["user_id"])
    return claims


def require_roles(*allowed_roles: str) -> Callable:
    """
    Dependency factory: only callers holding one of ``allowed_roles`` pass.

    The dependency returns the caller's claims, or raises HTTP 403.
    """

    async def dependency(claims: Dict[str, Any] = Depends(get_current_user_claims)) -> Dict[str, Any]:
        if claims["role"] not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions",
            )
        return claims

    return dependency


def forbid_roles(*denied_roles: str) -> Callable:
    """Dependency factory: every authenticated caller passes except ``denied_roles``."""

    async def dependency(claims: Dict[str, Any] = Depends(get_current_user_claims)) -> Dict[str, Any]:
        if claims["role"] in denied_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{claims['role']}' cannot perform this action",
            )
        return claims

    return dependency
