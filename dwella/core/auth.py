"""Session identity: bearer JWTs issued by the identity provider resolve to a CurrentUser."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from fastapi import Header
from jose import JWTError, jwt

from dwella.config import settings
from dwella.core.exceptions import ForbiddenError, UnauthorizedError


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: str
    name: str | None = None
    email: str | None = None


def create_user_token(user_id: str, role: str, email: str | None = None, name: str | None = None) -> str:
    """Create a JWT for a signed-in user (type=user)."""
    expire = datetime.now(timezone.utc) + timedelta(hours=settings.jwt_expire_hours)
    payload = {
        "sub": user_id,
        "role": role,
        "email": email,
        "name": name,
        "type": "user",
        "jti": str(uuid.uuid4()),
        "exp": expire,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_user_token(token: str) -> dict:
    """Decode and validate a user JWT. Returns the payload."""
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise UnauthorizedError(f"Invalid token: {exc}") from exc
    if payload.get("type") != "user":
        raise UnauthorizedError("Not a user token")
    if not payload.get("sub"):
        raise UnauthorizedError("Token missing subject")
    return payload


def get_current_user(authorization: str | None = Header(default=None)) -> CurrentUser:
    """FastAPI dependency: resolve Authorization: Bearer <token> to a CurrentUser."""
    if not authorization:
        raise UnauthorizedError("Missing Authorization header")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise UnauthorizedError("Authorization header must be: Bearer <token>")
    payload = decode_user_token(parts[1])
    return CurrentUser(
        id=payload["sub"],
        role=payload.get("role") or "HOMEOWNER",
        name=payload.get("name"),
        email=payload.get("email"),
    )


def get_current_pro(authorization: str | None = Header(default=None)) -> CurrentUser:
    """Like get_current_user, but only contractors (role PRO) are let through."""
    user = get_current_user(authorization)
    if user.role != "PRO":
        raise ForbiddenError("Only contractors can perform this action")
    return user
