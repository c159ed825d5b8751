# Backend/app/deps/auth.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt  # type: ignore
from fastapi import Header, HTTPException

from app.core.logging import logger
from app.config import settings

__all__ = [
    "User",
    "create_access_token",
    "decode_access_token",
    "create_oauth_state",
    "verify_oauth_state",
    "get_current_user",
    "get_current_user_optional",
]

JWT_ALGORITHM = "HS256"
NO_TOKEN_MESSAGE = "Access denied. No token provided."
INVALID_TOKEN_MESSAGE = "Invalid token."
OAUTH_STATE_PURPOSE = "oauth_state"


@dataclass(frozen=True)
class User:
    """Identity carried by the bearer token; users are not persisted."""
    google_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None

    def to_api(self) -> Dict[str, Any]:
        return {
            "googleId": self.google_id,
            "email": self.email,
            "name": self.name,
            "picture": self.picture,
        }


def create_access_token(user: User, *, now: Optional[datetime] = None) -> str:
    issued = now or datetime.now(timezone.utc)
    payload = {
        **user.to_api(),
        "iat": issued,
        "exp": issued + timedelta(days=settings.JWT_EXPIRES_DAYS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> User:
    """
    Decode and verify a bearer token.

    Raises jwt.InvalidTokenError (incl. ExpiredSignatureError) when the token
    cannot be trusted.
    """
    payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[JWT_ALGORITHM])
    google_id = payload.get("googleId") if isinstance(payload, dict) else None
    if not google_id:
        raise jwt.InvalidTokenError("token has no googleId claim")
    return User(
        google_id=str(google_id),
        email=payload.get("email"),
        name=payload.get("name"),
        picture=payload.get("picture"),
    )


def create_oauth_state() -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "purpose": OAUTH_STATE_PURPOSE,
        "iat": now,
        "exp": now + timedelta(minutes=settings.OAUTH_STATE_TTL_MINUTES),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_oauth_state(state: Optional[str]) -> bool:
    if not state:
        return False
    try:
        payload = jwt.decode(state, settings.JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.InvalidTokenError as e:
        logger.debug("oauth_state_invalid", error=str(e))
        return False
    return isinstance(payload, dict) and payload.get("purpose") == OAUTH_STATE_PURPOSE


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not str(authorization).startswith("Bearer "):
        return None
    token_only = str(authorization).split(" ", 1)[1].strip()
    return token_only or None


async def get_current_user(authorization: Optional[str] = Header(None)) -> User:
    """
    Required auth dependency - raises 401 if not authenticated.
    """
    token = _bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail=NO_TOKEN_MESSAGE)

    try:
        return decode_access_token(token)
    except jwt.ExpiredSignatureError:
        logger.debug("user_auth_token_expired")
        raise HTTPException(status_code=401, detail=INVALID_TOKEN_MESSAGE)
    except jwt.InvalidTokenError as e:
        logger.debug("user_auth_token_invalid", error=str(e))
        raise HTTPException(status_code=401, detail=INVALID_TOKEN_MESSAGE)


async def get_current_user_optional(authorization: Optional[str] = Header(None)) -> Optional[User]:
    """
    Optional auth dependency - returns None if not authenticated.
    """
    token = _bearer_token(authorization)
    if not token:
        return None
    try:
        return decode_access_token(token)
    except jwt.InvalidTokenError:
        return None
