"""
JWT token creation / verification.

Access and refresh tokens carry the principal as ``sub`` plus the
``email``, ``fullName`` and ``roles`` claims the dashboard reads.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from app.core.config import settings

_ALGORITHM = settings.ALGORITHM
_SECRET = settings.SECRET_KEY


def _encode(subject: str | Any, token_type: str, expire: datetime, claims: dict | None) -> str:
    payload: dict[str, Any] = dict(claims or {})
    payload.update({"exp": expire, "sub": str(subject), "type": token_type})
    return jwt.encode(payload, _SECRET, algorithm=_ALGORITHM)


def create_access_token(
    subject: str | Any,
    claims: dict | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return _encode(subject, "access", expire, claims)


def create_refresh_token(subject: str | Any, claims: dict | None = None) -> str:
    expire = datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return _encode(subject, "refresh", expire, claims)


def _decode(token: str, token_type: str) -> dict | None:
    try:
        payload = jwt.decode(token, _SECRET, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != token_type:
        return None
    return payload


def decode_access_token(token: str) -> dict | None:
    """Return payload dict if *access* token is valid, else ``None``."""
    return _decode(token, "access")


def decode_refresh_token(token: str) -> dict | None:
    """Return payload dict if *refresh* token is valid, else ``None``."""
    return _decode(token, "refresh")
