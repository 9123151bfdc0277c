"""
Login sessions — creation, sliding inactivity timeout and logout.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import UnauthorizedError
from app.db.base import ensure_utc
from app.models.user import UserSession

logger = logging.getLogger(__name__)


async def deactivate_sessions(db: AsyncSession, user_id: str) -> int:
    """Flip every active session of the user to inactive. Caller commits."""
    result = await db.execute(
        update(UserSession)
        .where(UserSession.user_id == user_id, UserSession.is_active.is_(True))
        .values(is_active=False)
    )
    return result.rowcount or 0


async def start_session(
    db: AsyncSession,
    user_id: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> UserSession:
    """End prior sessions and open a fresh one. Caller commits."""
    await deactivate_sessions(db, user_id)
    now = datetime.now(timezone.utc)
    session = UserSession(
        user_id=user_id,
        is_active=True,
        expires_at=now + timedelta(hours=settings.SESSION_TTL_HOURS),
        last_access_at=now,
        ip_address=ip_address,
        user_agent=user_agent[:500] if user_agent else None,
    )
    db.add(session)
    return session


async def validate_session(
    db: AsyncSession,
    user_id: str,
    now: datetime | None = None,
) -> UserSession:
    """Confirm a live session for ``user_id`` and renew its ``last_access_at``.

    The inactivity window is measured against the ``last_access_at`` read
    here, before this request's touch is written.
    """
    now = now or datetime.now(timezone.utc)
    result = await db.execute(
        select(UserSession)
        .where(
            UserSession.user_id == user_id,
            UserSession.is_active.is_(True),
            UserSession.expires_at > now,
        )
        .order_by(UserSession.created_at.desc())
        .limit(1)
    )
    session = result.scalar_one_or_none()
    if session is None:
        raise UnauthorizedError("Session expired. Please login again.")

    previous_access = ensure_utc(session.last_access_at) or now
    session.last_access_at = now

    if now - previous_access > timedelta(minutes=settings.SESSION_TIMEOUT_MINUTES):
        session.is_active = False
        await db.commit()
        logger.info("Session %s for user %s timed out", session.id, user_id)
        raise UnauthorizedError("Session timeout. Please login again.")

    await db.commit()
    return session
