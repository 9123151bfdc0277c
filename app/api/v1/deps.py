"""
FastAPI dependencies — auth guards and database session.

Guard order on a protected route: bearer token → user lookup → account
status → live session → permissions.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Optional

from fastapi import Cookie, Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import ForbiddenError, UnauthorizedError
from app.core.permissions import has_permissions
from app.core.security import decode_access_token
from app.core.sessions import validate_session
from app.db.session import async_session_factory
from app.models.user import User, UserRole

# We use auto_error=False so we can manually check for the cookie if header is missing
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    access_token: Optional[str] = Cookie(default=None),  # Read from HttpOnly Cookie
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode JWT from Header OR Cookie, look up user."""

    # Priority: Header > Cookie
    final_token = token
    if not final_token and access_token:
        if access_token.startswith("Bearer "):
            final_token = access_token.split(" ", 1)[1]
        else:
            final_token = access_token

    if not final_token:
        raise UnauthorizedError()

    payload = decode_access_token(final_token)
    if payload is None:
        raise UnauthorizedError()

    user_id: str | None = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("User ID not found in token")

    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .options(selectinload(User.user_roles).selectinload(UserRole.role))
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise UnauthorizedError()
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Reject inactive accounts and users without a live session."""
    if not current_user.is_active:
        raise ForbiddenError("User account is inactive")
    await validate_session(db, current_user.id)
    return current_user


def require_permissions(*permissions: str) -> Callable[..., Awaitable[User]]:
    """Build a dependency that admits users holding *all* ``permissions``."""

    async def _guard(
        current_user: User = Depends(get_current_active_user),
        db: AsyncSession = Depends(get_db),
    ) -> User:
        if not await has_permissions(db, current_user.id, permissions):
            raise ForbiddenError("Insufficient permissions")
        return current_user

    return _guard
