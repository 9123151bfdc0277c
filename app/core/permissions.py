"""
Permission resolver.

Flattens user → roles → role-permissions → permission into a set of
``"resource:action"`` strings, recomputed on every call.  All checks fail
closed: a missing user or a database error means *no permission*.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.models.user import Role, RolePermission, User, UserRole

logger = logging.getLogger(__name__)

# Roles allowed to act on content they did not author
ELEVATED_ROLES = ("editor", "admin", "super_admin")


async def _load_user_graph(db: AsyncSession, user_id: str) -> User | None:
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .options(
            selectinload(User.user_roles)
            .selectinload(UserRole.role)
            .selectinload(Role.role_permissions)
            .selectinload(RolePermission.permission)
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_user_permissions(db: AsyncSession, user_id: str) -> set[str] | None:
    """Return the user's permission keys, or ``None`` when the user does not exist."""
    user = await _load_user_graph(db, user_id)
    if user is None:
        return None
    return {
        rp.permission.key
        for ur in user.user_roles
        for rp in ur.role.role_permissions
    }


async def has_permissions(
    db: AsyncSession,
    user_id: str | None,
    required: Iterable[str] | None,
) -> bool:
    """True when the user holds *every* permission in ``required``."""
    required = list(required or [])
    if not required:
        return True
    if not user_id:
        return False

    try:
        granted = await get_user_permissions(db, user_id)
    except SQLAlchemyError:
        if settings.is_development:
            logger.exception("Error checking permissions for user %s", user_id)
        return False

    if granted is None:
        return False
    return all(p in granted for p in required)


async def has_any_role(db: AsyncSession, user_id: str | None, role_names: Iterable[str]) -> bool:
    """True when the user holds at least one of ``role_names``."""
    wanted = set(role_names)
    if not user_id or not wanted:
        return False

    try:
        result = await db.execute(
            select(Role.name)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(UserRole.user_id == user_id)
        )
        names = set(result.scalars().all())
    except SQLAlchemyError:
        if settings.is_development:
            logger.exception("Error checking roles for user %s", user_id)
        return False
    return bool(names & wanted)
