"""
Startup seeding — authorization graph and the first super admin.

Idempotent: existing permissions, roles and links are left alone, so it is
safe to run on every boot.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.passwords import hash_password
from app.db.base import utcnow
from app.models.user import Permission, Role, RolePermission, User, UserRole

logger = logging.getLogger(__name__)

PERMISSIONS: dict[str, tuple[str, ...]] = {
    "posts": (
        "create",
        "read",
        "update",
        "delete",
        "submit-review",
        "approve",
        "reject",
        "publish",
        "archive",
        "moderate",
    ),
    "users": ("create", "read", "update", "delete"),
    "categories": ("create", "read", "update", "delete"),
    "assets": ("create", "read", "update", "delete"),
    "settings": ("read", "update"),
}

_CONTRIBUTOR = (
    "posts:create",
    "posts:read",
    "posts:update",
    "posts:submit-review",
    "categories:read",
    "assets:create",
    "assets:read",
    "assets:update",
)

ROLES: dict[str, str] = {
    "super_admin": "Full system access",
    "admin": "Admin access",
    "moderator": "Content moderator",
    "editor": "Content editor",
    "author": "Content author",
    "viewer": "Read-only access",
}


def all_permission_keys() -> list[str]:
    return [f"{resource}:{action}" for resource, actions in PERMISSIONS.items() for action in actions]


def role_permission_keys(role: str) -> list[str]:
    """Permission keys granted to *role* by the default policy."""
    keys = all_permission_keys()
    if role == "super_admin":
        return keys
    if role == "admin":
        return [k for k in keys if k != "users:delete"]
    if role == "moderator":
        return [
            *(f"posts:{a}" for a in PERMISSIONS["posts"] if a != "delete"),
            "categories:read",
            "assets:create",
            "assets:read",
            "assets:update",
        ]
    if role in ("editor", "author"):
        return list(_CONTRIBUTOR)
    if role == "viewer":
        return [k for k in keys if k.endswith(":read")]
    return []


async def seed_authorization(db: AsyncSession) -> dict[str, Role]:
    """Create missing permissions, roles and role-permission links."""
    existing_perms = {
        p.key: p for p in (await db.execute(select(Permission))).scalars().all()
    }
    for key in all_permission_keys():
        if key not in existing_perms:
            resource, action = key.split(":", 1)
            perm = Permission(resource=resource, action=action)
            db.add(perm)
            existing_perms[key] = perm

    roles = {r.name: r for r in (await db.execute(select(Role))).scalars().all()}
    for name, description in ROLES.items():
        if name not in roles:
            role = Role(name=name, description=description)
            db.add(role)
            roles[name] = role
    await db.flush()

    linked = {
        (rp.role_id, rp.permission_id)
        for rp in (await db.execute(select(RolePermission))).scalars().all()
    }
    for name, role in roles.items():
        for key in role_permission_keys(name):
            perm = existing_perms[key]
            if (role.id, perm.id) not in linked:
                db.add(RolePermission(role_id=role.id, permission_id=perm.id))
                linked.add((role.id, perm.id))

    await db.commit()
    return roles


async def seed_first_admin(db: AsyncSession, roles: dict[str, Role]) -> None:
    result = await db.execute(select(User).where(User.email == settings.FIRST_ADMIN_EMAIL))
    if result.scalar_one_or_none() is not None:
        return

    admin = User(
        email=settings.FIRST_ADMIN_EMAIL,
        password_hash=hash_password(settings.FIRST_ADMIN_PASSWORD),
        full_name="Super Admin",
        password_changed_at=utcnow(),
    )
    db.add(admin)
    await db.flush()
    db.add(UserRole(user_id=admin.id, role_id=roles["super_admin"].id))
    await db.commit()
    logger.info(
        "Default super admin created: %s (password: <redacted>)",
        settings.FIRST_ADMIN_EMAIL,
    )


async def init_db(db: AsyncSession) -> None:
    roles = await seed_authorization(db)
    await seed_first_admin(db, roles)
