"""
User model — authentication & role-based access control.

Authorization is a static graph: User ⇄ Role through ``user_roles`` and
Role ⇄ Permission through ``role_permissions``.  A permission is the pair
``(resource, action)``, rendered as ``"resource:action"``.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (Boolean, Column, DateTime, ForeignKey, Index, Integer,
                        String, UniqueConstraint)
from sqlalchemy.orm import relationship

from app.db.base import Base, new_uuid, utcnow


class User(Base):
    __tablename__ = "users"

    id: str = Column(String(36), primary_key=True, default=new_uuid)  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    password_hash: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    full_name: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    avatar: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    status: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default="ACTIVE",
        server_default="ACTIVE",
    )  # ACTIVE | INACTIVE | SUSPENDED
    must_change_password: bool = Column(Boolean, default=False, server_default="false")  # type: ignore[assignment]
    password_changed_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    last_login_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    login_count: int = Column(Integer, default=0, server_default="0", nullable=False)  # type: ignore[assignment]
    created_at: datetime = Column(DateTime(timezone=True), default=utcnow)  # type: ignore[assignment]
    updated_at: datetime = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)  # type: ignore[assignment]

    user_roles = relationship("UserRole", back_populates="user", cascade="all, delete-orphan")

    @property
    def is_active(self) -> bool:
        return self.status == "ACTIVE"

    @property
    def role_names(self) -> list[str]:
        """Role names; only valid when ``user_roles.role`` has been loaded."""
        return [ur.role.name for ur in self.user_roles]


class Role(Base):
    __tablename__ = "roles"

    id: str = Column(String(36), primary_key=True, default=new_uuid)  # type: ignore[assignment]
    name: str = Column(String(50), unique=True, nullable=False)  # type: ignore[assignment]
    description: str | None = Column(String(255), nullable=True)  # type: ignore[assignment]

    role_permissions = relationship(
        "RolePermission", back_populates="role", cascade="all, delete-orphan"
    )


class Permission(Base):
    __tablename__ = "permissions"
    __table_args__ = (UniqueConstraint("resource", "action", name="uq_permission_resource_action"),)

    id: str = Column(String(36), primary_key=True, default=new_uuid)  # type: ignore[assignment]
    resource: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    action: str = Column(String(50), nullable=False)  # type: ignore[assignment]

    @property
    def key(self) -> str:
        return f"{self.resource}:{self.action}"


class UserRole(Base):
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role_id", name="uq_user_role"),)

    id: str = Column(String(36), primary_key=True, default=new_uuid)  # type: ignore[assignment]
    user_id: str = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)  # type: ignore[assignment]
    role_id: str = Column(String(36), ForeignKey("roles.id"), nullable=False)  # type: ignore[assignment]

    user = relationship("User", back_populates="user_roles")
    role = relationship("Role")


class RolePermission(Base):
    __tablename__ = "role_permissions"
    __table_args__ = (UniqueConstraint("role_id", "permission_id", name="uq_role_permission"),)

    id: str = Column(String(36), primary_key=True, default=new_uuid)  # type: ignore[assignment]
    role_id: str = Column(String(36), ForeignKey("roles.id"), nullable=False, index=True)  # type: ignore[assignment]
    permission_id: str = Column(String(36), ForeignKey("permissions.id"), nullable=False)  # type: ignore[assignment]

    role = relationship("Role", back_populates="role_permissions")
    permission = relationship("Permission")


class UserSession(Base):
    """One row per login.  Ended by flipping ``is_active``, never deleted."""

    __tablename__ = "sessions"
    __table_args__ = (Index("ix_sessions_user_active", "user_id", "is_active"),)

    id: str = Column(String(36), primary_key=True, default=new_uuid)  # type: ignore[assignment]
    user_id: str = Column(String(36), ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true", nullable=False)  # type: ignore[assignment]
    expires_at: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]
    last_access_at: datetime = Column(DateTime(timezone=True), default=utcnow, nullable=False)  # type: ignore[assignment]
    ip_address: str | None = Column(String(45), nullable=True)  # type: ignore[assignment]
    user_agent: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(DateTime(timezone=True), default=utcnow)  # type: ignore[assignment]
