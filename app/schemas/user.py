"""Pydantic schemas for users, profiles and password changes."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, field_validator


class UserSummary(BaseModel):
    id: str
    email: str
    full_name: str | None
    roles: list[str] = []


class UserRead(BaseModel):
    id: str
    email: str
    full_name: str | None
    avatar: str | None = None
    status: str
    must_change_password: bool
    password_changed_at: datetime | None
    last_login_at: datetime | None
    login_count: int
    roles: list[str] = []
    permissions: list[str] = []
    created_at: datetime | None


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("New password must not be empty")
        return v


class ResetPasswordResponse(BaseModel):
    message: str
    temporary_password: str


class MessageResponse(BaseModel):
    message: str
