"""Pydantic schemas for JWT tokens."""

from __future__ import annotations

from pydantic import BaseModel

from app.schemas.user import UserSummary


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginResponse(Token):
    user: UserSummary


class RefreshRequest(BaseModel):
    refresh_token: str
