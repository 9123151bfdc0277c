"""Pydantic schemas for settings documents and the health probe."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, field_validator


def _check_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Must not be empty")
    return v


class SettingsBulkUpdate(BaseModel):
    category: str
    settings: dict[str, Any]

    @field_validator("category")
    @classmethod
    def _category(cls, v: str) -> str:
        return _check_name(v)


class SettingsSingleUpdate(BaseModel):
    category: str
    key: str
    value: Any = None

    @field_validator("category", "key")
    @classmethod
    def _names(cls, v: str) -> str:
        return _check_name(v)


class SettingsRead(BaseModel):
    category: str
    data: dict[str, Any]
    updated_at: datetime | None

    model_config = {"from_attributes": True}


class SettingValue(BaseModel):
    category: str
    key: str
    value: Any


class HealthResponse(BaseModel):
    db: bool
    redis: bool
