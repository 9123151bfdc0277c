"""
Settings endpoints — admin-editable JSON documents, one per category.

Reads need ``settings:read``; writes need ``settings:update``.  The
``homePage``, ``header`` and ``footer`` categories feed the public
landing-page endpoints.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_db, require_permissions
from app.core.exceptions import NotFoundError
from app.models.user import User
from app.schemas.settings import (SettingsBulkUpdate, SettingsRead,
                                  SettingsSingleUpdate, SettingValue)
from app.services import settings as settings_service

router = APIRouter(prefix="/settings", tags=["settings"])

_MISSING = object()


@router.get("", response_model=dict[str, Any])
async def get_all_settings(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permissions("settings:read")),
) -> dict[str, Any]:
    return await settings_service.get_all_settings(db)


@router.get("/{category}", response_model=dict[str, Any])
async def get_settings_by_category(
    category: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permissions("settings:read")),
) -> dict[str, Any]:
    """The category document, or ``{}`` when it has never been written."""
    return await settings_service.get_settings_by_category(db, category)


@router.get("/{category}/{key}", response_model=SettingValue)
async def get_setting(
    category: str,
    key: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permissions("settings:read")),
) -> SettingValue:
    value = await settings_service.get_setting(db, category, key, default=_MISSING)
    if value is _MISSING:
        raise NotFoundError(f"Setting '{category}.{key}' not found")
    return SettingValue(category=category, key=key, value=value)


@router.post("/bulk", response_model=SettingsRead)
async def update_multiple_settings(
    body: SettingsBulkUpdate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permissions("settings:update")),
):
    """Replace the whole document of ``body.category``."""
    return await settings_service.update_multiple_settings(db, body.category, body.settings)


@router.post("/single", response_model=SettingsRead)
async def update_setting(
    body: SettingsSingleUpdate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permissions("settings:update")),
):
    return await settings_service.update_setting(db, body.category, body.key, body.value)


@router.delete("/{category}/{key}", response_model=SettingsRead)
async def delete_setting(
    category: str,
    key: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permissions("settings:update")),
):
    return await settings_service.delete_setting(db, category, key)
