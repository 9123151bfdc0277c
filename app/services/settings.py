"""
Settings documents — one JSON object per category, read and written whole
or one key at a time.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models.settings import Settings

logger = logging.getLogger(__name__)


async def _get_row(db: AsyncSession, category: str) -> Settings | None:
    result = await db.execute(select(Settings).where(Settings.category == category))
    return result.scalar_one_or_none()


async def _upsert(db: AsyncSession, category: str, data: dict[str, Any]) -> Settings:
    row = await _get_row(db, category)
    if row is None:
        row = Settings(category=category, data=data)
        db.add(row)
    else:
        # Assign a fresh dict so the JSON column registers the change
        row.data = data
    await db.commit()
    await db.refresh(row)
    return row


async def get_all_settings(db: AsyncSession) -> dict[str, Any]:
    result = await db.execute(select(Settings).order_by(Settings.category))
    return {row.category: row.data for row in result.scalars().all()}


async def get_settings_by_category(db: AsyncSession, category: str) -> dict[str, Any]:
    row = await _get_row(db, category)
    return dict(row.data or {}) if row else {}


async def get_setting(db: AsyncSession, category: str, key: str, default: Any = None) -> Any:
    row = await _get_row(db, category)
    if row is None:
        return default
    return (row.data or {}).get(key, default)


async def update_setting(db: AsyncSession, category: str, key: str, value: Any) -> Settings:
    current = await get_settings_by_category(db, category)
    current[key] = value
    row = await _upsert(db, category, current)
    logger.info("Setting %s.%s updated", category, key)
    return row


async def update_multiple_settings(
    db: AsyncSession, category: str, settings: dict[str, Any]
) -> Settings:
    row = await _upsert(db, category, dict(settings))
    logger.info("Settings category %s replaced (%d keys)", category, len(settings))
    return row


async def delete_setting(db: AsyncSession, category: str, key: str) -> Settings:
    row = await _get_row(db, category)
    if row is None:
        raise NotFoundError(f"Settings category '{category}' not found")

    data = dict(row.data or {})
    data.pop(key, None)
    row.data = data
    await db.commit()
    await db.refresh(row)
    logger.info("Setting %s.%s deleted", category, key)
    return row
