"""
Public endpoints — news feed, landing page, header/footer and health.

No authentication; composition failures degrade to fallbacks instead of
erroring.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_db
from app.core.config import settings
from app.schemas.homepage import HeaderFooterResponse, HomepageResponse
from app.schemas.post import PublicNewsResponse
from app.schemas.settings import HealthResponse
from app.services import homepage, posts

router = APIRouter(tags=["public"])
logger = logging.getLogger(__name__)


@router.get("/public/posts", response_model=PublicNewsResponse)
async def public_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category_id: str | None = None,
    db: AsyncSession = Depends(get_db),
) -> PublicNewsResponse:
    """Published posts whose publication time has passed, newest first."""
    return await posts.list_public_news(db, page=page, limit=limit, category_id=category_id)


@router.get("/homepage", response_model=HomepageResponse)
async def homepage_data(db: AsyncSession = Depends(get_db)) -> HomepageResponse:
    return await homepage.get_homepage_data(db)


@router.get("/header-footer", response_model=HeaderFooterResponse)
async def header_footer(db: AsyncSession = Depends(get_db)) -> HeaderFooterResponse:
    return await homepage.get_header_footer_config(db)


@router.get("/health", response_model=HealthResponse)
async def health(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Public health check — DB and Redis connectivity."""
    result = HealthResponse(db=False, redis=False)

    try:
        await db.execute(select(1))
        result.db = True
    except Exception as e:
        logger.error("Health check DB failure: %s", e)

    try:
        import redis.asyncio as aioredis

        r = aioredis.from_url(settings.REDIS_URL)
        await r.ping()
        await r.aclose()
        result.redis = True
    except Exception as e:
        logger.error("Health check Redis failure: %s", e)

    return result
