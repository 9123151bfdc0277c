"""
Landing-page composer.

Turns the ``homePage`` settings document into the public homepage payload:
file ids become public object-storage URLs, event/news id lists become
entity summaries, and active digital-era quotes are merged in.  The
header/footer variant serves the ``header`` and ``footer`` documents as-is
and degrades to built-in defaults when either is missing.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.models.media import DigitalEra, Event, FilesUpload
from app.models.post import Post
from app.models.settings import Settings
from app.schemas.homepage import (BoardMember, DigitalEraQuote, DigitalProducts,
                                  HeaderFooterResponse, HeroBanner,
                                  HomePageDocument, HomepageEvent,
                                  HomepagePost, HomepageResponse, Partner)

logger = logging.getLogger(__name__)

HOMEPAGE_CATEGORY = "homePage"
HEADER_CATEGORY = "header"
FOOTER_CATEGORY = "footer"

_UUID_LIKE_RE = re.compile(r"[0-9a-fA-F-]{36}")

FALLBACK_HEADER = {
    "logo": "",
    "logoFileId": "",
    "menu": [
        {"label": "Home", "url": "/"},
        {"label": "About", "url": "/about"},
        {"label": "Contact", "url": "/contact"},
    ],
    "languages": [
        {"code": "vi-VN", "label": "Tiếng Việt", "flag": "🇻🇳", "flagFileId": ""},
        {"code": "en-US", "label": "English", "flag": "🇺🇸", "flagFileId": ""},
    ],
}

FALLBACK_FOOTER = {
    "logo": "",
    "logoFileId": "",
    "address": "Company address",
    "phone": "+84 123 456 789",
    "email": "contact@company.com",
    "social": [
        {"name": "Facebook", "icon": "📘", "url": "#"},
        {"name": "YouTube", "icon": "📺", "url": "#"},
    ],
    "legal": "© Company Name. All rights reserved.",
}


# ── URL helpers ─────────────────────────────────────────────────────
def public_base_url() -> str:
    if settings.MINIO_PUBLIC_URL and settings.MINIO_PUBLIC_URL.strip():
        return settings.MINIO_PUBLIC_URL.strip().rstrip("/")
    host = settings.MINIO_ENDPOINT or "http://localhost"
    port = settings.MINIO_PORT or "9000"
    if not host.startswith(("http://", "https://")):
        host = f"http://{host}"
    return f"{host.rstrip('/')}:{port}"


def to_public_url(file_path: str | None) -> str | None:
    """``/uploads/<folder>/<name>`` → absolute public URL."""
    if not file_path:
        return None
    if not file_path.startswith("/"):
        file_path = f"/{file_path}"
    return f"{public_base_url()}{file_path}"


def is_uuid_like(value: str | None) -> bool:
    return bool(value) and _UUID_LIKE_RE.search(value) is not None


async def resolve_file_urls(db: AsyncSession, ids: list[str | None]) -> dict[str, str | None]:
    """Map each UUID-like file id to its public URL in one query."""
    wanted = {i for i in ids if is_uuid_like(i)}
    if not wanted:
        return {}
    result = await db.execute(
        select(FilesUpload.id, FilesUpload.file_path).where(FilesUpload.id.in_(wanted))
    )
    return {file_id: to_public_url(path) for file_id, path in result.all()}


# ── Homepage ────────────────────────────────────────────────────────
async def _load_by_ids(db: AsyncSession, model, ids: list[str]) -> list:
    """Fetch rows for ``ids`` in the configured order; no query for an empty list."""
    if not ids:
        return []
    result = await db.execute(select(model).where(model.id.in_(ids)))
    by_id = {row.id: row for row in result.scalars().all()}
    return [by_id[i] for i in dict.fromkeys(ids) if i in by_id]


def empty_homepage() -> HomepageResponse:
    return HomepageResponse(updated_at=datetime.now(timezone.utc))


async def _compose_homepage(db: AsyncSession) -> HomepageResponse:
    result = await db.execute(select(Settings).where(Settings.category == HOMEPAGE_CATEGORY))
    row = result.scalar_one_or_none()
    doc = HomePageDocument.load(row.data if row else None)

    urls = await resolve_file_urls(
        db,
        [b.media for b in doc.hero_banners]
        + [m.image for m in doc.board_members]
        + [p.logo for p in doc.partners]
        + [doc.digital_products.image],
    )
    posts = await _load_by_ids(db, Post, doc.news)
    events = await _load_by_ids(db, Event, doc.events)

    quotes = await db.execute(
        select(DigitalEra).where(DigitalEra.is_active.is_(True)).order_by(DigitalEra.order.asc())
    )

    return HomepageResponse(
        hero_banners=[
            HeroBanner(
                id=b.id if b.id is not None else str(idx + 1),
                type=b.type or "image",
                title=b.title or "",
                subtitle=b.subtitle or "",
                text_style=b.text_style or {},
                media_url=urls.get(b.media) if b.media else None,
                background_color=b.background_color,
                gradient_overlay=b.gradient_overlay,
                link=b.link,
                is_active=b.is_active if b.is_active is not None else True,
                order=b.order if b.order is not None else idx + 1,
            )
            for idx, b in enumerate(doc.hero_banners)
        ],
        stats_numbers=doc.stats_numbers,
        globe=doc.globe,
        digital_era_quotes=[
            DigitalEraQuote(id=q.id, text=q.text, author=q.author, order=q.order, is_active=q.is_active)
            for q in quotes.scalars().all()
        ],
        board_members=[
            BoardMember(
                name=m.name or "",
                title=m.title or "",
                image_url=urls.get(m.image) if m.image else None,
            )
            for m in doc.board_members
        ],
        partners=[
            Partner(name=p.name or "", logo_url=urls.get(p.logo) if p.logo else None)
            for p in doc.partners
        ],
        events=[
            HomepageEvent(
                id=e.id,
                title=e.title,
                start_date=e.start_date,
                end_date=e.end_date,
                location=e.location,
                status=e.status,
                image_url=to_public_url(e.image),
            )
            for e in events
        ],
        posts=[
            HomepagePost(
                id=p.id,
                title=p.title,
                slug=p.slug,
                excerpt=p.excerpt,
                featured_image_url=to_public_url(p.featured_image),
                published_at=p.published_at,
            )
            for p in posts
        ],
        digital_products=DigitalProducts(
            title=doc.digital_products.title or "",
            image_url=urls.get(doc.digital_products.image) if doc.digital_products.image else None,
        ),
        updated_at=(row.updated_at if row and row.updated_at else datetime.now(timezone.utc)),
    )


async def get_homepage_data(db: AsyncSession) -> HomepageResponse:
    """Compose the public homepage; storage failures yield an empty page."""
    try:
        return await _compose_homepage(db)
    except SQLAlchemyError:
        logger.exception("Homepage composition failed; serving empty homepage")
        return empty_homepage()


# ── Header / footer ─────────────────────────────────────────────────
async def get_header_footer_config(db: AsyncSession) -> HeaderFooterResponse:
    try:
        result = await db.execute(
            select(Settings).where(Settings.category.in_((HEADER_CATEGORY, FOOTER_CATEGORY)))
        )
        rows = {row.category: row for row in result.scalars().all()}

        if HEADER_CATEGORY not in rows:
            raise NotFoundError(
                "Header settings not found. Please configure header settings in admin dashboard."
            )
        if FOOTER_CATEGORY not in rows:
            raise NotFoundError(
                "Footer settings not found. Please configure footer settings in admin dashboard."
            )

        return HeaderFooterResponse(
            header=rows[HEADER_CATEGORY].data or {},
            footer=rows[FOOTER_CATEGORY].data or {},
            success=True,
            message="Header and footer configuration retrieved successfully",
        )
    except (NotFoundError, SQLAlchemyError) as exc:
        logger.warning("Serving fallback header/footer: %s", exc)
        return HeaderFooterResponse(
            header=FALLBACK_HEADER,
            footer=FALLBACK_FOOTER,
            success=False,
            message="Using fallback configuration. Please configure header/footer in admin dashboard.",
            error=exc.detail if isinstance(exc, NotFoundError) else "Database error",
        )
