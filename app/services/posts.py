"""
Post CRUD, per-day view tracking and post analytics.

Functions take an ``AsyncSession`` and raise ``CMSError`` subclasses; the
endpoints stay thin.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import BadRequestError, NotFoundError
from app.models.post import Category, Post, PostCategory, PostStatus, PostTag, Tag
from app.models.tracking import AnalyticsView, AssetUsage
from app.schemas.post import (AnalyticsPoint, AuthorRef, CategoryRef, Pagination,
                              PostCreate, PostDetail, PostListResponse, PostRead,
                              PostStats, PostUpdate, PublicNewsItem,
                              PublicNewsResponse, TagRef)

logger = logging.getLogger(__name__)

POST_ENTITY = "post"

# Columns that must never be written as NULL through a partial update
_NON_NULLABLE = {
    "title",
    "slug",
    "content",
    "status",
    "locale",
    "allow_comments",
    "is_featured",
    "require_login",
}


def _with_relations():
    return (
        selectinload(Post.author),
        selectinload(Post.post_categories).selectinload(PostCategory.category),
        selectinload(Post.post_tags).selectinload(PostTag.tag),
    )


async def get_post_or_404(db: AsyncSession, post_id: str, *, with_relations: bool = False) -> Post:
    query = select(Post).where(Post.id == post_id)
    if with_relations:
        query = query.options(*_with_relations()).execution_options(populate_existing=True)
    result = await db.execute(query)
    post = result.scalar_one_or_none()
    if post is None:
        raise NotFoundError("Post not found")
    return post


async def _view_totals(db: AsyncSession, post_ids: list[str]) -> dict[str, int]:
    if not post_ids:
        return {}
    result = await db.execute(
        select(AnalyticsView.entity_id, func.coalesce(func.sum(AnalyticsView.views), 0))
        .where(AnalyticsView.entity == POST_ENTITY, AnalyticsView.entity_id.in_(post_ids))
        .group_by(AnalyticsView.entity_id)
    )
    return {entity_id: int(total) for entity_id, total in result.all()}


def _to_detail(post: Post, view_count: int = 0) -> PostDetail:
    base = PostRead.model_validate(post).model_dump()
    return PostDetail(
        **base,
        author=AuthorRef.model_validate(post.author) if post.author else None,
        categories=[CategoryRef.model_validate(pc.category) for pc in post.post_categories],
        tags=[TagRef.model_validate(pt.tag) for pt in post.post_tags],
        view_count=view_count,
    )


async def _check_slug_free(db: AsyncSession, slug: str, exclude_id: str | None = None) -> None:
    query = select(Post.id).where(Post.slug == slug)
    if exclude_id is not None:
        query = query.where(Post.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise BadRequestError("Slug already exists")


async def _check_ids_exist(db: AsyncSession, model, ids: list[str], label: str) -> None:
    wanted = set(ids)
    if not wanted:
        return
    result = await db.execute(select(model.id).where(model.id.in_(wanted)))
    missing = wanted - set(result.scalars().all())
    if missing:
        raise BadRequestError(f"Unknown {label} id(s): {', '.join(sorted(missing))}")


def _link_rows(post_id: str, category_ids: list[str], tag_ids: list[str]) -> list:
    rows: list = [PostCategory(post_id=post_id, category_id=cid) for cid in dict.fromkeys(category_ids)]
    rows.extend(PostTag(post_id=post_id, tag_id=tid) for tid in dict.fromkeys(tag_ids))
    return rows


# ── CRUD ────────────────────────────────────────────────────────────
async def create_post(db: AsyncSession, data: PostCreate, actor_id: str) -> PostDetail:
    if not actor_id:
        raise BadRequestError("An authenticated author is required to create posts")

    await _check_slug_free(db, data.slug)
    await _check_ids_exist(db, Category, data.category_ids, "category")
    await _check_ids_exist(db, Tag, data.tag_ids, "tag")

    fields = data.model_dump(exclude={"category_ids", "tag_ids"})
    fields["status"] = data.status.value
    post = Post(
        **fields,
        created_by=actor_id,
        published_at=datetime.now(timezone.utc) if data.status is PostStatus.PUBLISHED else None,
    )
    db.add(post)
    await db.flush()
    db.add_all(_link_rows(post.id, data.category_ids, data.tag_ids))
    await db.commit()

    logger.info("Created post %s (%s) by %s", post.id, post.slug, actor_id)
    post = await get_post_or_404(db, post.id, with_relations=True)
    return _to_detail(post)


async def list_posts(
    db: AsyncSession,
    *,
    page: int = 1,
    limit: int = 10,
    search: str | None = None,
    status: PostStatus | None = None,
    category_id: str | None = None,
    tag_id: str | None = None,
    author_id: str | None = None,
    featured: bool | None = None,
) -> PostListResponse:
    filters = []
    if search:
        # Escape SQL LIKE metacharacters to prevent wildcard injection
        safe = search.replace("%", r"\%").replace("_", r"\_")
        pattern = f"%{safe}%"
        filters.append(
            or_(
                Post.title.ilike(pattern, escape="\\"),
                Post.excerpt.ilike(pattern, escape="\\"),
                Post.content.ilike(pattern, escape="\\"),
            )
        )
    if status is not None:
        filters.append(Post.status == status.value)
    if category_id:
        filters.append(
            Post.id.in_(select(PostCategory.post_id).where(PostCategory.category_id == category_id))
        )
    if tag_id:
        filters.append(Post.id.in_(select(PostTag.post_id).where(PostTag.tag_id == tag_id)))
    if author_id:
        filters.append(Post.created_by == author_id)
    if featured is not None:
        filters.append(Post.is_featured.is_(featured))

    total = (await db.execute(select(func.count(Post.id)).where(*filters))).scalar() or 0
    result = await db.execute(
        select(Post)
        .where(*filters)
        .options(*_with_relations())
        .order_by(Post.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    posts = list(result.scalars().all())
    views = await _view_totals(db, [p.id for p in posts])

    return PostListResponse(
        data=[_to_detail(p, views.get(p.id, 0)) for p in posts],
        pagination=Pagination(
            total=total, page=page, limit=limit, total_pages=math.ceil(total / limit)
        ),
    )


async def get_post(db: AsyncSession, post_id: str) -> PostDetail:
    """Fetch one post and count the read in today's view rollup."""
    post = await get_post_or_404(db, post_id, with_relations=True)
    await track_view(db, POST_ENTITY, post_id)
    views = await _view_totals(db, [post_id])
    return _to_detail(post, views.get(post_id, 0))


async def update_post(db: AsyncSession, post_id: str, data: PostUpdate, actor_id: str) -> PostDetail:
    post = await get_post_or_404(db, post_id)

    if data.slug is not None and data.slug != post.slug:
        await _check_slug_free(db, data.slug, exclude_id=post_id)
    if data.category_ids is not None:
        await _check_ids_exist(db, Category, data.category_ids, "category")
    if data.tag_ids is not None:
        await _check_ids_exist(db, Tag, data.tag_ids, "tag")

    changes = data.model_dump(exclude_unset=True, exclude={"category_ids", "tag_ids"})
    for field in _NON_NULLABLE & changes.keys():
        if changes[field] is None:
            del changes[field]

    previous_status = post.status
    if "status" in changes:
        changes["status"] = PostStatus(changes["status"]).value
        # Only the edge into PUBLISHED stamps publication time
        if changes["status"] == PostStatus.PUBLISHED.value and previous_status != PostStatus.PUBLISHED.value:
            post.published_at = datetime.now(timezone.utc)

    for field, value in changes.items():
        setattr(post, field, value)
    post.updated_by = actor_id

    if data.category_ids is not None:
        await db.execute(delete(PostCategory).where(PostCategory.post_id == post_id))
        db.add_all(_link_rows(post_id, data.category_ids, []))
    if data.tag_ids is not None:
        await db.execute(delete(PostTag).where(PostTag.post_id == post_id))
        db.add_all(_link_rows(post_id, [], data.tag_ids))

    await db.commit()
    logger.info("Updated post %s by %s", post_id, actor_id)

    post = await get_post_or_404(db, post_id, with_relations=True)
    views = await _view_totals(db, [post_id])
    return _to_detail(post, views.get(post_id, 0))


async def delete_post(db: AsyncSession, post_id: str) -> None:
    """Remove a post and everything hanging off it, all or nothing."""
    await get_post_or_404(db, post_id)

    try:
        await db.execute(
            delete(AnalyticsView).where(
                AnalyticsView.entity == POST_ENTITY, AnalyticsView.entity_id == post_id
            )
        )
        await db.execute(
            delete(AssetUsage).where(
                AssetUsage.entity_type == POST_ENTITY, AssetUsage.entity_id == post_id
            )
        )
        await db.execute(delete(PostCategory).where(PostCategory.post_id == post_id))
        await db.execute(delete(PostTag).where(PostTag.post_id == post_id))
        await db.execute(delete(Post).where(Post.id == post_id))
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.error("Deleting post %s failed; transaction rolled back", post_id)
        raise

    logger.info("Deleted post %s", post_id)


# ── Views & analytics ───────────────────────────────────────────────
async def track_view(
    db: AsyncSession,
    entity: str,
    entity_id: str,
    day: date | None = None,
) -> AnalyticsView:
    """Find-or-create today's rollup row for the entity, then increment it."""
    day = day or datetime.now(timezone.utc).date()
    result = await db.execute(
        select(AnalyticsView).where(
            AnalyticsView.entity == entity,
            AnalyticsView.entity_id == entity_id,
            AnalyticsView.date == day,
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = AnalyticsView(entity=entity, entity_id=entity_id, date=day, views=1)
        db.add(row)
    else:
        await db.execute(
            update(AnalyticsView)
            .where(AnalyticsView.id == row.id)
            .values(views=AnalyticsView.views + 1)
        )
    await db.commit()
    await db.refresh(row)
    return row


async def get_stats(db: AsyncSession) -> PostStats:
    total = await db.execute(select(func.count(Post.id)))
    published = await db.execute(
        select(func.count(Post.id)).where(Post.status == PostStatus.PUBLISHED.value)
    )
    drafts = await db.execute(
        select(func.count(Post.id)).where(Post.status == PostStatus.DRAFT.value)
    )
    views = await db.execute(
        select(func.coalesce(func.sum(AnalyticsView.views), 0)).where(
            AnalyticsView.entity == POST_ENTITY
        )
    )
    return PostStats(
        total_posts=total.scalar() or 0,
        published_posts=published.scalar() or 0,
        draft_posts=drafts.scalar() or 0,
        total_views=int(views.scalar() or 0),
    )


async def get_analytics(db: AsyncSession, post_id: str, days: int = 30) -> list[AnalyticsPoint]:
    end = datetime.now(timezone.utc).date()
    start = end - timedelta(days=days)
    result = await db.execute(
        select(AnalyticsView)
        .where(
            AnalyticsView.entity == POST_ENTITY,
            AnalyticsView.entity_id == post_id,
            AnalyticsView.date >= start,
            AnalyticsView.date <= end,
        )
        .order_by(AnalyticsView.date.asc())
    )
    return [AnalyticsPoint.model_validate(row) for row in result.scalars().all()]


# ── Public feed ─────────────────────────────────────────────────────
async def list_public_news(
    db: AsyncSession,
    *,
    page: int = 1,
    limit: int = 10,
    category_id: str | None = None,
) -> PublicNewsResponse:
    filters = [
        Post.status == PostStatus.PUBLISHED.value,
        Post.published_at <= datetime.now(timezone.utc),
    ]
    if category_id:
        filters.append(
            Post.id.in_(select(PostCategory.post_id).where(PostCategory.category_id == category_id))
        )

    total = (await db.execute(select(func.count(Post.id)).where(*filters))).scalar() or 0
    result = await db.execute(
        select(Post)
        .where(*filters)
        .options(
            selectinload(Post.author),
            selectinload(Post.post_categories).selectinload(PostCategory.category),
        )
        .order_by(Post.published_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )

    items = [
        PublicNewsItem(
            id=p.id,
            title=p.title,
            slug=p.slug,
            excerpt=p.excerpt,
            featured_image=p.featured_image,
            published_at=p.published_at,
            author=AuthorRef(id=p.author.id, full_name=p.author.full_name) if p.author else None,
            categories=[
                CategoryRef(id=pc.category.id, name=pc.category.name)
                for pc in p.post_categories
            ],
        )
        for p in result.scalars().all()
    ]
    return PublicNewsResponse(
        data=items,
        pagination=Pagination(
            total=total, page=page, limit=limit, total_pages=math.ceil(total / limit)
        ),
    )
