"""Tests for post CRUD, view tracking, analytics and the public feed."""

from datetime import date, datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.dml import Delete

from app.core.exceptions import BadRequestError
from app.models.post import Category, Post, PostCategory, PostStatus, PostTag, Tag
from app.models.tracking import AnalyticsView, AssetUsage
from app.schemas.post import PostCreate, PostUpdate
from app.services import posts


async def _category_and_tag(db: AsyncSession) -> tuple[Category, Tag]:
    category = Category(name="News", slug="news")
    tag = Tag(name="Launch", slug="launch")
    db.add_all([category, tag])
    await db.commit()
    return category, tag


async def _count(db: AsyncSession, model, *where) -> int:
    return (await db.execute(select(func.count()).select_from(model).where(*where))).scalar()


# ── Create ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_create_post(async_client: AsyncClient, db_session: AsyncSession, make_user):
    author, headers = await make_user("author")
    category, tag = await _category_and_tag(db_session)

    resp = await async_client.post(
        "/api/v1/posts",
        json={
            "title": "Hello world",
            "slug": "hello-world",
            "content": "First post",
            "category_ids": [category.id],
            "tag_ids": [tag.id],
        },
        headers=headers,
    )

    assert resp.status_code == 201
    data = resp.json()
    assert data["slug"] == "hello-world"
    assert data["status"] == "DRAFT"
    assert data["published_at"] is None
    assert data["created_by"] == author.id
    assert data["author"]["id"] == author.id
    assert [c["id"] for c in data["categories"]] == [category.id]
    assert [t["id"] for t in data["tags"]] == [tag.id]


@pytest.mark.asyncio
async def test_create_published_post_stamps_publication(db_session: AsyncSession, make_user):
    author, _ = await make_user("author")
    detail = await posts.create_post(
        db_session,
        PostCreate(title="Live", slug="live", content="x", status=PostStatus.PUBLISHED),
        author.id,
    )
    assert detail.published_at is not None


@pytest.mark.asyncio
async def test_duplicate_slug_rejected_and_nothing_written(
    async_client: AsyncClient, db_session: AsyncSession, make_user, make_post
):
    author, headers = await make_user("author")
    await make_post(author, slug="taken")

    resp = await async_client.post(
        "/api/v1/posts",
        json={"title": "Again", "slug": "taken", "content": "x"},
        headers=headers,
    )

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Slug already exists"
    assert await _count(db_session, Post) == 1


@pytest.mark.asyncio
async def test_unknown_category_rejected(db_session: AsyncSession, make_user):
    author, _ = await make_user("author")
    with pytest.raises(BadRequestError) as exc_info:
        await posts.create_post(
            db_session,
            PostCreate(title="T", slug="t", content="x", category_ids=["nope"]),
            author.id,
        )
    assert "nope" in exc_info.value.detail
    assert await _count(db_session, Post) == 0


@pytest.mark.asyncio
async def test_create_requires_actor(db_session: AsyncSession, roles):
    with pytest.raises(BadRequestError):
        await posts.create_post(db_session, PostCreate(title="T", slug="t", content="x"), "")


def test_slug_format_validated():
    with pytest.raises(ValueError):
        PostCreate(title="T", slug="Not A Slug", content="x")


# ── Update ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_update_into_existing_slug_rejected(db_session: AsyncSession, make_user, make_post):
    author, _ = await make_user("author")
    await make_post(author, slug="first")
    second = await make_post(author, slug="second")

    with pytest.raises(BadRequestError) as exc_info:
        await posts.update_post(db_session, second.id, PostUpdate(slug="first"), author.id)
    assert exc_info.value.detail == "Slug already exists"


@pytest.mark.asyncio
async def test_update_published_at_only_on_edge(db_session: AsyncSession, make_user, make_post):
    author, _ = await make_user("editor")
    post = await make_post(author)

    first = await posts.update_post(
        db_session, post.id, PostUpdate(status=PostStatus.PUBLISHED), author.id
    )
    assert first.published_at is not None

    again = await posts.update_post(
        db_session, post.id, PostUpdate(status=PostStatus.PUBLISHED, title="Edited"), author.id
    )
    assert again.title == "Edited"
    assert again.published_at == first.published_at
    assert again.updated_by == author.id


@pytest.mark.asyncio
async def test_update_replaces_links(db_session: AsyncSession, make_user, make_post):
    author, _ = await make_user("author")
    category, tag = await _category_and_tag(db_session)
    post = await make_post(author)
    db_session.add(PostCategory(post_id=post.id, category_id=category.id))
    await db_session.commit()

    detail = await posts.update_post(
        db_session, post.id, PostUpdate(category_ids=[], tag_ids=[tag.id]), author.id
    )

    assert detail.categories == []
    assert [t.id for t in detail.tags] == [tag.id]


@pytest.mark.asyncio
async def test_patch_endpoint(async_client: AsyncClient, make_user, make_post):
    author, headers = await make_user("author")
    post = await make_post(author)

    resp = await async_client.patch(
        f"/api/v1/posts/{post.id}", json={"excerpt": "Short"}, headers=headers
    )
    assert resp.status_code == 200
    assert resp.json()["excerpt"] == "Short"


# ── Delete ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_delete_removes_dependents(
    async_client: AsyncClient, db_session: AsyncSession, make_user, make_post
):
    admin, headers = await make_user("admin")
    category, tag = await _category_and_tag(db_session)
    post = await make_post(admin)
    db_session.add_all(
        [
            PostCategory(post_id=post.id, category_id=category.id),
            PostTag(post_id=post.id, tag_id=tag.id),
            AnalyticsView(entity="post", entity_id=post.id, date=date.today(), views=3),
            AssetUsage(asset_id="asset-1", entity_type="post", entity_id=post.id),
        ]
    )
    await db_session.commit()

    resp = await async_client.delete(f"/api/v1/posts/{post.id}", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Post deleted successfully"}

    db_session.expire_all()
    assert await _count(db_session, Post) == 0
    assert await _count(db_session, PostCategory) == 0
    assert await _count(db_session, PostTag) == 0
    assert await _count(db_session, AnalyticsView) == 0
    assert await _count(db_session, AssetUsage) == 0


@pytest.mark.asyncio
async def test_delete_is_all_or_nothing(
    db_session: AsyncSession, make_user, make_post, monkeypatch
):
    author, _ = await make_user("author")
    category, tag = await _category_and_tag(db_session)
    post = await make_post(author)
    db_session.add_all(
        [
            PostCategory(post_id=post.id, category_id=category.id),
            PostTag(post_id=post.id, tag_id=tag.id),
            AnalyticsView(entity="post", entity_id=post.id, date=date.today(), views=3),
        ]
    )
    await db_session.commit()

    real_execute = db_session.execute

    async def _fail_on_tags(statement, *args, **kwargs):
        if isinstance(statement, Delete) and statement.table.name == "post_tags":
            raise OperationalError("DELETE FROM post_tags", {}, Exception("disk I/O error"))
        return await real_execute(statement, *args, **kwargs)

    monkeypatch.setattr(db_session, "execute", _fail_on_tags)
    with pytest.raises(OperationalError):
        await posts.delete_post(db_session, post.id)
    monkeypatch.undo()

    db_session.expire_all()
    assert await _count(db_session, Post) == 1
    assert await _count(db_session, AnalyticsView) == 1
    assert await _count(db_session, PostCategory) == 1
    assert await _count(db_session, PostTag) == 1


@pytest.mark.asyncio
async def test_author_cannot_delete(async_client: AsyncClient, make_user, make_post):
    author, headers = await make_user("author")
    post = await make_post(author)
    resp = await async_client.delete(f"/api/v1/posts/{post.id}", headers=headers)
    assert resp.status_code == 403


# ── Read, views, analytics ──────────────────────────────────────────
@pytest.mark.asyncio
async def test_get_counts_views(async_client: AsyncClient, make_user, make_post):
    author, headers = await make_user("viewer")
    post = await make_post(author)

    first = await async_client.get(f"/api/v1/posts/{post.id}", headers=headers)
    second = await async_client.get(f"/api/v1/posts/{post.id}", headers=headers)

    assert first.status_code == 200
    assert first.json()["view_count"] == 1
    assert second.json()["view_count"] == 2
    assert first.json()["allowed_actions"] == ["submit-review", "publish"]


@pytest.mark.asyncio
async def test_get_missing_post(async_client: AsyncClient, make_user):
    _, headers = await make_user("viewer")
    resp = await async_client.get("/api/v1/posts/missing", headers=headers)
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Post not found"


@pytest.mark.asyncio
async def test_track_view_rolls_up_per_day(db_session: AsyncSession, make_user, make_post):
    author, _ = await make_user("author")
    post = await make_post(author)
    today = date(2026, 3, 1)

    await posts.track_view(db_session, "post", post.id, day=today)
    await posts.track_view(db_session, "post", post.id, day=today)
    row = await posts.track_view(db_session, "post", post.id, day=today + timedelta(days=1))

    assert row.views == 1
    assert await _count(db_session, AnalyticsView) == 2
    db_session.expire_all()
    first_day = (
        await db_session.execute(select(AnalyticsView).where(AnalyticsView.date == today))
    ).scalar_one()
    assert first_day.views == 2


@pytest.mark.asyncio
async def test_analytics_window_oldest_first(
    async_client: AsyncClient, db_session: AsyncSession, make_user, make_post
):
    author, headers = await make_user("viewer")
    post = await make_post(author)
    today = datetime.now(timezone.utc).date()
    db_session.add_all(
        [
            AnalyticsView(entity="post", entity_id=post.id, date=today, views=5),
            AnalyticsView(entity="post", entity_id=post.id, date=today - timedelta(days=3), views=2),
            AnalyticsView(entity="post", entity_id=post.id, date=today - timedelta(days=60), views=9),
        ]
    )
    await db_session.commit()

    resp = await async_client.get(f"/api/v1/posts/{post.id}/analytics", headers=headers)

    assert resp.status_code == 200
    assert resp.json() == [
        {"date": (today - timedelta(days=3)).isoformat(), "views": 2},
        {"date": today.isoformat(), "views": 5},
    ]


@pytest.mark.asyncio
async def test_stats(async_client: AsyncClient, db_session: AsyncSession, make_user, make_post):
    author, headers = await make_user("viewer")
    published = await make_post(author, status=PostStatus.PUBLISHED)
    await make_post(author)
    await make_post(author, status=PostStatus.REVIEW)
    db_session.add(AnalyticsView(entity="post", entity_id=published.id, date=date.today(), views=7))
    await db_session.commit()

    resp = await async_client.get("/api/v1/posts/stats", headers=headers)

    assert resp.status_code == 200
    assert resp.json() == {
        "total_posts": 3,
        "published_posts": 1,
        "draft_posts": 1,
        "total_views": 7,
    }


# ── Listing ─────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_list_filters_and_pagination(
    async_client: AsyncClient, db_session: AsyncSession, make_user, make_post
):
    author, headers = await make_user("viewer")
    category, _ = await _category_and_tag(db_session)
    tagged = await make_post(author, title="Budget report")
    for i in range(4):
        await make_post(author, title=f"Other {i}", is_featured=True)
    db_session.add(PostCategory(post_id=tagged.id, category_id=category.id))
    await db_session.commit()

    resp = await async_client.get("/api/v1/posts?limit=2&page=2", headers=headers)
    body = resp.json()
    assert body["pagination"] == {"total": 5, "page": 2, "limit": 2, "total_pages": 3}
    assert len(body["data"]) == 2

    resp = await async_client.get(f"/api/v1/posts?category_id={category.id}", headers=headers)
    assert [p["id"] for p in resp.json()["data"]] == [tagged.id]

    resp = await async_client.get("/api/v1/posts?search=budget", headers=headers)
    assert [p["id"] for p in resp.json()["data"]] == [tagged.id]

    resp = await async_client.get("/api/v1/posts?featured=true", headers=headers)
    assert resp.json()["pagination"]["total"] == 4


@pytest.mark.asyncio
async def test_search_escapes_wildcards(db_session: AsyncSession, make_user, make_post):
    author, _ = await make_user("author")
    await make_post(author, title="Plain title")
    result = await posts.list_posts(db_session, search="%")
    assert result.pagination.total == 0


# ── Public feed ─────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_public_feed_only_live_posts(async_client: AsyncClient, make_user, make_post):
    author, _ = await make_user("author")
    now = datetime.now(timezone.utc)
    older = await make_post(author, status=PostStatus.PUBLISHED, published_at=now - timedelta(days=2))
    newer = await make_post(author, status=PostStatus.PUBLISHED, published_at=now - timedelta(hours=1))
    await make_post(author, status=PostStatus.PUBLISHED, published_at=now + timedelta(days=1))
    await make_post(author, status=PostStatus.DRAFT)

    resp = await async_client.get("/api/v1/public/posts")

    assert resp.status_code == 200
    body = resp.json()
    assert [p["id"] for p in body["data"]] == [newer.id, older.id]
    assert body["data"][0]["author"]["id"] == author.id
    assert body["pagination"]["total"] == 2
