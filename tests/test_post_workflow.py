"""Tests for the post publication workflow."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from app.models.post import Post, PostStatus
from app.models.tracking import AuditTrail
from app.services import post_workflow
from app.services.post_workflow import TRANSITIONS, allowed_actions

ACTIONS = {
    "submit-review": post_workflow.submit_for_review,
    "approve": post_workflow.approve_post,
    "reject": post_workflow.reject_post,
    "archive": post_workflow.archive_post,
    "publish": post_workflow.publish_post,
}


def test_transition_table():
    assert allowed_actions(PostStatus.DRAFT) == ["submit-review", "publish"]
    assert allowed_actions(PostStatus.REVIEW) == ["approve", "reject", "publish"]
    assert allowed_actions(PostStatus.PUBLISHED) == ["archive"]
    assert allowed_actions(PostStatus.REJECTED) == ["archive"]
    assert allowed_actions(PostStatus.ARCHIVED) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("action", list(TRANSITIONS))
@pytest.mark.parametrize("status", list(PostStatus))
async def test_every_action_from_every_state(
    db_session: AsyncSession, make_user, make_post, action: str, status: PostStatus
):
    author, _ = await make_user("author")
    post = await make_post(author, status=status)
    transition = TRANSITIONS[action]

    if status in transition.sources:
        result = await ACTIONS[action](db_session, post.id, author.id)
        assert result.post.status == transition.target
        assert result.message == transition.success_message
    else:
        with pytest.raises(BadRequestError) as exc_info:
            await ACTIONS[action](db_session, post.id, author.id)
        assert exc_info.value.detail == transition.illegal_message

        post_id = post.id
        db_session.expire_all()
        unchanged = await db_session.get(Post, post_id)
        assert unchanged.status == status.value
        assert unchanged.updated_by is None


@pytest.mark.asyncio
@pytest.mark.parametrize("action, source", [("approve", PostStatus.REVIEW), ("publish", PostStatus.DRAFT)])
async def test_publishing_stamps_published_at(
    db_session: AsyncSession, make_user, make_post, action: str, source: PostStatus
):
    moderator, _ = await make_user("moderator")
    post = await make_post(moderator, status=source)
    assert post.published_at is None

    result = await ACTIONS[action](db_session, post.id, moderator.id)

    assert result.post.published_at is not None
    assert result.post.updated_by == moderator.id


@pytest.mark.asyncio
async def test_reject_with_reason_writes_audit_row(db_session: AsyncSession, make_user, make_post):
    author, _ = await make_user("author")
    moderator, _ = await make_user("moderator")
    post = await make_post(author, status=PostStatus.REVIEW)

    result = await post_workflow.reject_post(db_session, post.id, moderator.id, "Needs sources")

    assert result.reason == "Needs sources"
    assert result.post.status == PostStatus.REJECTED
    rows = (await db_session.execute(select(AuditTrail))).scalars().all()
    assert len(rows) == 1
    audit = rows[0]
    assert audit.action == "REJECT"
    assert audit.entity == "post"
    assert audit.entity_id == post.id
    assert audit.user_id == moderator.id
    assert audit.before_json == {"status": "REVIEW"}
    assert audit.after_json == {"status": "REJECTED", "reason": "Needs sources"}


@pytest.mark.asyncio
async def test_reject_without_reason_writes_no_audit(db_session: AsyncSession, make_user, make_post):
    author, _ = await make_user("author")
    post = await make_post(author, status=PostStatus.REVIEW)

    result = await post_workflow.reject_post(db_session, post.id, author.id)

    assert result.reason is None
    assert (await db_session.execute(select(AuditTrail))).scalars().all() == []


@pytest.mark.asyncio
async def test_submit_review_by_other_author_forbidden(db_session: AsyncSession, make_user, make_post):
    owner, _ = await make_user("author")
    stranger, _ = await make_user("author")
    post = await make_post(owner)

    with pytest.raises(ForbiddenError):
        await post_workflow.submit_for_review(db_session, post.id, stranger.id)

    post_id = post.id
    db_session.expire_all()
    assert (await db_session.get(Post, post_id)).status == PostStatus.DRAFT.value


@pytest.mark.asyncio
@pytest.mark.parametrize("role", ["editor", "admin", "super_admin"])
async def test_submit_review_by_elevated_role(
    db_session: AsyncSession, make_user, make_post, role: str
):
    owner, _ = await make_user("author")
    elevated, _ = await make_user(role)
    post = await make_post(owner)

    result = await post_workflow.submit_for_review(db_session, post.id, elevated.id)
    assert result.post.status == PostStatus.REVIEW


@pytest.mark.asyncio
async def test_missing_post_is_not_found(db_session: AsyncSession, make_user):
    user, _ = await make_user("super_admin")
    with pytest.raises(NotFoundError) as exc_info:
        await post_workflow.approve_post(db_session, "no-such-post", user.id)
    assert exc_info.value.detail == "Post not found"


# ── Through the API ─────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_full_review_cycle(async_client: AsyncClient, make_user, make_post):
    author, author_headers = await make_user("author")
    _, moderator_headers = await make_user("moderator")
    post = await make_post(author)

    resp = await async_client.post(f"/api/v1/posts/{post.id}/submit-review", headers=author_headers)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Post submitted for review successfully"
    assert resp.json()["post"]["status"] == "REVIEW"

    # Authors cannot approve their own work
    resp = await async_client.post(f"/api/v1/posts/{post.id}/approve", headers=author_headers)
    assert resp.status_code == 403

    resp = await async_client.post(
        f"/api/v1/posts/{post.id}/reject",
        json={"reason": "Too short"},
        headers=moderator_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["reason"] == "Too short"
    assert resp.json()["post"]["status"] == "REJECTED"

    resp = await async_client.post(f"/api/v1/posts/{post.id}/archive", headers=moderator_headers)
    assert resp.status_code == 200
    assert resp.json()["post"]["status"] == "ARCHIVED"


@pytest.mark.asyncio
async def test_illegal_transition_is_bad_request(async_client: AsyncClient, make_user, make_post):
    moderator, headers = await make_user("moderator")
    post = await make_post(moderator, status=PostStatus.ARCHIVED)

    resp = await async_client.post(f"/api/v1/posts/{post.id}/publish", headers=headers)
    assert resp.status_code == 400
    assert resp.json() == {
        "detail": "Only draft or review posts can be published",
        "success": False,
    }


@pytest.mark.asyncio
async def test_reject_without_body(async_client: AsyncClient, make_user, make_post):
    moderator, headers = await make_user("moderator")
    post = await make_post(moderator, status=PostStatus.REVIEW)

    resp = await async_client.post(f"/api/v1/posts/{post.id}/reject", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["reason"] is None
