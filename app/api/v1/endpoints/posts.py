"""
Post endpoints — CRUD, stats, analytics and the publication workflow.

Every route is session guarded and requires the same-named ``posts:*``
permission.
"""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_db, require_permissions
from app.models.post import PostStatus
from app.models.user import User
from app.schemas.post import (AnalyticsPoint, PostCreate, PostDeleteResponse,
                              PostDetail, PostListResponse, PostStats,
                              PostUpdate, RejectRequest, WorkflowResponse)
from app.services import post_workflow, posts

router = APIRouter(prefix="/posts", tags=["posts"])


@router.post("", response_model=PostDetail, status_code=201)
async def create_post(
    body: PostCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permissions("posts:create")),
) -> PostDetail:
    return await posts.create_post(db, body, user.id)


@router.get("", response_model=PostListResponse)
async def list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = Query(None, max_length=200),
    status: PostStatus | None = None,
    category_id: str | None = None,
    tag_id: str | None = None,
    author_id: str | None = None,
    featured: bool | None = None,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permissions("posts:read")),
) -> PostListResponse:
    """Paginated post list, newest first."""
    return await posts.list_posts(
        db,
        page=page,
        limit=limit,
        search=search,
        status=status,
        category_id=category_id,
        tag_id=tag_id,
        author_id=author_id,
        featured=featured,
    )


# Declared before "/{post_id}" so "stats" is not captured as an id
@router.get("/stats", response_model=PostStats)
async def post_stats(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permissions("posts:read")),
) -> PostStats:
    return await posts.get_stats(db)


@router.get("/{post_id}", response_model=PostDetail)
async def get_post(
    post_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permissions("posts:read")),
) -> PostDetail:
    detail = await posts.get_post(db, post_id)
    detail.allowed_actions = post_workflow.allowed_actions(detail.status)
    return detail


@router.get("/{post_id}/analytics", response_model=list[AnalyticsPoint])
async def post_analytics(
    post_id: str,
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permissions("posts:read")),
) -> list[AnalyticsPoint]:
    """Daily view counts for the last ``days`` days, oldest first."""
    await posts.get_post_or_404(db, post_id)
    return await posts.get_analytics(db, post_id, days)


@router.patch("/{post_id}", response_model=PostDetail)
async def update_post(
    post_id: str,
    body: PostUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permissions("posts:update")),
) -> PostDetail:
    return await posts.update_post(db, post_id, body, user.id)


@router.delete("/{post_id}", response_model=PostDeleteResponse)
async def delete_post(
    post_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permissions("posts:delete")),
) -> PostDeleteResponse:
    await posts.delete_post(db, post_id)
    return PostDeleteResponse(success=True, message="Post deleted successfully")


# ── Workflow ────────────────────────────────────────────────────────
@router.post("/{post_id}/submit-review", response_model=WorkflowResponse)
async def submit_review(
    post_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permissions("posts:submit-review")),
) -> WorkflowResponse:
    return await post_workflow.submit_for_review(db, post_id, user.id)


@router.post("/{post_id}/approve", response_model=WorkflowResponse)
async def approve(
    post_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permissions("posts:approve")),
) -> WorkflowResponse:
    return await post_workflow.approve_post(db, post_id, user.id)


@router.post("/{post_id}/reject", response_model=WorkflowResponse)
async def reject(
    post_id: str,
    body: RejectRequest | None = Body(default=None),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permissions("posts:reject")),
) -> WorkflowResponse:
    reason = body.reason if body else None
    return await post_workflow.reject_post(db, post_id, user.id, reason)


@router.post("/{post_id}/archive", response_model=WorkflowResponse)
async def archive(
    post_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permissions("posts:archive")),
) -> WorkflowResponse:
    return await post_workflow.archive_post(db, post_id, user.id)


@router.post("/{post_id}/publish", response_model=WorkflowResponse)
async def publish(
    post_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permissions("posts:publish")),
) -> WorkflowResponse:
    return await post_workflow.publish_post(db, post_id, user.id)
