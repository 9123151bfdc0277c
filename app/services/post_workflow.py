"""
Post publication workflow.

    DRAFT ──submit-review──▶ REVIEW ──approve──▶ PUBLISHED ──archive──▶ ARCHIVED
      │                        │ └───reject───▶ REJECTED ───archive──┘
      └────────publish─────────┴──────────────▶ PUBLISHED

Permission checks happen upstream (``require_permissions``); this module
only enforces which source states an action accepts and its side effects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestError, ForbiddenError
from app.core.permissions import ELEVATED_ROLES, has_any_role
from app.models.post import Post, PostStatus
from app.models.tracking import AuditTrail
from app.schemas.post import PostRead, WorkflowResponse
from app.services.posts import POST_ENTITY, get_post_or_404

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    sources: frozenset[PostStatus]
    target: PostStatus
    illegal_message: str
    success_message: str
    stamps_published_at: bool = False


TRANSITIONS: dict[str, Transition] = {
    "submit-review": Transition(
        sources=frozenset({PostStatus.DRAFT}),
        target=PostStatus.REVIEW,
        illegal_message="Only draft posts can be submitted for review",
        success_message="Post submitted for review successfully",
    ),
    "approve": Transition(
        sources=frozenset({PostStatus.REVIEW}),
        target=PostStatus.PUBLISHED,
        illegal_message="Only posts in review can be approved",
        success_message="Post approved and published successfully",
        stamps_published_at=True,
    ),
    "reject": Transition(
        sources=frozenset({PostStatus.REVIEW}),
        target=PostStatus.REJECTED,
        illegal_message="Only posts in review can be rejected",
        success_message="Post rejected successfully",
    ),
    "archive": Transition(
        sources=frozenset({PostStatus.PUBLISHED, PostStatus.REJECTED}),
        target=PostStatus.ARCHIVED,
        illegal_message="Only published or rejected posts can be archived",
        success_message="Post archived successfully",
    ),
    "publish": Transition(
        sources=frozenset({PostStatus.DRAFT, PostStatus.REVIEW}),
        target=PostStatus.PUBLISHED,
        illegal_message="Only draft or review posts can be published",
        success_message="Post published successfully",
        stamps_published_at=True,
    ),
}


def allowed_actions(status: PostStatus) -> list[str]:
    """Workflow actions that are legal from ``status``."""
    return [name for name, t in TRANSITIONS.items() if status in t.sources]


def _check_transition(post: Post, action: str) -> Transition:
    transition = TRANSITIONS[action]
    if PostStatus(post.status) not in transition.sources:
        raise BadRequestError(transition.illegal_message)
    return transition


async def _apply(
    db: AsyncSession,
    post: Post,
    action: str,
    actor_id: str,
    audit: AuditTrail | None = None,
) -> WorkflowResponse:
    transition = _check_transition(post, action)
    previous = post.status

    post.status = transition.target.value
    post.updated_by = actor_id
    if transition.stamps_published_at:
        post.published_at = datetime.now(timezone.utc)
    if audit is not None:
        db.add(audit)
    await db.commit()
    await db.refresh(post)

    logger.info(
        "Post %s: %s → %s (%s by %s)", post.id, previous, post.status, action, actor_id
    )
    return WorkflowResponse(
        message=transition.success_message,
        post=PostRead.model_validate(post),
    )


async def submit_for_review(db: AsyncSession, post_id: str, actor_id: str) -> WorkflowResponse:
    post = await get_post_or_404(db, post_id)
    _check_transition(post, "submit-review")

    if post.created_by != actor_id and not await has_any_role(db, actor_id, ELEVATED_ROLES):
        raise ForbiddenError("You can only submit your own posts for review")

    return await _apply(db, post, "submit-review", actor_id)


async def approve_post(db: AsyncSession, post_id: str, actor_id: str) -> WorkflowResponse:
    post = await get_post_or_404(db, post_id)
    return await _apply(db, post, "approve", actor_id)


async def reject_post(
    db: AsyncSession,
    post_id: str,
    actor_id: str,
    reason: str | None = None,
) -> WorkflowResponse:
    post = await get_post_or_404(db, post_id)
    _check_transition(post, "reject")

    audit = None
    if reason:
        audit = AuditTrail(
            user_id=actor_id,
            entity=POST_ENTITY,
            entity_id=post_id,
            action="REJECT",
            before_json={"status": post.status},
            after_json={"status": PostStatus.REJECTED.value, "reason": reason},
        )

    response = await _apply(db, post, "reject", actor_id, audit=audit)
    response.reason = reason
    return response


async def archive_post(db: AsyncSession, post_id: str, actor_id: str) -> WorkflowResponse:
    post = await get_post_or_404(db, post_id)
    return await _apply(db, post, "archive", actor_id)


async def publish_post(db: AsyncSession, post_id: str, actor_id: str) -> WorkflowResponse:
    """Publish straight from DRAFT or REVIEW, skipping the review step."""
    post = await get_post_or_404(db, post_id)
    return await _apply(db, post, "publish", actor_id)
