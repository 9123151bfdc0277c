"""Pydantic schemas for posts, workflow responses and post analytics."""

from __future__ import annotations

import re
from datetime import date as date_type
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from app.models.post import PostStatus

_SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def _check_slug(v: str) -> str:
    v = v.strip()
    if not _SLUG_RE.match(v):
        raise ValueError("Slug must be lowercase letters, digits and single hyphens")
    return v


# ── Requests ────────────────────────────────────────────────────────
class PostCreate(BaseModel):
    title: str
    slug: str
    content: str
    excerpt: str | None = None
    status: PostStatus = PostStatus.DRAFT
    type: str | None = None
    locale: str = "vi"
    allow_comments: bool = True
    is_featured: bool = False
    require_login: bool = False
    meta_title: str | None = None
    meta_description: str | None = None
    featured_image: str | None = None
    keywords: list[str] | None = None
    open_graph: dict[str, Any] | None = None
    category_ids: list[str] = []
    tag_ids: list[str] = []

    @field_validator("title")
    @classmethod
    def _title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title must not be empty")
        return v

    @field_validator("slug")
    @classmethod
    def _slug(cls, v: str) -> str:
        return _check_slug(v)


class PostUpdate(BaseModel):
    title: str | None = None
    slug: str | None = None
    content: str | None = None
    excerpt: str | None = None
    status: PostStatus | None = None
    type: str | None = None
    locale: str | None = None
    allow_comments: bool | None = None
    is_featured: bool | None = None
    require_login: bool | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    featured_image: str | None = None
    keywords: list[str] | None = None
    open_graph: dict[str, Any] | None = None
    category_ids: list[str] | None = None
    tag_ids: list[str] | None = None

    @field_validator("slug")
    @classmethod
    def _slug(cls, v: str | None) -> str | None:
        return _check_slug(v) if v is not None else v


class RejectRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


# ── Responses ───────────────────────────────────────────────────────
class CategoryRef(BaseModel):
    id: str
    name: str
    slug: str | None = None

    model_config = {"from_attributes": True}


class TagRef(BaseModel):
    id: str
    name: str
    slug: str | None = None

    model_config = {"from_attributes": True}


class AuthorRef(BaseModel):
    id: str
    full_name: str | None
    email: str | None = None

    model_config = {"from_attributes": True}


class PostRead(BaseModel):
    id: str
    title: str
    slug: str
    excerpt: str | None
    content: str
    status: PostStatus
    type: str | None
    locale: str
    allow_comments: bool
    is_featured: bool
    require_login: bool
    meta_title: str | None
    meta_description: str | None
    featured_image: str | None
    keywords: list[str] | None
    open_graph: dict[str, Any] | None
    published_at: datetime | None
    created_by: str
    updated_by: str | None
    created_at: datetime | None
    updated_at: datetime | None

    model_config = {"from_attributes": True}


class PostDetail(PostRead):
    author: AuthorRef | None = None
    categories: list[CategoryRef] = []
    tags: list[TagRef] = []
    view_count: int = 0
    allowed_actions: list[str] = []  # workflow actions legal from the current status


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class PostListResponse(BaseModel):
    data: list[PostDetail]
    pagination: Pagination


class WorkflowResponse(BaseModel):
    message: str
    post: PostRead
    reason: str | None = None


class PostDeleteResponse(BaseModel):
    success: bool
    message: str


class PostStats(BaseModel):
    total_posts: int
    published_posts: int
    draft_posts: int
    total_views: int


class AnalyticsPoint(BaseModel):
    date: date_type
    views: int

    model_config = {"from_attributes": True}


class PublicNewsItem(BaseModel):
    id: str
    title: str
    slug: str
    excerpt: str | None
    featured_image: str | None
    published_at: datetime | None
    author: AuthorRef | None
    categories: list[CategoryRef]


class PublicNewsResponse(BaseModel):
    data: list[PublicNewsItem]
    pagination: Pagination
