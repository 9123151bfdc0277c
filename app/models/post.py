"""
Post, Category & Tag models — the content domain.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (JSON, Boolean, Column, DateTime, ForeignKey, String,
                        Text, UniqueConstraint)
from sqlalchemy.orm import relationship

from app.db.base import Base, new_uuid, utcnow


class PostStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    REVIEW = "REVIEW"
    PUBLISHED = "PUBLISHED"
    REJECTED = "REJECTED"
    ARCHIVED = "ARCHIVED"


class Post(Base):
    __tablename__ = "posts"

    id: str = Column(String(36), primary_key=True, default=new_uuid)  # type: ignore[assignment]
    title: str = Column(String(500), nullable=False)  # type: ignore[assignment]
    slug: str = Column(String(500), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    excerpt: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    content: str = Column(Text, nullable=False)  # type: ignore[assignment]
    status: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default=PostStatus.DRAFT.value,
        server_default=PostStatus.DRAFT.value,
        index=True,
    )
    type: str | None = Column(String(50), nullable=True)  # type: ignore[assignment]
    locale: str = Column(String(10), nullable=False, default="vi")  # type: ignore[assignment]
    allow_comments: bool = Column(Boolean, default=True)  # type: ignore[assignment]
    is_featured: bool = Column(Boolean, default=False)  # type: ignore[assignment]
    require_login: bool = Column(Boolean, default=False)  # type: ignore[assignment]
    meta_title: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    meta_description: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    featured_image: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    keywords: list | None = Column(JSON, nullable=True)  # type: ignore[assignment]
    open_graph: dict | None = Column(JSON, nullable=True)  # type: ignore[assignment]
    published_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    created_by: str = Column(String(36), ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]
    updated_by: str | None = Column(String(36), ForeignKey("users.id"), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(DateTime(timezone=True), default=utcnow)  # type: ignore[assignment]
    updated_at: datetime = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)  # type: ignore[assignment]

    author = relationship("User", foreign_keys=[created_by])
    post_categories = relationship("PostCategory", back_populates="post")
    post_tags = relationship("PostTag", back_populates="post")


class Category(Base):
    __tablename__ = "categories"

    id: str = Column(String(36), primary_key=True, default=new_uuid)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    slug: str = Column(String(200), unique=True, nullable=False)  # type: ignore[assignment]
    description: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    parent_id: str | None = Column(String(36), ForeignKey("categories.id"), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(DateTime(timezone=True), default=utcnow)  # type: ignore[assignment]


class Tag(Base):
    __tablename__ = "tags"

    id: str = Column(String(36), primary_key=True, default=new_uuid)  # type: ignore[assignment]
    name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    slug: str = Column(String(100), unique=True, nullable=False)  # type: ignore[assignment]
    created_at: datetime = Column(DateTime(timezone=True), default=utcnow)  # type: ignore[assignment]


class PostCategory(Base):
    __tablename__ = "post_categories"
    __table_args__ = (UniqueConstraint("post_id", "category_id", name="uq_post_category"),)

    id: str = Column(String(36), primary_key=True, default=new_uuid)  # type: ignore[assignment]
    post_id: str = Column(String(36), ForeignKey("posts.id"), nullable=False, index=True)  # type: ignore[assignment]
    category_id: str = Column(String(36), ForeignKey("categories.id"), nullable=False)  # type: ignore[assignment]

    post = relationship("Post", back_populates="post_categories")
    category = relationship("Category")


class PostTag(Base):
    __tablename__ = "post_tags"
    __table_args__ = (UniqueConstraint("post_id", "tag_id", name="uq_post_tag"),)

    id: str = Column(String(36), primary_key=True, default=new_uuid)  # type: ignore[assignment]
    post_id: str = Column(String(36), ForeignKey("posts.id"), nullable=False, index=True)  # type: ignore[assignment]
    tag_id: str = Column(String(36), ForeignKey("tags.id"), nullable=False)  # type: ignore[assignment]

    post = relationship("Post", back_populates="post_tags")
    tag = relationship("Tag")
