"""
Analytics, asset-usage & audit-trail models.

``analytics_views`` is a daily rollup: one row per (entity, entity_id, date)
whose ``views`` counter is incremented in place.
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (JSON, Column, Date, DateTime, ForeignKey, Index,
                        Integer, String, UniqueConstraint)

from app.db.base import Base, new_uuid, utcnow


class AnalyticsView(Base):
    __tablename__ = "analytics_views"
    __table_args__ = (
        UniqueConstraint("entity", "entity_id", "date", name="uq_analytics_entity_date"),
    )

    id: str = Column(String(36), primary_key=True, default=new_uuid)  # type: ignore[assignment]
    entity: str = Column(String(50), nullable=False)  # type: ignore[assignment]  # post | event | ...
    entity_id: str = Column(String(36), nullable=False, index=True)  # type: ignore[assignment]
    date: date = Column(Date, nullable=False)  # type: ignore[assignment]
    views: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]


class AssetUsage(Base):
    __tablename__ = "asset_usages"
    __table_args__ = (Index("ix_asset_usage_entity", "entity_type", "entity_id"),)

    id: str = Column(String(36), primary_key=True, default=new_uuid)  # type: ignore[assignment]
    asset_id: str = Column(String(36), nullable=False)  # type: ignore[assignment]
    entity_type: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    entity_id: str = Column(String(36), nullable=False)  # type: ignore[assignment]
    field_name: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(DateTime(timezone=True), default=utcnow)  # type: ignore[assignment]


class AuditTrail(Base):
    __tablename__ = "audit_trails"
    __table_args__ = (Index("ix_audit_entity", "entity", "entity_id"),)

    id: str = Column(String(36), primary_key=True, default=new_uuid)  # type: ignore[assignment]
    user_id: str | None = Column(String(36), ForeignKey("users.id"), nullable=True)  # type: ignore[assignment]
    entity: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    entity_id: str = Column(String(36), nullable=False)  # type: ignore[assignment]
    action: str = Column(String(30), nullable=False)  # type: ignore[assignment]
    before_json: dict | None = Column(JSON, nullable=True)  # type: ignore[assignment]
    after_json: dict | None = Column(JSON, nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(DateTime(timezone=True), default=utcnow)  # type: ignore[assignment]
