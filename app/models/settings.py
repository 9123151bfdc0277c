"""
Settings model — one JSON document per category (``homePage``, ``header``,
``footer``, ...).

The document shape is a convention between the dashboard and the public
composers; the table does not enforce it.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, String

from app.db.base import Base, new_uuid, utcnow


class Settings(Base):
    __tablename__ = "settings"

    id: str = Column(String(36), primary_key=True, default=new_uuid)  # type: ignore[assignment]
    category: str = Column(String(100), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    data: dict = Column(JSON, nullable=False, default=dict)  # type: ignore[assignment]
    created_at: datetime = Column(DateTime(timezone=True), default=utcnow)  # type: ignore[assignment]
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )
