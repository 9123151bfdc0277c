"""
Uploaded files, events & digital-era quotes — entities the landing page
references by id.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from app.db.base import Base, new_uuid, utcnow


class FilesUpload(Base):
    __tablename__ = "files_uploads"

    id: str = Column(String(36), primary_key=True, default=new_uuid)  # type: ignore[assignment]
    file_name: str = Column(String(500), nullable=False)  # type: ignore[assignment]
    stored_name: str = Column(String(500), nullable=False)  # type: ignore[assignment]
    file_path: str = Column(String(1000), nullable=False)  # type: ignore[assignment]  # /uploads/<folder>/<name>
    mime_type: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    file_type: str | None = Column(String(50), nullable=True)  # type: ignore[assignment]
    file_size: int | None = Column(Integer, nullable=True)  # type: ignore[assignment]
    is_public: bool = Column(Boolean, default=True)  # type: ignore[assignment]
    uploaded_by: str | None = Column(String(36), ForeignKey("users.id"), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(DateTime(timezone=True), default=utcnow)  # type: ignore[assignment]


class Event(Base):
    __tablename__ = "events"

    id: str = Column(String(36), primary_key=True, default=new_uuid)  # type: ignore[assignment]
    title: str = Column(String(500), nullable=False)  # type: ignore[assignment]
    description: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    start_date: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]
    end_date: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    location: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    status: str = Column(String(20), nullable=False, default="UPCOMING")  # type: ignore[assignment]
    image: str | None = Column(String(1000), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(DateTime(timezone=True), default=utcnow)  # type: ignore[assignment]


class DigitalEra(Base):
    __tablename__ = "digital_era_quotes"

    id: str = Column(String(36), primary_key=True, default=new_uuid)  # type: ignore[assignment]
    text: str = Column(Text, nullable=False)  # type: ignore[assignment]
    author: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    order: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True)  # type: ignore[assignment]
    created_at: datetime = Column(DateTime(timezone=True), default=utcnow)  # type: ignore[assignment]
