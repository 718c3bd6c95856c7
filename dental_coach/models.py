"""ORM tables for the knowledge base and the resource library."""

from __future__ import annotations

import enum
from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dental_coach.db import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


class KnowledgeType(str, enum.Enum):
    """Category of a knowledge entry."""

    TEXT = "text"
    DOCUMENT = "document"
    YOUTUBE = "youtube"

    @property
    def has_source_url(self) -> bool:
        return self is KnowledgeType.YOUTUBE


class KnowledgeEntry(Base):
    """One unit of grounding content available to the coach."""

    __tablename__ = "knowledge_entries"
    __table_args__ = (Index("ix_knowledge_entries_active_created", "is_active", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str] = mapped_column(String(32), nullable=False, default=KnowledgeType.TEXT.value)
    source_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    added_by: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow,
    )

    def __repr__(self) -> str:
        return f"<KnowledgeEntry id={self.id} title={self.title!r} active={self.is_active}>"


class Resource(Base):
    """An item in the practice resource library (guides, templates, videos)."""

    __tablename__ = "resources"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="draft")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
