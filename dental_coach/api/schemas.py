"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from dental_coach.models import KnowledgeType


class _WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ── Chat ────────────────────────────────────────────────────────────


class ChatMessage(BaseModel):
    """One turn of the conversation."""

    role: Literal["user", "assistant"]
    content: str = Field(..., min_length=1, max_length=8000)


class ChatRequest(BaseModel):
    """The full conversation so far, oldest first, ending with the user's new message."""

    messages: list[ChatMessage] = Field(..., min_length=1, max_length=100)

    @field_validator("messages")
    @classmethod
    def _ends_with_user_turn(cls, messages: list[ChatMessage]) -> list[ChatMessage]:
        if messages[-1].role != "user":
            raise ValueError("the last message must come from the user")
        return messages

    def history(self) -> list[dict[str, str]]:
        return [m.model_dump() for m in self.messages]


# ── Knowledge base ──────────────────────────────────────────────────


class KnowledgeCreate(_WireModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    type: KnowledgeType = KnowledgeType.TEXT
    source_url: str | None = Field(default=None, max_length=2048)

    @model_validator(mode="after")
    def _url_for_video_entries(self) -> KnowledgeCreate:
        if self.type.has_source_url and not self.source_url:
            raise ValueError(f"sourceUrl is required for {self.type.value} entries")
        return self


class KnowledgeUpdate(_WireModel):
    is_active: bool


class KnowledgeOut(_WireModel):
    id: int
    title: str
    content: str
    type: str
    source_url: str | None = None
    added_by: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


# ── Resources ───────────────────────────────────────────────────────


class ResourceCreate(_WireModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    type: str = Field(..., min_length=1, max_length=32)
    content: str = ""


class ResourceOut(_WireModel):
    id: int
    title: str
    description: str
    type: str
    content: str
    status: str
    created_at: datetime


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "dental-coach"
