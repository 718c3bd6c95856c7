"""Structured response contract between the coach model and the UI.

The model is instructed to reply with a single JSON object::

    {
      "relevantSources": [{"title": "...", "type": "...", "relevance": "..."}],
      "response": "Paragraph one.\\nParagraph two.",
      "suggestedResources": ["..."],
      "learningCheck": {"question": "...", "options": ["...", "..."], "correctAnswer": "..."}
    }

Only ``response`` is required.  A reply either validates against this shape
as a whole or it is handed to the renderer as plain prose via
``StructuredAssistantResponse.fallback``; there is no field-by-field salvage.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from dental_coach.errors import MalformedResponseShape
from dental_coach.services.metrics import metrics

logger = logging.getLogger(__name__)


class _ContractModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel)


class RelevantSource(_ContractModel):
    """A knowledge entry the answer drew on, and why."""

    title: str
    type: str
    relevance: str


class LearningCheck(_ContractModel):
    """A single multiple-choice comprehension question."""

    question: str
    options: list[str] = Field(min_length=2)
    correct_answer: str | None = None

    @model_validator(mode="after")
    def _answer_is_an_option(self) -> LearningCheck:
        if self.correct_answer is not None and self.correct_answer not in self.options:
            raise ValueError("correctAnswer must be one of options")
        return self


class StructuredAssistantResponse(_ContractModel):
    """The reply shape the UI renders.  Absent fields are ``None``."""

    relevant_sources: list[RelevantSource] | None = None
    response: str
    suggested_resources: list[str] | None = None
    learning_check: LearningCheck | None = None

    _fallback: bool = PrivateAttr(default=False)

    @classmethod
    def fallback(cls, raw: str) -> StructuredAssistantResponse:
        """Wrap unparseable model output as plain prose."""
        result = cls(response=raw)
        result._fallback = True
        return result

    @property
    def is_fallback(self) -> bool:
        return self._fallback

    @property
    def paragraphs(self) -> list[str]:
        return [p for p in self.response.split("\n") if p.strip()]

    def to_json(self) -> str:
        """Serialise with wire (camelCase) names, omitting absent fields."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


# ── Parsing ──────────────────────────────────────────────────────────


def validate_assistant_response(raw: str) -> StructuredAssistantResponse:
    """Strictly parse *raw*; raise ``MalformedResponseShape`` on any mismatch."""
    try:
        return StructuredAssistantResponse.model_validate_json(raw)
    except ValidationError as exc:
        raise MalformedResponseShape(
            f"Reply does not match the response contract ({exc.error_count()} errors)"
        ) from exc


def parse_assistant_response(raw: str) -> StructuredAssistantResponse:
    """Parse *raw* into the contract, falling back to plain prose.  Never raises."""
    try:
        return validate_assistant_response(raw)
    except MalformedResponseShape as exc:
        logger.debug("Falling back to plain-text reply: %s", exc)
        metrics.record_degradation("malformed_response")
        return StructuredAssistantResponse.fallback(raw)


async def collect_stream(chunks: AsyncIterable[str]) -> StructuredAssistantResponse:
    """Drain a text stream completely, then parse the assembled reply."""
    parts: list[str] = []
    async for chunk in chunks:
        parts.append(chunk)
    return parse_assistant_response("".join(parts))


# ── Plain-text rendering ─────────────────────────────────────────────


def render_text(reply: StructuredAssistantResponse) -> str:
    """Lay the contract out as terminal-friendly text."""
    if reply.is_fallback:
        return reply.response

    blocks: list[str] = []
    if reply.relevant_sources:
        lines = ["Relevant Sources:"]
        for source in reply.relevant_sources:
            lines.append(f"  - {source.title} ({source.type}): {source.relevance}")
        blocks.append("\n".join(lines))

    blocks.append("\n\n".join(reply.paragraphs) or reply.response)

    if reply.suggested_resources:
        lines = ["Suggested Resources:"]
        lines.extend(f"  > {title}" for title in reply.suggested_resources)
        blocks.append("\n".join(lines))

    if reply.learning_check:
        check = reply.learning_check
        lines = ["Quick Learning Check:", f"  {check.question}"]
        for number, option in enumerate(check.options, start=1):
            lines.append(f"    {number}) {option}")
        blocks.append("\n".join(lines))

    return "\n\n".join(blocks)
