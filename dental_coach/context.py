"""Knowledge Context Builder.

Turns the active knowledge entries into the grounding block that is pasted
verbatim into the coach's instructions.  There is no retrieval step: every
active entry goes in, one stanza each, in store order (creation order).

Size guard
----------
A large knowledge base can outgrow the model's input window.  When the
stanzas exceed ``max_chars`` the most recently *updated* entries are kept
first, whole entries are dropped (never truncated mid-text), the survivors
are still emitted in store order, and a trailing note tells the model how
many entries were left out.  The note counts against ``max_chars``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError

from dental_coach.errors import ContextUnavailable
from dental_coach.models import KnowledgeEntry
from dental_coach.services.knowledge_store import KnowledgeStore
from dental_coach.services.metrics import metrics

logger = logging.getLogger(__name__)

ENTRY_DELIMITER = "\n\n---\n\n"
OMISSION_NOTE = (
    "\n\n[{count} least recently updated knowledge entries were omitted"
    " to fit the context limit.]"
)
_EPOCH = datetime.min.replace(tzinfo=UTC)


@dataclass(frozen=True)
class GroundingContext:
    """The serialised knowledge block plus what went into it."""

    text: str
    entry_count: int
    omitted_count: int = 0
    available: bool = True

    @property
    def is_empty(self) -> bool:
        return not self.text

    @classmethod
    def unavailable(cls) -> GroundingContext:
        return cls(text="", entry_count=0, available=False)


def format_entry(entry: KnowledgeEntry) -> str:
    """Render one entry as a stanza: header, optional source, content."""
    lines = [f"### {entry.title} ({entry.type})"]
    if entry.source_url:
        lines.append(f"Source: {entry.source_url}")
    lines.append(entry.content)
    return "\n".join(lines)


def _recency(entry: KnowledgeEntry) -> datetime:
    stamp = entry.updated_at or entry.created_at
    if stamp is None:
        return _EPOCH
    # SQLite hands back naive datetimes even for timezone-aware columns
    return stamp if stamp.tzinfo else stamp.replace(tzinfo=UTC)


def _select_within_budget(stanzas: list[str], entries: Sequence[KnowledgeEntry], max_chars: int) -> set[int]:
    """Pick stanza indexes to keep, most recently updated first."""
    by_recency = sorted(
        range(len(entries)),
        key=lambda i: (_recency(entries[i]), i),
        reverse=True,
    )
    keep: set[int] = set()
    used = 0
    for i in by_recency:
        cost = len(stanzas[i]) + (len(ENTRY_DELIMITER) if keep else 0)
        if used + cost > max_chars:
            continue
        keep.add(i)
        used += cost
    return keep


def build_knowledge_context(
    entries: Sequence[KnowledgeEntry],
    max_chars: int | None = None,
) -> GroundingContext:
    """Serialise *entries* (already filtered to active, in store order)."""
    stanzas = [format_entry(entry) for entry in entries]
    total = sum(len(s) for s in stanzas) + len(ENTRY_DELIMITER) * max(len(stanzas) - 1, 0)

    if max_chars is None or total <= max_chars:
        return GroundingContext(text=ENTRY_DELIMITER.join(stanzas), entry_count=len(stanzas))

    # Room for the note is reserved up front, sized for the largest possible count
    reserve = len(OMISSION_NOTE.format(count=len(stanzas)))
    keep = _select_within_budget(stanzas, entries, max(max_chars - reserve, 0))
    omitted = len(stanzas) - len(keep)
    logger.warning(
        "Knowledge context is %d chars (limit %d); omitting %d of %d entries",
        total, max_chars, omitted, len(stanzas),
    )
    text = ENTRY_DELIMITER.join(s for i, s in enumerate(stanzas) if i in keep)
    note = OMISSION_NOTE.format(count=omitted)
    text = text + note if text else note.lstrip()
    return GroundingContext(text=text, entry_count=len(keep), omitted_count=omitted)


class ContextBuilder:
    """Reads the knowledge store and builds a ``GroundingContext`` per request.

    Nothing is cached: each call re-reads the store, so admin edits show up
    on the very next chat turn.
    """

    def __init__(self, store: KnowledgeStore, max_chars: int | None = None):
        self._store = store
        self._max_chars = max_chars

    def build(self) -> GroundingContext:
        """Build the grounding block, or raise ``ContextUnavailable``."""
        try:
            entries = self._store.list_active()
        except SQLAlchemyError as exc:
            raise ContextUnavailable("Knowledge store is unreachable") from exc
        return build_knowledge_context(entries, self._max_chars)

    def build_or_degrade(self) -> GroundingContext:
        """Like ``build`` but falls back to an empty, unavailable context."""
        try:
            return self.build()
        except ContextUnavailable:
            logger.exception("Knowledge context unavailable; continuing without grounding")
            metrics.record_degradation("context_unavailable")
            return GroundingContext.unavailable()
