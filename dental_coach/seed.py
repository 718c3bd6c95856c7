"""Seed the knowledge base from a markdown file.

Each ``### Heading`` becomes one ``text`` entry whose content is the body
under it, so an existing FAQ or playbook document can be imported in one go.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from dental_coach.models import KnowledgeEntry, KnowledgeType
from dental_coach.services.knowledge_store import KnowledgeStore

logger = logging.getLogger(__name__)

_HEADING = re.compile(r"^###\s+(.+?)\s*$", re.MULTILINE)


def split_into_sections(markdown: str) -> list[dict[str, str]]:
    """Split markdown into ``{"heading", "body"}`` pairs on ``###`` headings.

    Text before the first heading is ignored, as are sections with an
    empty body.  Trailing ``---`` rules are stripped from bodies.
    """
    parts = _HEADING.split(markdown)
    sections: list[dict[str, str]] = []
    # parts[0] is the preamble, then alternating heading/body pairs
    for i in range(1, len(parts), 2):
        heading = parts[i].strip()
        body = parts[i + 1] if i + 1 < len(parts) else ""
        body = re.sub(r"\n-{3,}\s*$", "", body.strip()).strip()
        if body:
            sections.append({"heading": heading, "body": body})
    return sections


def seed_from_markdown(store: KnowledgeStore, path: Path, *, added_by: str) -> list[KnowledgeEntry]:
    """Create one knowledge entry per section of *path*, in document order."""
    sections = split_into_sections(path.read_text(encoding="utf-8"))
    if not sections:
        logger.warning("No ### sections found in %s; nothing imported", path)
        return []

    entries = [
        store.create(
            title=section["heading"],
            content=section["body"],
            type=KnowledgeType.TEXT,
            added_by=added_by,
        )
        for section in sections
    ]
    logger.info("Imported %d knowledge entries from %s", len(entries), path)
    return entries
