"""SQL-backed knowledge base and resource library.

The chat pipeline only ever calls ``KnowledgeStore.list_active``; the write
methods back the admin endpoints and the markdown seeder.

Every method opens its own short-lived session, so a store instance is safe
to share across threads and requests.  Returned rows are detached from their
session (``expire_on_commit=False``) and can be read after it closes.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from dental_coach.errors import KnowledgeEntryNotFound
from dental_coach.models import KnowledgeEntry, KnowledgeType, Resource
from dental_coach.services.metrics import metrics

logger = logging.getLogger(__name__)


class KnowledgeStore:
    """Read and write ``KnowledgeEntry`` rows."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    # ── Reads ────────────────────────────────────────────────────────

    def list_active(self) -> list[KnowledgeEntry]:
        """Return every active entry in creation order (ties broken by id)."""
        stmt = (
            select(KnowledgeEntry)
            .where(KnowledgeEntry.is_active.is_(True))
            .order_by(KnowledgeEntry.created_at, KnowledgeEntry.id)
        )
        t0 = time.perf_counter()
        try:
            with self._session_factory() as session:
                entries = list(session.scalars(stmt))
        except SQLAlchemyError as exc:
            metrics.record_failure(
                "knowledge_store", "list_active",
                error_type=type(exc).__name__,
                latency_ms=(time.perf_counter() - t0) * 1000,
            )
            raise
        metrics.record_success(
            "knowledge_store", "list_active", latency_ms=(time.perf_counter() - t0) * 1000,
        )
        return entries

    def list_all(self, *, active_only: bool = False) -> list[KnowledgeEntry]:
        """Return entries newest first, as the admin console lists them."""
        stmt = select(KnowledgeEntry).order_by(
            KnowledgeEntry.created_at.desc(), KnowledgeEntry.id.desc(),
        )
        if active_only:
            stmt = stmt.where(KnowledgeEntry.is_active.is_(True))
        with self._session_factory() as session:
            return list(session.scalars(stmt))

    # ── Writes ───────────────────────────────────────────────────────

    def create(
        self,
        *,
        title: str,
        content: str,
        type: KnowledgeType | str = KnowledgeType.TEXT,
        added_by: str,
        source_url: str | None = None,
    ) -> KnowledgeEntry:
        """Insert a new active entry and return it."""
        kind = KnowledgeType(type)
        if not kind.has_source_url:
            source_url = None
        entry = KnowledgeEntry(
            title=title,
            content=content,
            type=kind.value,
            source_url=source_url,
            added_by=added_by,
            is_active=True,
        )
        with self._session_factory() as session, session.begin():
            session.add(entry)
            session.flush()
            session.refresh(entry)
        logger.info("Created knowledge entry %d (%s) by %s", entry.id, title, added_by)
        return entry

    def set_active(self, entry_id: int, active: bool) -> KnowledgeEntry:
        """Activate or soft-delete an entry."""
        with self._session_factory() as session, session.begin():
            entry = session.get(KnowledgeEntry, entry_id)
            if entry is None:
                raise KnowledgeEntryNotFound(entry_id)
            entry.is_active = active
            session.flush()
            session.refresh(entry)
        logger.info("Knowledge entry %d is_active=%s", entry_id, active)
        return entry

    def delete(self, entry_id: int) -> None:
        """Permanently remove an entry.  Irreversible."""
        with self._session_factory() as session, session.begin():
            entry = session.get(KnowledgeEntry, entry_id)
            if entry is None:
                raise KnowledgeEntryNotFound(entry_id)
            session.delete(entry)
        logger.info("Deleted knowledge entry %d", entry_id)


class ResourceStore:
    """Read and write ``Resource`` rows.  New resources start as drafts."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def list_all(self) -> Sequence[Resource]:
        stmt = select(Resource).order_by(Resource.created_at.desc(), Resource.id.desc())
        with self._session_factory() as session:
            return list(session.scalars(stmt))

    def create(self, *, title: str, description: str, type: str, content: str) -> Resource:
        resource = Resource(
            title=title, description=description, type=type, content=content, status="draft",
        )
        with self._session_factory() as session, session.begin():
            session.add(resource)
            session.flush()
            session.refresh(resource)
        logger.info("Created draft resource %d (%s)", resource.id, title)
        return resource
