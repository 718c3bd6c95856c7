"""SQLAlchemy engine and session factory for the knowledge store."""

from __future__ import annotations

import logging

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base shared by every table."""


def create_db_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine for *url*.

    In-memory SQLite gets a ``StaticPool`` so every session sees the same
    database; other SQLite URLs allow cross-thread use because reads run in
    worker threads.  Server databases get ``pool_pre_ping``.
    """
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)
    return create_engine(url, echo=echo, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_database(engine: Engine) -> None:
    """Create all tables.  Safe to call repeatedly."""
    from dental_coach import models  # noqa: F401 — registers tables on Base

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready (%s)", engine.url.render_as_string(hide_password=True))
