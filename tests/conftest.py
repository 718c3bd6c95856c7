"""Shared test fixtures for the Dental Coach test suite."""

from __future__ import annotations

import os

import pytest
from langchain_core.messages import AIMessageChunk


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    This runs before any imports, so config.py won't fail on module load.
    """
    os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key-123")
    os.environ.setdefault("COACH_API_TOKENS", "tester:test-token,admin:admin-token")
    os.environ.setdefault("DATABASE_URL", "sqlite://")
    os.environ["METRICS_ENABLED"] = "false"


class FakeChatModel:
    """Stands in for ChatAnthropic: streams fixed chunks, optionally failing.

    ``fail_after`` is the number of chunks to emit before raising ``error``;
    ``None`` means never fail.
    """

    def __init__(self, chunks=(), *, fail_after=None, error=None):
        self.chunks = list(chunks)
        self.fail_after = fail_after
        self.error = error or RuntimeError("upstream 529 overloaded")
        self.calls = []
        self.closed = False

    async def astream(self, messages):
        self.calls.append(list(messages))
        try:
            for i, text in enumerate(self.chunks):
                if self.fail_after is not None and i >= self.fail_after:
                    raise self.error
                yield AIMessageChunk(content=text)
            if self.fail_after is not None and self.fail_after >= len(self.chunks):
                raise self.error
        finally:
            self.closed = True


@pytest.fixture
def fake_llm_factory():
    return FakeChatModel


@pytest.fixture
def engine():
    from dental_coach.db import create_db_engine, init_database

    eng = create_db_engine("sqlite://")
    init_database(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    from dental_coach.db import create_session_factory

    return create_session_factory(engine)


@pytest.fixture
def store(session_factory):
    from dental_coach.services.knowledge_store import KnowledgeStore

    return KnowledgeStore(session_factory)


@pytest.fixture
def resource_store(session_factory):
    from dental_coach.services.knowledge_store import ResourceStore

    return ResourceStore(session_factory)


@pytest.fixture
def insurance_entry(store):
    return store.create(
        title="Insurance Basics",
        content="Verify every patient's coverage 48 hours before the visit.",
        type="text",
        added_by="demo-admin",
    )
