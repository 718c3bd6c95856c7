"""FastAPI server for the Dental Coach.

Run with:
    uv run uvicorn dental_coach.server:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from dental_coach.api.knowledge_routes import router as knowledge_router
from dental_coach.api.routes import router
from dental_coach.coach import CoachService
from dental_coach.config import (
    CORS_ORIGINS,
    DATABASE_URL,
    KNOWLEDGE_CONTEXT_MAX_CHARS,
    SERVER_HOST,
    SERVER_PORT,
    SQL_ECHO,
)
from dental_coach.context import ContextBuilder
from dental_coach.db import create_db_engine, create_session_factory, init_database
from dental_coach.services.completion import build_completion_client
from dental_coach.services.knowledge_store import KnowledgeStore, ResourceStore

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: initialise / tear-down shared resources ────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Open the database and build the coach once; dispose on shutdown.

    The store and completion client are handed to the components
    explicitly instead of living as module-level singletons.
    """
    engine = create_db_engine(DATABASE_URL, echo=SQL_ECHO)
    init_database(engine)
    session_factory = create_session_factory(engine)

    knowledge_store = KnowledgeStore(session_factory)
    application.state.knowledge_store = knowledge_store
    application.state.resource_store = ResourceStore(session_factory)
    application.state.coach = CoachService(
        ContextBuilder(knowledge_store, max_chars=KNOWLEDGE_CONTEXT_MAX_CHARS),
        build_completion_client(),
    )
    logger.info("Coach ready.")
    yield
    engine.dispose()
    logger.info("Database engine disposed.")


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title="Dental Coach",
    description=(
        "AI coach for dental practices — answers grounded in the practice's "
        "knowledge base, with suggested resources and learning checks."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Tag every request with an ``X-Request-ID`` for log correlation."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info("[%s] %s %s", request_id, request.method, request.url.path)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ── Register routes ──────────────────────────────────────────────────
app.include_router(router, prefix="/api")
app.include_router(knowledge_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "Dental Coach",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health",
    }


if __name__ == "__main__":
    logger.info("Starting Dental Coach API server on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run(
        "dental_coach.server:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=True,
    )
