"""Admin endpoints for the knowledge base and the resource library."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from dental_coach.api.auth import require_user
from dental_coach.api.schemas import (
    KnowledgeCreate,
    KnowledgeOut,
    KnowledgeUpdate,
    MessageResponse,
    ResourceCreate,
    ResourceOut,
)
from dental_coach.errors import KnowledgeEntryNotFound
from dental_coach.services.knowledge_store import KnowledgeStore, ResourceStore

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_user)])


def _state_attr(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=503, detail="The service is still starting up.")
    return value


def _knowledge(request: Request) -> KnowledgeStore:
    return _state_attr(request, "knowledge_store")


def _resources(request: Request) -> ResourceStore:
    return _state_attr(request, "resource_store")


def _not_found(exc: KnowledgeEntryNotFound) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Knowledge entry {exc.entry_id} not found")


# ── Knowledge base ──────────────────────────────────────────────────


@router.get("/knowledge", response_model=list[KnowledgeOut])
async def list_knowledge(request: Request, active_only: bool = False):
    """List knowledge entries, newest first."""
    entries = await asyncio.to_thread(_knowledge(request).list_all, active_only=active_only)
    return [KnowledgeOut.model_validate(e) for e in entries]


@router.post("/knowledge", response_model=KnowledgeOut, status_code=201)
async def create_knowledge(
    payload: KnowledgeCreate,
    request: Request,
    user: str = Depends(require_user),
):
    """Add an entry; it is active and used by the coach immediately."""
    entry = await asyncio.to_thread(
        _knowledge(request).create,
        title=payload.title,
        content=payload.content,
        type=payload.type,
        source_url=payload.source_url,
        added_by=user,
    )
    return KnowledgeOut.model_validate(entry)


@router.patch("/knowledge/{entry_id}", response_model=KnowledgeOut)
async def update_knowledge(entry_id: int, payload: KnowledgeUpdate, request: Request):
    """Activate or deactivate (soft-delete) an entry."""
    try:
        entry = await asyncio.to_thread(_knowledge(request).set_active, entry_id, payload.is_active)
    except KnowledgeEntryNotFound as exc:
        raise _not_found(exc) from exc
    return KnowledgeOut.model_validate(entry)


@router.delete("/knowledge/{entry_id}", response_model=MessageResponse)
async def delete_knowledge(entry_id: int, request: Request):
    """Permanently delete an entry."""
    try:
        await asyncio.to_thread(_knowledge(request).delete, entry_id)
    except KnowledgeEntryNotFound as exc:
        raise _not_found(exc) from exc
    return MessageResponse(message="Knowledge entry deleted")


# ── Resources ───────────────────────────────────────────────────────


@router.get("/resources", response_model=list[ResourceOut])
async def list_resources(request: Request):
    resources = await asyncio.to_thread(_resources(request).list_all)
    return [ResourceOut.model_validate(r) for r in resources]


@router.post("/resources", response_model=ResourceOut, status_code=201)
async def create_resource(payload: ResourceCreate, request: Request):
    """Create a resource in ``draft`` status."""
    resource = await asyncio.to_thread(
        _resources(request).create,
        title=payload.title,
        description=payload.description,
        type=payload.type,
        content=payload.content,
    )
    return ResourceOut.model_validate(resource)
