"""FastAPI route definitions for the coach chat API."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from dental_coach.api.auth import require_user
from dental_coach.api.schemas import ChatRequest, HealthResponse
from dental_coach.coach import CoachService
from dental_coach.contract import StructuredAssistantResponse
from dental_coach.errors import CompletionServiceError

logger = logging.getLogger(__name__)

router = APIRouter()

GENERIC_ERROR_DETAIL = "An internal error occurred. Please try again."


def _get_coach(request: Request) -> CoachService:
    """Retrieve the coach service created during the FastAPI lifespan."""
    coach = getattr(request.app.state, "coach", None)
    if coach is None:
        raise HTTPException(
            status_code=503,
            detail="The coach is still starting up. Please try again in a moment.",
        )
    return coach


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse()


@router.post("/chat")
async def chat(
    request: ChatRequest,
    http_request: Request,
    user: str = Depends(require_user),
):
    """Stream the coach's reply as plain text.

    The assembled body is expected to parse as a
    ``StructuredAssistantResponse``.  The first chunk is awaited before the
    response starts, so a completion failure up front still becomes a clean
    500; a failure after streaming has begun can only end the stream early.
    """
    coach = _get_coach(http_request)
    request_id = getattr(http_request.state, "request_id", "?")
    logger.info("[%s] Chat turn from %s (%d messages)", request_id, user, len(request.messages))

    chunks = coach.stream_reply(request.history())
    try:
        first = await anext(chunks, "")
    except CompletionServiceError as e:
        logger.exception("[%s] Completion service failed", request_id)
        raise HTTPException(status_code=500, detail=GENERIC_ERROR_DETAIL) from e
    except Exception as e:
        logger.exception("[%s] Error processing chat request", request_id)
        raise HTTPException(status_code=500, detail=GENERIC_ERROR_DETAIL) from e

    async def body():
        try:
            if first:
                yield first
            async for text in chunks:
                yield text
        except CompletionServiceError:
            logger.exception("[%s] Completion stream broke after the response started", request_id)
        finally:
            await chunks.aclose()

    return StreamingResponse(body(), media_type="text/plain; charset=utf-8")


@router.post(
    "/chat/structured",
    response_model=StructuredAssistantResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def chat_structured(
    request: ChatRequest,
    http_request: Request,
    user: str = Depends(require_user),
):
    """Return the coach's reply already parsed into the response contract."""
    coach = _get_coach(http_request)
    request_id = getattr(http_request.state, "request_id", "?")
    logger.info("[%s] Structured chat turn from %s", request_id, user)

    try:
        reply = await coach.reply(request.history())
    except Exception as e:
        logger.exception("[%s] Error processing chat request", request_id)
        raise HTTPException(status_code=500, detail=GENERIC_ERROR_DETAIL) from e

    if reply.is_fallback:
        logger.info("[%s] Reply did not match the contract; returned as plain text", request_id)
    return reply
