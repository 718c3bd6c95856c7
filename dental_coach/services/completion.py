"""Streaming client for the hosted language model (Claude via LangChain).

The client is deliberately thin: one streamed call per chat turn, no retries
(those belong to the transport), and every upstream failure surfaces as
``CompletionServiceError``.  Cancellation is not an error: when the HTTP
client disconnects, Starlette closes the generator, which closes the
upstream stream with it.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AnyMessage

from dental_coach.config import (
    ANTHROPIC_API_KEY,
    COMPLETION_TIMEOUT_SECONDS,
    MAX_OUTPUT_TOKENS,
    MODEL_NAME,
    TEMPERATURE,
    TOP_K,
    TOP_P,
)
from dental_coach.errors import CompletionServiceError
from dental_coach.services.metrics import metrics

logger = logging.getLogger(__name__)


def _build_llm() -> ChatAnthropic:
    """Build the coach LLM from configuration."""
    kwargs = {}
    if TOP_P is not None:
        kwargs["top_p"] = TOP_P
    if TOP_K is not None:
        kwargs["top_k"] = TOP_K
    return ChatAnthropic(
        model=MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=TEMPERATURE,
        max_tokens=MAX_OUTPUT_TOKENS,
        timeout=COMPLETION_TIMEOUT_SECONDS,
        max_retries=0,
        **kwargs,
    )


def _chunk_text(content) -> str:
    """Extract text from a chunk's content (a string or a list of blocks)."""
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


class CompletionClient:
    """Streams completions from a LangChain chat model."""

    def __init__(self, llm: BaseChatModel, *, service: str = "anthropic"):
        self._llm = llm
        self._service = service

    async def stream(self, messages: Sequence[AnyMessage]) -> AsyncIterator[str]:
        """Yield text fragments as the model produces them."""
        t0 = time.perf_counter()
        chars = 0
        try:
            async with aclosing(self._llm.astream(list(messages))) as upstream:
                async for chunk in upstream:
                    text = _chunk_text(chunk.content)
                    if text:
                        chars += len(text)
                        yield text
        except Exception as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            metrics.record_failure(
                self._service, "chat_stream",
                error_type=type(exc).__name__, latency_ms=elapsed,
            )
            raise CompletionServiceError(
                f"Completion stream failed: {type(exc).__name__}",
                error_type=type(exc).__name__,
            ) from exc

        elapsed = (time.perf_counter() - t0) * 1000
        metrics.record_success(self._service, "chat_stream", latency_ms=elapsed)
        logger.debug("Completion streamed %d chars in %.0fms", chars, elapsed)

    async def complete(self, messages: Sequence[AnyMessage]) -> str:
        """Drain ``stream`` into one string."""
        parts = [text async for text in self.stream(messages)]
        return "".join(parts)


def build_completion_client() -> CompletionClient:
    return CompletionClient(_build_llm())
