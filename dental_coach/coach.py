"""Per-request chat pipeline: grounding → prompt → streamed completion.

``CoachService`` keeps no conversation state; the caller sends the whole
history on every turn, with the new user message last.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import aclosing

from langchain_core.messages import AnyMessage

from dental_coach.context import ContextBuilder
from dental_coach.contract import StructuredAssistantResponse, collect_stream
from dental_coach.prompts import build_messages
from dental_coach.services.completion import CompletionClient

logger = logging.getLogger(__name__)


class CoachService:
    """Composes the context builder and the completion client."""

    def __init__(self, context_builder: ContextBuilder, completion: CompletionClient):
        self._context_builder = context_builder
        self._completion = completion

    async def prepare(self, history: Sequence[Mapping[str, str]]) -> list[AnyMessage]:
        """Build the message list for *history*.

        The store read is blocking, so it runs in a worker thread to keep
        the event loop free for other requests.
        """
        context = await asyncio.to_thread(self._context_builder.build_or_degrade)
        logger.debug(
            "Grounding: %d entries (%d omitted, available=%s)",
            context.entry_count, context.omitted_count, context.available,
        )
        return build_messages(context, history)

    async def stream_reply(self, history: Sequence[Mapping[str, str]]) -> AsyncIterator[str]:
        """Stream the raw reply text.  Raises ``CompletionServiceError``."""
        messages = await self.prepare(history)
        async with aclosing(self._completion.stream(messages)) as chunks:
            async for text in chunks:
                yield text

    async def reply(self, history: Sequence[Mapping[str, str]]) -> StructuredAssistantResponse:
        """Return the fully drained reply, parsed into the contract."""
        return await collect_stream(self.stream_reply(history))
