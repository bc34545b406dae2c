"""Generation service: assembles context, calls the model, stores the reply."""

import asyncio
import logging
from collections.abc import AsyncIterator

from arbor.conversations.schemas import MessageResponse
from arbor.conversations.service import MessageNotFoundError
from arbor.generation.context import to_model_messages
from arbor.messages.service import MessageService
from arbor.models import Message, SamplingParams
from arbor.providers.base import GenerationRequest, LLMProvider, StreamChunk

logger = logging.getLogger(__name__)


class GenerationService:
    """Replies to a message with a model completion, stored as its child."""

    def __init__(
        self,
        messages: MessageService,
        *,
        default_provider: str = "openrouter",
        default_model: str = "openai/gpt-4o",
    ) -> None:
        self._messages = messages
        self.default_provider = default_provider
        self.default_model = default_model

    async def generate(
        self,
        message_id: str,
        provider: LLMProvider,
        *,
        model: str | None = None,
        sampling_params: SamplingParams | None = None,
    ) -> MessageResponse:
        """Generate a non-streaming reply to message_id and store it."""
        anchor, request = await self._prepare(message_id, model, sampling_params)
        result = await provider.generate(request)
        reply = await self._messages.append_reply(
            anchor,
            role="assistant",
            content=result.content,
            model=result.model,
            provider=provider.name,
        )
        return MessageResponse.from_message(reply)

    async def generate_stream(
        self,
        message_id: str,
        provider: LLMProvider,
        *,
        model: str | None = None,
        sampling_params: SamplingParams | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Stream a reply to message_id.

        The reply is stored with empty content before the first delta, so
        the first chunk can carry its id. Its content is written once the
        stream ends, or with whatever arrived if the provider fails or the
        consumer closes the stream early.
        """
        anchor, request = await self._prepare(message_id, model, sampling_params)
        reply = await self._messages.append_reply(
            anchor,
            role="assistant",
            content="",
            model=request.model,
            provider=provider.name,
        )
        yield StreamChunk(type="message_start", message_id=reply.id)

        parts: list[str] = []
        completed = False
        try:
            async for chunk in provider.generate_stream(request):
                if chunk.is_final and chunk.result is not None:
                    await self._messages.update_content(reply.id, chunk.result.content)
                    completed = True
                    yield chunk.model_copy(update={"message_id": reply.id})
                    return
                if chunk.text:
                    parts.append(chunk.text)
                yield chunk
        finally:
            # Provider error or the consumer went away before the final chunk
            if not completed:
                logger.warning("Stream for reply %s ended early; keeping partial content", reply.id)
                await asyncio.shield(self._messages.update_content(reply.id, "".join(parts)))

    async def _prepare(
        self,
        message_id: str,
        model: str | None,
        sampling_params: SamplingParams | None,
    ) -> tuple[Message, GenerationRequest]:
        """Load the anchor message and build the provider request from its context."""
        context = await self._messages.build_context(message_id)
        if not context:
            raise MessageNotFoundError(message_id)
        request = GenerationRequest(
            model=model or self.default_model,
            messages=to_model_messages(context),
            sampling_params=sampling_params or SamplingParams(),
        )
        return context[-1], request
