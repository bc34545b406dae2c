"""FastAPI route for replying to a message with a model completion."""

import json as json_module
import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from arbor.conversations.schemas import MessageResponse
from arbor.conversations.service import MessageNotFoundError
from arbor.generation.schemas import ChatRequest
from arbor.generation.service import GenerationService
from arbor.messages.store import MessageStoreError
from arbor.providers.base import LLMProvider
from arbor.providers.registry import ProviderNotFoundError, get_provider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])


def get_generation_service() -> GenerationService:
    """Dependency placeholder, replaced at app startup."""
    raise RuntimeError("GenerationService not initialized")


@router.post("", status_code=status.HTTP_201_CREATED, response_model=None)
async def chat(
    request: ChatRequest,
    gen_service: GenerationService = Depends(get_generation_service),
) -> MessageResponse | StreamingResponse:
    try:
        provider = get_provider(request.provider or gen_service.default_provider)
    except ProviderNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if request.stream:
        return StreamingResponse(
            _stream_sse(gen_service, provider, request),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    try:
        return await gen_service.generate(
            request.message_id,
            provider,
            model=request.model,
            sampling_params=request.sampling_params,
        )
    except MessageNotFoundError:
        raise HTTPException(
            status_code=404, detail=f"Message not found: {request.message_id}"
        )
    except MessageStoreError:
        logger.exception("Failed to load context for %s", request.message_id)
        raise HTTPException(status_code=503, detail="Failed to build message context")


def _sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json_module.dumps(data)}\n\n"


async def _stream_sse(
    gen_service: GenerationService,
    provider: LLMProvider,
    request: ChatRequest,
) -> AsyncIterator[str]:
    """Async generator that yields SSE-formatted events."""
    try:
        async for chunk in gen_service.generate_stream(
            request.message_id,
            provider,
            model=request.model,
            sampling_params=request.sampling_params,
        ):
            if chunk.type == "message_start":
                yield _sse("message_start", {"type": "message_start", "message_id": chunk.message_id})
            elif chunk.is_final and chunk.result:
                yield _sse("message_stop", {
                    "type": "message_stop",
                    "message_id": chunk.message_id,
                    "content": chunk.result.content,
                    "finish_reason": chunk.result.finish_reason,
                    "usage": chunk.result.usage,
                    "latency_ms": chunk.result.latency_ms,
                })
            elif chunk.text:
                yield _sse("text_delta", {"type": "text_delta", "text": chunk.text})
    except MessageNotFoundError:
        yield _sse("error", {"error": f"Message not found: {request.message_id}"})
    except Exception as e:
        logger.exception("Chat stream failed for %s", request.message_id)
        yield _sse("error", {"error": str(e)})
