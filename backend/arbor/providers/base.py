"""Provider contract: what the generation service sends and gets back."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

from pydantic import BaseModel, Field

from arbor.models import SamplingParams


class GenerationRequest(BaseModel):
    """Model, context, and sampling settings for one completion call."""

    model: str
    messages: list[dict[str, str]]
    sampling_params: SamplingParams = Field(default_factory=SamplingParams)


class GenerationResult(BaseModel):
    content: str
    model: str
    finish_reason: str | None = None
    usage: dict[str, int] | None = None
    latency_ms: int | None = None
    raw_response: dict[str, Any] | None = None


class StreamChunk(BaseModel):
    """One streamed event: a text delta, or the final chunk with the full result."""

    type: str  # "message_start", "text_delta", "message_stop"
    text: str = ""
    is_final: bool = False
    result: GenerationResult | None = None
    message_id: str | None = None  # id of the stored reply, set by GenerationService


class LLMProvider(ABC):
    """Abstract interface for chat-completion backends."""

    suggested_models: list[str] = []

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key, e.g. 'openrouter'."""
        ...

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> GenerationResult:
        ...

    @abstractmethod
    def generate_stream(
        self, request: GenerationRequest
    ) -> AsyncIterator[StreamChunk]:
        """Yield text deltas, then one final chunk carrying the full result."""
        ...
