"""Request schema for the chat endpoint."""

from pydantic import BaseModel

from arbor.models import SamplingParams


class ChatRequest(BaseModel):
    """Request body for POST /api/chat. Provider and model fall back to settings."""

    message_id: str
    provider: str | None = None
    model: str | None = None
    sampling_params: SamplingParams | None = None
    stream: bool = False
