"""Canonical data structures and event types for Arbor.

Defined once here, referenced everywhere else. A Message is the unit of a
conversation tree; event payloads carry the type-specific content of each
event and the EventEnvelope wraps them with metadata.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

Role = Literal["system", "user", "assistant"]

# ---------------------------------------------------------------------------
# Canonical data structures
# ---------------------------------------------------------------------------


class Message(BaseModel):
    """One message in a conversation tree.

    Every field except ``content`` is frozen once the model is created.
    ``content`` stays mutable so streamed replies can be patched in place.
    """

    id: str = Field(frozen=True)
    conversation_id: str = Field(frozen=True)
    parent_message_id: str | None = Field(default=None, frozen=True)
    role: Role = Field(frozen=True)
    content: str
    depth: int = Field(default=0, ge=0, frozen=True)
    created_at: datetime = Field(frozen=True)


class Conversation(BaseModel):
    id: str
    title: str | None = None
    created_at: datetime
    updated_at: datetime


class SamplingParams(BaseModel):
    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int = 2048
    stop_sequences: list[str] | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None


# ---------------------------------------------------------------------------
# Event payloads, one per event type
# ---------------------------------------------------------------------------


class ConversationCreatedPayload(BaseModel):
    title: str | None = None


class ConversationTitleUpdatedPayload(BaseModel):
    old_title: str | None = None
    new_title: str | None = None


class ConversationDeletedPayload(BaseModel):
    reason: str | None = None


class MessageCreatedPayload(BaseModel):
    message_id: str
    parent_message_id: str | None = None
    role: Role
    content: str
    depth: int = 0

    # Generation metadata (null for user/system messages)
    model: str | None = None
    provider: str | None = None


class MessageContentUpdatedPayload(BaseModel):
    message_id: str
    new_content: str


# ---------------------------------------------------------------------------
# Event type registry
# ---------------------------------------------------------------------------

EVENT_TYPES: dict[str, type[BaseModel]] = {
    "ConversationCreated": ConversationCreatedPayload,
    "ConversationTitleUpdated": ConversationTitleUpdatedPayload,
    "ConversationDeleted": ConversationDeletedPayload,
    "MessageCreated": MessageCreatedPayload,
    "MessageContentUpdated": MessageContentUpdatedPayload,
}


# ---------------------------------------------------------------------------
# Event envelope
# ---------------------------------------------------------------------------


class EventEnvelope(BaseModel):
    """Wraps every event with metadata. Stored in the events table."""

    event_id: str
    conversation_id: str
    timestamp: datetime
    device_id: str = "local"
    event_type: str
    payload: dict[str, Any]
    sequence_num: int | None = None  # assigned by DB on insert

    def typed_payload(self) -> BaseModel:
        """Deserialize payload into the correct Pydantic model based on event_type."""
        payload_cls = EVENT_TYPES[self.event_type]
        return payload_cls.model_validate(self.payload)
