"""Request and response schemas for conversation and tree endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field

from arbor.models import Message
from arbor.tree.invariants import TreeAnomaly

# -- Requests --


class CreateConversationRequest(BaseModel):
    title: str | None = None
    # Content of the root system message; settings default when omitted
    system_prompt: str | None = None


class PatchConversationRequest(BaseModel):
    title: str | None = None


# -- Responses --


class MessageResponse(BaseModel):
    id: str
    conversation_id: str
    parent_message_id: str | None = None
    role: str
    content: str
    depth: int
    created_at: datetime
    sibling_index: int = 0
    sibling_count: int = 1

    @classmethod
    def from_message(
        cls, message: Message, *, sibling_index: int = 0, sibling_count: int = 1
    ) -> "MessageResponse":
        return cls(
            **message.model_dump(),
            sibling_index=sibling_index,
            sibling_count=sibling_count,
        )


class ConversationSummary(BaseModel):
    id: str
    title: str | None = None
    created_at: datetime
    updated_at: datetime
    message_count: int = 0


class ConversationDetail(BaseModel):
    id: str
    title: str | None = None
    created_at: datetime
    updated_at: datetime
    messages: list[MessageResponse] = Field(default_factory=list)


class TreeNodeResponse(BaseModel):
    """One node of the flattened tree. The message carries parent and sibling info."""

    message: MessageResponse
    child_ids: list[str] = Field(default_factory=list)


class ConversationTreeResponse(BaseModel):
    """The tree as a pre-order node list, plus what the builder had to leave out."""

    conversation_id: str
    root_id: str | None = None
    nodes: list[TreeNodeResponse] = Field(default_factory=list)
    node_count: int = 0
    leaf_ids: list[str] = Field(default_factory=list)
    dropped_root_ids: list[str] = Field(default_factory=list)
    anomalies: list[TreeAnomaly] = Field(default_factory=list)
