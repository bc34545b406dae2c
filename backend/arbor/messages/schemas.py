"""Request and response schemas for message endpoints."""

from pydantic import BaseModel, Field

from arbor.models import Role


class CreateMessageRequest(BaseModel):
    """A reply to an existing message. Roots are only created with a conversation."""

    conversation_id: str = Field(min_length=1)
    parent_message_id: str = Field(min_length=1)
    role: Role
    content: str = Field(min_length=1)


class PatchMessageRequest(BaseModel):
    content: str


class ContextMessage(BaseModel):
    role: str
    content: str
