"""Shared test helpers."""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

from httpx import AsyncClient

from arbor.models import (
    ConversationCreatedPayload,
    EventEnvelope,
    Message,
    MessageCreatedPayload,
)

_BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


def make_message(
    message_id: str,
    parent_id: str | None = None,
    *,
    role: str = "user",
    content: str | None = None,
    depth: int = 0,
    conversation_id: str = "conv1",
    minute: int = 0,
) -> Message:
    """Build a Message with predictable defaults."""
    return Message(
        id=message_id,
        conversation_id=conversation_id,
        parent_message_id=parent_id,
        role=role,
        content=content if content is not None else f"content of {message_id}",
        depth=depth,
        created_at=_BASE_TIME + timedelta(minutes=minute),
    )


def make_sibling_messages() -> list[Message]:
    """root -> m1 -> (m2, m3). m2 and m3 are sibling replies to m1."""
    return [
        make_message("root", None, role="system", depth=0, minute=0),
        make_message("m1", "root", role="user", depth=1, minute=1),
        make_message("m2", "m1", role="assistant", depth=2, minute=2),
        make_message("m3", "m1", role="assistant", depth=2, minute=3),
    ]


def make_branching_messages() -> list[Message]:
    """A two-branch chat.

    root -> user1 -> assistant1 -> user2  -> assistant2
                                 -> user1b -> assistant1b
    """
    return [
        make_message("root", None, role="system", content="You are a helpful assistant.", depth=0, minute=0),
        make_message("user1", "root", role="user", content="Hello!", depth=1, minute=1),
        make_message("assistant1", "user1", role="assistant", content="Hi there!", depth=2, minute=2),
        make_message("user2", "assistant1", role="user", content="Tell me a joke.", depth=3, minute=3),
        make_message(
            "assistant2", "user2", role="assistant",
            content="Why did the chicken cross the road?", depth=4, minute=4,
        ),
        make_message("user1b", "assistant1", role="user", content="What's the weather?", depth=3, minute=5),
        make_message(
            "assistant1b", "user1b", role="assistant",
            content="I don't have access to weather data.", depth=4, minute=6,
        ),
    ]


def make_conversation_created_envelope(
    conversation_id: str | None = None,
    title: str | None = "Test Conversation",
) -> EventEnvelope:
    return EventEnvelope(
        event_id=str(uuid4()),
        conversation_id=conversation_id or str(uuid4()),
        timestamp=datetime.now(UTC),
        device_id="test",
        event_type="ConversationCreated",
        payload=ConversationCreatedPayload(title=title).model_dump(),
    )


def make_message_created_envelope(
    conversation_id: str,
    message_id: str | None = None,
    parent_message_id: str | None = None,
    role: str = "user",
    content: str = "Hello",
    depth: int = 0,
    **payload_overrides: Any,
) -> EventEnvelope:
    payload = MessageCreatedPayload(
        message_id=message_id or str(uuid4()),
        parent_message_id=parent_message_id,
        role=role,
        content=content,
        depth=depth,
        **payload_overrides,
    )
    return EventEnvelope(
        event_id=str(uuid4()),
        conversation_id=conversation_id,
        timestamp=datetime.now(UTC),
        device_id="test",
        event_type="MessageCreated",
        payload=payload.model_dump(),
    )


# -- API-level helpers --


async def create_test_conversation(
    client: AsyncClient,
    title: str = "Test Conversation",
    system_prompt: str | None = None,
) -> dict:
    """Create a conversation via the API and return the response JSON."""
    body: dict = {"title": title}
    if system_prompt is not None:
        body["system_prompt"] = system_prompt
    resp = await client.post("/api/conversations", json=body)
    assert resp.status_code == 201
    return resp.json()


async def post_reply(
    client: AsyncClient,
    conversation_id: str,
    parent_message_id: str,
    content: str,
    role: str = "user",
) -> dict:
    resp = await client.post("/api/messages", json={
        "conversation_id": conversation_id,
        "parent_message_id": parent_message_id,
        "role": role,
        "content": content,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


async def create_branching_conversation(client: AsyncClient) -> dict:
    """Create root -> A -> B and root -> A -> C via the API.

    Returns {"conversation_id": str, "ids": {"root", "A", "B", "C"}}.
    """
    conversation = await create_test_conversation(client, title="Branching")
    conversation_id = conversation["id"]
    root_id = conversation["messages"][0]["id"]

    a = await post_reply(client, conversation_id, root_id, "Message A")
    b = await post_reply(client, conversation_id, a["id"], "Message B (branch 1)", role="assistant")
    c = await post_reply(client, conversation_id, a["id"], "Message C (branch 2)", role="assistant")

    return {
        "conversation_id": conversation_id,
        "ids": {"root": root_id, "A": a["id"], "B": b["id"], "C": c["id"]},
    }
