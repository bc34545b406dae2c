"""Message store: the async point-query facility the tree engine reads from.

The tree engine only needs four operations, so it depends on the abstract
MessageStore. SqliteMessageStore implements them on the event log and
its projection.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from uuid import uuid4

import aiosqlite

from arbor.events.projector import StateProjector
from arbor.events.store import EventStore
from arbor.models import (
    EventEnvelope,
    Message,
    MessageContentUpdatedPayload,
    MessageCreatedPayload,
)


class MessageStore(ABC):
    """Abstract, possibly failing, async store of parent-linked messages."""

    @abstractmethod
    async def get_message(self, message_id: str) -> Message | None:
        """Fetch one message. Returns None if it does not exist."""
        ...

    @abstractmethod
    async def get_messages(self, conversation_id: str) -> list[Message]:
        """Fetch every message of a conversation."""
        ...

    @abstractmethod
    async def insert_message(
        self, message: Message, *, model: str | None = None, provider: str | None = None
    ) -> Message:
        ...

    @abstractmethod
    async def update_content(self, message_id: str, content: str) -> Message | None:
        """Replace a message's content. Returns None if it does not exist."""
        ...


class SqliteMessageStore(MessageStore):
    """MessageStore backed by the event store and state projector."""

    def __init__(self, store: EventStore, projector: StateProjector) -> None:
        self._store = store
        self._projector = projector

    async def get_message(self, message_id: str) -> Message | None:
        try:
            return await self._projector.get_message(message_id)
        except aiosqlite.Error as e:
            raise MessageStoreError(f"Failed to fetch message {message_id}") from e

    async def get_messages(self, conversation_id: str) -> list[Message]:
        try:
            return await self._projector.get_messages(conversation_id)
        except aiosqlite.Error as e:
            raise MessageStoreError(
                f"Failed to fetch messages for conversation {conversation_id}"
            ) from e

    async def insert_message(
        self, message: Message, *, model: str | None = None, provider: str | None = None
    ) -> Message:
        payload = MessageCreatedPayload(
            message_id=message.id,
            parent_message_id=message.parent_message_id,
            role=message.role,
            content=message.content,
            depth=message.depth,
            model=model,
            provider=provider,
        )
        event = EventEnvelope(
            event_id=str(uuid4()),
            conversation_id=message.conversation_id,
            timestamp=message.created_at,
            device_id="local",
            event_type="MessageCreated",
            payload=payload.model_dump(),
        )
        await self._append(event)
        return message

    async def update_content(self, message_id: str, content: str) -> Message | None:
        message = await self.get_message(message_id)
        if message is None:
            return None
        payload = MessageContentUpdatedPayload(message_id=message_id, new_content=content)
        event = EventEnvelope(
            event_id=str(uuid4()),
            conversation_id=message.conversation_id,
            timestamp=datetime.now(UTC),
            device_id="local",
            event_type="MessageContentUpdated",
            payload=payload.model_dump(),
        )
        await self._append(event)
        message.content = content
        return message

    async def _append(self, event: EventEnvelope) -> None:
        try:
            await self._store.append(event)
            await self._projector.project([event])
        except aiosqlite.Error as e:
            raise MessageStoreError(f"Failed to record {event.event_type} event") from e


class MessageStoreError(Exception):
    """The underlying storage failed (I/O, locking, integrity)."""
