"""State projector: projects events into materialized tables.

The read side of the CQRS pattern. Conversations and messages are rebuilt
from the event log into the ``conversations`` and ``messages`` tables, and
every read the rest of the app performs goes through this class.
"""

import logging
from collections.abc import Awaitable, Callable

from arbor.db.connection import Database
from arbor.models import (
    Conversation,
    ConversationCreatedPayload,
    ConversationTitleUpdatedPayload,
    EventEnvelope,
    Message,
    MessageContentUpdatedPayload,
    MessageCreatedPayload,
)

logger = logging.getLogger(__name__)


class StateProjector:
    """Projects events into materialized SQL tables (conversations, messages)."""

    def __init__(self, db: Database) -> None:
        self._db = db
        self._handlers: dict[str, Callable[[EventEnvelope], Awaitable[None]]] = {
            "ConversationCreated": self._handle_conversation_created,
            "ConversationTitleUpdated": self._handle_conversation_title_updated,
            "ConversationDeleted": self._handle_conversation_deleted,
            "MessageCreated": self._handle_message_created,
            "MessageContentUpdated": self._handle_message_content_updated,
        }

    async def project(self, events: list[EventEnvelope]) -> None:
        """Project a batch of events into materialized tables."""
        for event in events:
            handler = self._handlers.get(event.event_type)
            if handler is None:
                logger.warning("No projection for event type %r, skipping", event.event_type)
                continue
            await handler(event)

    # -- Reads --

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        row = await self._db.fetchone(
            "SELECT * FROM conversations WHERE conversation_id = ?", (conversation_id,)
        )
        if row is None:
            return None
        return self._row_to_conversation(row)

    async def list_conversations(self) -> list[tuple[Conversation, int]]:
        """All conversations, newest first, each with its message count."""
        rows = await self._db.fetchall(
            """
            SELECT c.*, COUNT(m.message_id) AS message_count
            FROM conversations c
            LEFT JOIN messages m ON m.conversation_id = c.conversation_id
            GROUP BY c.conversation_id
            ORDER BY c.created_at DESC, c.rowid DESC
            """
        )
        return [(self._row_to_conversation(row), row["message_count"]) for row in rows]

    async def get_message(self, message_id: str) -> Message | None:
        row = await self._db.fetchone(
            "SELECT * FROM messages WHERE message_id = ?", (message_id,)
        )
        if row is None:
            return None
        return self._row_to_message(row)

    async def get_messages(self, conversation_id: str) -> list[Message]:
        """Projected messages for a conversation, ordered by creation time."""
        rows = await self._db.fetchall(
            "SELECT * FROM messages WHERE conversation_id = ? ORDER BY created_at, rowid",
            (conversation_id,),
        )
        return [self._row_to_message(row) for row in rows]

    # -- Handlers --

    async def _handle_conversation_created(self, event: EventEnvelope) -> None:
        payload = ConversationCreatedPayload.model_validate(event.payload)
        timestamp = event.timestamp.isoformat()
        await self._db.execute(
            """
            INSERT OR REPLACE INTO conversations
                (conversation_id, title, created_at, updated_at)
            VALUES (?, ?, ?, ?)
            """,
            (event.conversation_id, payload.title, timestamp, timestamp),
        )

    async def _handle_conversation_title_updated(self, event: EventEnvelope) -> None:
        payload = ConversationTitleUpdatedPayload.model_validate(event.payload)
        await self._db.execute(
            "UPDATE conversations SET title = ?, updated_at = ? WHERE conversation_id = ?",
            (payload.new_title, event.timestamp.isoformat(), event.conversation_id),
        )

    async def _handle_conversation_deleted(self, event: EventEnvelope) -> None:
        """Drop the conversation and all its messages in one commit."""
        async with self._db.transaction() as conn:
            await conn.execute(
                "DELETE FROM messages WHERE conversation_id = ?", (event.conversation_id,)
            )
            await conn.execute(
                "DELETE FROM conversations WHERE conversation_id = ?",
                (event.conversation_id,),
            )

    async def _handle_message_created(self, event: EventEnvelope) -> None:
        payload = MessageCreatedPayload.model_validate(event.payload)
        await self._db.execute(
            """
            INSERT OR REPLACE INTO messages
                (message_id, conversation_id, parent_message_id, role, content,
                 depth, model, provider, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                payload.message_id,
                event.conversation_id,
                payload.parent_message_id,
                payload.role,
                payload.content,
                payload.depth,
                payload.model,
                payload.provider,
                event.timestamp.isoformat(),
            ),
        )

    async def _handle_message_content_updated(self, event: EventEnvelope) -> None:
        payload = MessageContentUpdatedPayload.model_validate(event.payload)
        await self._db.execute(
            "UPDATE messages SET content = ? WHERE message_id = ?",
            (payload.new_content, payload.message_id),
        )

    @staticmethod
    def _row_to_conversation(row) -> Conversation:
        return Conversation(
            id=row["conversation_id"],
            title=row["title"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _row_to_message(row) -> Message:
        return Message(
            id=row["message_id"],
            conversation_id=row["conversation_id"],
            parent_message_id=row["parent_message_id"],
            role=row["role"],
            content=row["content"],
            depth=row["depth"],
            created_at=row["created_at"],
        )
