"""Conversation service: conversation CRUD and per-conversation tree sessions."""

import logging
from datetime import UTC, datetime
from uuid import uuid4

from arbor.config import DEFAULT_SYSTEM_PROMPT
from arbor.conversations.schemas import (
    ConversationDetail,
    ConversationSummary,
    ConversationTreeResponse,
    CreateConversationRequest,
    MessageResponse,
    PatchConversationRequest,
    TreeNodeResponse,
)
from arbor.db.connection import Database
from arbor.events.projector import StateProjector
from arbor.events.store import EventStore
from arbor.messages.store import SqliteMessageStore
from arbor.models import (
    ConversationCreatedPayload,
    ConversationDeletedPayload,
    ConversationTitleUpdatedPayload,
    EventEnvelope,
    Message,
)
from arbor.tree.navigator import iter_preorder
from arbor.tree.session import TreeSession

logger = logging.getLogger(__name__)


class ConversationService:
    """Coordinates the event store, projector and tree sessions for conversations.

    One TreeSession is kept per conversation. Appending a message bumps the
    conversation's version and drops its session; the next tree read
    rebuilds it from a fresh snapshot.
    """

    def __init__(self, db: Database, default_system_prompt: str = DEFAULT_SYSTEM_PROMPT) -> None:
        self._store = EventStore(db)
        self._projector = StateProjector(db)
        self._messages = SqliteMessageStore(self._store, self._projector)
        self._default_system_prompt = default_system_prompt
        self._sessions: dict[str, TreeSession] = {}
        self._versions: dict[str, int] = {}

    @property
    def message_store(self) -> SqliteMessageStore:
        return self._messages

    async def create_conversation(
        self, request: CreateConversationRequest
    ) -> ConversationDetail:
        """Create a conversation together with its root system message."""
        conversation_id = str(uuid4())
        now = datetime.now(UTC)

        event = EventEnvelope(
            event_id=str(uuid4()),
            conversation_id=conversation_id,
            timestamp=now,
            device_id="local",
            event_type="ConversationCreated",
            payload=ConversationCreatedPayload(title=request.title).model_dump(),
        )
        await self._store.append(event)
        await self._projector.project([event])

        system_prompt = request.system_prompt
        if system_prompt is None:
            system_prompt = self._default_system_prompt
        await self._messages.insert_message(Message(
            id=str(uuid4()),
            conversation_id=conversation_id,
            parent_message_id=None,
            role="system",
            content=system_prompt,
            depth=0,
            created_at=now,
        ))
        self.note_message_added(conversation_id)
        logger.info("Created conversation %s", conversation_id)

        detail = await self.get_conversation(conversation_id)
        assert detail is not None
        return detail

    async def list_conversations(self) -> list[ConversationSummary]:
        rows = await self._projector.list_conversations()
        return [
            ConversationSummary(
                id=conversation.id,
                title=conversation.title,
                created_at=conversation.created_at,
                updated_at=conversation.updated_at,
                message_count=count,
            )
            for conversation, count in rows
        ]

    async def get_conversation(self, conversation_id: str) -> ConversationDetail | None:
        """Conversation with its flat message list. Returns None if not found."""
        conversation = await self._projector.get_conversation(conversation_id)
        if conversation is None:
            return None
        session = await self.get_session(conversation_id)
        messages = await self._messages.get_messages(conversation_id)
        return ConversationDetail(
            id=conversation.id,
            title=conversation.title,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
            messages=[self._message_response(m, session) for m in messages],
        )

    async def update_conversation(
        self, conversation_id: str, request: PatchConversationRequest
    ) -> ConversationDetail:
        conversation = await self._projector.get_conversation(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)

        if "title" in request.model_fields_set and request.title != conversation.title:
            payload = ConversationTitleUpdatedPayload(
                old_title=conversation.title, new_title=request.title
            )
            event = EventEnvelope(
                event_id=str(uuid4()),
                conversation_id=conversation_id,
                timestamp=datetime.now(UTC),
                device_id="local",
                event_type="ConversationTitleUpdated",
                payload=payload.model_dump(),
            )
            await self._store.append(event)
            await self._projector.project([event])

        detail = await self.get_conversation(conversation_id)
        assert detail is not None
        return detail

    async def delete_conversation(self, conversation_id: str) -> None:
        """Delete a conversation and its messages. The event log keeps the history."""
        conversation = await self._projector.get_conversation(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)

        event = EventEnvelope(
            event_id=str(uuid4()),
            conversation_id=conversation_id,
            timestamp=datetime.now(UTC),
            device_id="local",
            event_type="ConversationDeleted",
            payload=ConversationDeletedPayload().model_dump(),
        )
        await self._store.append(event)
        await self._projector.project([event])
        self._sessions.pop(conversation_id, None)
        self._versions.pop(conversation_id, None)
        logger.info("Deleted conversation %s", conversation_id)

    # -- Tree sessions --

    async def get_session(self, conversation_id: str) -> TreeSession:
        """The conversation's current tree session, rebuilt if messages were added."""
        session = self._sessions.get(conversation_id)
        if session is not None:
            return session

        version = self._versions.get(conversation_id, 0)
        messages = await self._messages.get_messages(conversation_id)
        session = TreeSession.from_messages(messages)
        # A message appended while the snapshot was loading makes it stale
        if self._versions.get(conversation_id, 0) == version:
            self._sessions[conversation_id] = session
        return session

    def note_message_added(self, conversation_id: str) -> None:
        self._versions[conversation_id] = self._versions.get(conversation_id, 0) + 1
        self._sessions.pop(conversation_id, None)

    def note_content_updated(self, conversation_id: str, message_id: str, content: str) -> None:
        """Keep a live session's in-memory message in step with stored content."""
        session = self._sessions.get(conversation_id)
        if session is not None:
            session.update_content(message_id, content)

    async def get_tree(self, conversation_id: str) -> ConversationTreeResponse:
        await self._require_conversation(conversation_id)
        session = await self.get_session(conversation_id)
        return ConversationTreeResponse(
            conversation_id=conversation_id,
            root_id=session.root.id if session.root else None,
            nodes=self._flat_nodes(session),
            node_count=session.node_count,
            leaf_ids=[leaf.id for leaf in session.leaves()],
            dropped_root_ids=session.dropped_root_ids,
            anomalies=session.anomalies,
        )

    async def get_leaves(self, conversation_id: str) -> list[MessageResponse]:
        await self._require_conversation(conversation_id)
        session = await self.get_session(conversation_id)
        return [self._message_response(leaf.message, session) for leaf in session.leaves()]

    async def get_path(self, conversation_id: str, message_id: str) -> list[MessageResponse]:
        """Messages from the root to message_id. Raises if it is not in the tree."""
        await self._require_conversation(conversation_id)
        session = await self.get_session(conversation_id)
        path = session.path_to(message_id)
        if not path:
            raise MessageNotFoundError(message_id)
        return [self._message_response(node.message, session) for node in path]

    async def _require_conversation(self, conversation_id: str) -> None:
        if await self._projector.get_conversation(conversation_id) is None:
            raise ConversationNotFoundError(conversation_id)

    @classmethod
    def _flat_nodes(cls, session: TreeSession) -> list[TreeNodeResponse]:
        """Every node in pre-order, each listing its children by id."""
        if session.root is None:
            return []
        return [
            TreeNodeResponse(
                message=cls._message_response(node.message, session),
                child_ids=[child.id for child in node.children],
            )
            for node in iter_preorder(session.root)
        ]

    @staticmethod
    def _message_response(message: Message, session: TreeSession | None = None) -> MessageResponse:
        """Convert a message to a response, with its position among sibling replies."""
        if session is None:
            return MessageResponse.from_message(message)
        index, count = session.sibling_position(message.id)
        return MessageResponse.from_message(message, sibling_index=index, sibling_count=count)


class ConversationNotFoundError(Exception):
    def __init__(self, conversation_id: str) -> None:
        self.conversation_id = conversation_id
        super().__init__(f"Conversation not found: {conversation_id}")


class MessageNotFoundError(Exception):
    def __init__(self, message_id: str) -> None:
        self.message_id = message_id
        super().__init__(f"Message not found: {message_id}")
