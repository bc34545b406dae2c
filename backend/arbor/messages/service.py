"""Message service: appending replies, patching content, assembling context."""

import logging
from datetime import UTC, datetime
from uuid import uuid4

from arbor.conversations.schemas import MessageResponse
from arbor.conversations.service import ConversationService, MessageNotFoundError
from arbor.generation.context import ContextAssembler, to_model_messages
from arbor.messages.schemas import ContextMessage, CreateMessageRequest
from arbor.messages.store import MessageStore
from arbor.models import Message

logger = logging.getLogger(__name__)


class MessageService:
    """Writes messages through the store and keeps tree sessions current."""

    def __init__(self, store: MessageStore, conversations: ConversationService) -> None:
        self._store = store
        self._conversations = conversations
        self._assembler = ContextAssembler(store)

    async def create_message(self, request: CreateMessageRequest) -> MessageResponse:
        """Append a reply. The parent must exist in the same conversation."""
        parent = await self._store.get_message(request.parent_message_id)
        if parent is None or parent.conversation_id != request.conversation_id:
            raise InvalidParentError(request.parent_message_id)

        message = await self.append_reply(parent, role=request.role, content=request.content)
        return MessageResponse.from_message(message)

    async def append_reply(
        self,
        parent: Message,
        *,
        role: str,
        content: str,
        model: str | None = None,
        provider: str | None = None,
    ) -> Message:
        """Store a new child of parent, one level deeper, and invalidate its tree."""
        message = Message(
            id=str(uuid4()),
            conversation_id=parent.conversation_id,
            parent_message_id=parent.id,
            role=role,
            content=content,
            depth=parent.depth + 1,
            created_at=datetime.now(UTC),
        )
        await self._store.insert_message(message, model=model, provider=provider)
        self._conversations.note_message_added(parent.conversation_id)
        logger.debug("Appended %s message %s under %s", role, message.id, parent.id)
        return message

    async def get_message(self, message_id: str) -> MessageResponse:
        message = await self._store.get_message(message_id)
        if message is None:
            raise MessageNotFoundError(message_id)
        return MessageResponse.from_message(message)

    async def update_content(self, message_id: str, content: str) -> MessageResponse:
        message = await self._store.update_content(message_id, content)
        if message is None:
            raise MessageNotFoundError(message_id)
        self._conversations.note_content_updated(message.conversation_id, message_id, content)
        return MessageResponse.from_message(message)

    async def build_context(self, message_id: str) -> list[Message]:
        return await self._assembler.build_context(message_id)

    async def get_context(self, message_id: str) -> list[ContextMessage]:
        """Root-to-message history as {role, content} pairs, [] for an unknown id."""
        messages = await self._assembler.build_context(message_id)
        return [ContextMessage(**pair) for pair in to_model_messages(messages)]


class InvalidParentError(Exception):
    def __init__(self, parent_id: str) -> None:
        self.parent_id = parent_id
        super().__init__(f"Invalid parent message: {parent_id}")
