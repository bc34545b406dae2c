"""Context assembly for LLM generation.

The context of a message is its ancestor chain, root first, ending with the
message itself. It is read straight from the message store one parent at a
time, because callers often hold only a message id and not the whole
conversation.
"""

import logging

from arbor.messages.store import MessageStore
from arbor.models import Message

logger = logging.getLogger(__name__)


class ContextAssembler:
    """Walks parent links through a MessageStore to build model context."""

    def __init__(self, store: MessageStore) -> None:
        self._store = store

    async def build_context(self, message_id: str) -> list[Message]:
        """Return the messages from the root to message_id, inclusive.

        The walk stops at the first id the store does not know, so a
        dangling parent reference yields a shorter context rather than an
        error. An unknown message_id yields []. Store failures propagate
        and no partial context is returned.
        """
        chain: list[Message] = []
        seen: set[str] = set()
        current_id: str | None = message_id

        while current_id is not None:
            if current_id in seen:
                logger.warning(
                    "Cycle in parent chain of %s at %s; truncating context",
                    message_id,
                    current_id,
                )
                break
            seen.add(current_id)

            message = await self._store.get_message(current_id)
            if message is None:
                break
            chain.append(message)
            current_id = message.parent_message_id

        chain.reverse()
        return chain


def to_model_messages(messages: list[Message]) -> list[dict[str, str]]:
    """Render a context as the {role, content} pairs a chat model expects."""
    return [{"role": m.role, "content": m.content} for m in messages]
