"""Tests for ContextAssembler: ancestor chains read from a MessageStore."""

import logging
from unittest.mock import AsyncMock

import pytest

from arbor.generation.context import ContextAssembler, to_model_messages
from arbor.messages.store import MessageStore, MessageStoreError
from arbor.models import Message
from tests.fixtures import make_branching_messages, make_message


class FakeMessageStore(MessageStore):
    """In-memory MessageStore that counts get_message calls."""

    def __init__(self, messages: list[Message]) -> None:
        self._by_id = {m.id: m for m in messages}
        self.get_message = AsyncMock(side_effect=self._lookup)

    async def _lookup(self, message_id: str) -> Message | None:
        return self._by_id.get(message_id)

    async def get_message(self, message_id: str) -> Message | None:
        return await self._lookup(message_id)

    async def get_messages(self, conversation_id: str) -> list[Message]:
        return [m for m in self._by_id.values() if m.conversation_id == conversation_id]

    async def insert_message(self, message, *, model=None, provider=None):
        self._by_id[message.id] = message
        return message

    async def update_content(self, message_id, content):
        return None


def _ids(messages: list[Message]) -> list[str]:
    return [m.id for m in messages]


class TestBuildContext:
    async def test_root_first_order(self):
        store = FakeMessageStore([
            make_message("root", depth=0, role="system"),
            make_message("a", "root", depth=1),
            make_message("b", "a", depth=2, role="assistant"),
            make_message("id", "b", depth=3),
        ])
        context = await ContextAssembler(store).build_context("id")
        assert _ids(context) == ["root", "a", "b", "id"]

    async def test_one_fetch_per_ancestor(self):
        store = FakeMessageStore(make_branching_messages())
        context = await ContextAssembler(store).build_context("assistant1b")
        assert _ids(context) == ["root", "user1", "assistant1", "user1b", "assistant1b"]
        assert store.get_message.await_count == 5

    async def test_other_branch_is_not_included(self):
        store = FakeMessageStore(make_branching_messages())
        context = await ContextAssembler(store).build_context("assistant2")
        assert "user1b" not in _ids(context)
        assert context[-1].content == "Why did the chicken cross the road?"

    async def test_root_context_is_itself(self):
        store = FakeMessageStore(make_branching_messages())
        context = await ContextAssembler(store).build_context("root")
        assert _ids(context) == ["root"]

    async def test_unknown_id_is_empty_after_one_fetch(self):
        store = FakeMessageStore(make_branching_messages())
        context = await ContextAssembler(store).build_context("nope")
        assert context == []
        assert store.get_message.await_count == 1

    async def test_dangling_parent_truncates(self):
        """The walk stops at the first id the store does not know."""
        store = FakeMessageStore([
            make_message("a", "ghost", depth=1),
            make_message("b", "a", depth=2),
        ])
        context = await ContextAssembler(store).build_context("b")
        assert _ids(context) == ["a", "b"]
        assert store.get_message.await_count == 3

    async def test_cycle_terminates(self, caplog):
        store = FakeMessageStore([
            make_message("a", "b", depth=1),
            make_message("b", "a", depth=2),
        ])
        with caplog.at_level(logging.WARNING, logger="arbor.generation.context"):
            context = await ContextAssembler(store).build_context("b")
        assert _ids(context) == ["a", "b"]
        assert "Cycle" in caplog.text

    async def test_store_failure_propagates(self):
        store = FakeMessageStore(make_branching_messages())
        store.get_message.side_effect = MessageStoreError("disk on fire")
        with pytest.raises(MessageStoreError):
            await ContextAssembler(store).build_context("assistant2")

    async def test_failure_midway_returns_nothing(self):
        """A fault after some fetches still raises; no partial context leaks."""
        messages = {m.id: m for m in make_branching_messages()}

        async def flaky(message_id: str):
            if message_id == "user1":
                raise MessageStoreError("lost connection")
            return messages.get(message_id)

        store = FakeMessageStore([])
        store.get_message.side_effect = flaky
        with pytest.raises(MessageStoreError):
            await ContextAssembler(store).build_context("assistant2")


class TestToModelMessages:
    def test_role_content_pairs(self):
        messages = make_branching_messages()[:3]
        assert to_model_messages(messages) == [
            {"role": "system", "content": "You are a helpful assistant."},
            {"role": "user", "content": "Hello!"},
            {"role": "assistant", "content": "Hi there!"},
        ]

    def test_empty(self):
        assert to_model_messages([]) == []
