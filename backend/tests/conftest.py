"""Shared pytest fixtures for Arbor tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from arbor.conversations.router import get_conversation_service
from arbor.conversations.service import ConversationService
from arbor.db.connection import Database
from arbor.events.projector import StateProjector
from arbor.events.store import EventStore
from arbor.main import app
from arbor.messages.router import get_message_service
from arbor.messages.service import MessageService
from arbor.messages.store import SqliteMessageStore


@pytest.fixture
async def db():
    """In-memory database for tests."""
    database = await Database.connect(":memory:")
    yield database
    await database.close()


@pytest.fixture
async def event_store(db):
    return EventStore(db)


@pytest.fixture
async def projector(db):
    return StateProjector(db)


@pytest.fixture
async def message_store(event_store, projector):
    return SqliteMessageStore(event_store, projector)


@pytest.fixture
async def conversation_service(db):
    return ConversationService(db, default_system_prompt="You are a test assistant.")


@pytest.fixture
async def message_service(conversation_service):
    return MessageService(conversation_service.message_store, conversation_service)


@pytest.fixture
async def client(conversation_service, message_service):
    """Async test client with in-memory DB wired into the app."""
    app.dependency_overrides[get_conversation_service] = lambda: conversation_service
    app.dependency_overrides[get_message_service] = lambda: message_service
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
