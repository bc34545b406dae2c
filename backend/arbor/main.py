"""Arbor FastAPI application entry point."""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from arbor.config import Settings
from arbor.conversations.router import get_conversation_service
from arbor.conversations.router import router as conversations_router
from arbor.conversations.service import ConversationService
from arbor.db.connection import Database
from arbor.generation.router import get_generation_service
from arbor.generation.router import router as chat_router
from arbor.generation.service import GenerationService
from arbor.messages.router import get_message_service
from arbor.messages.router import router as messages_router
from arbor.messages.service import MessageService
from arbor.providers.openrouter import OpenRouterProvider
from arbor.providers.registry import clear_providers, get_all_providers, register_provider

# backend/.env, if present, fills in OPENROUTER_API_KEY and ARBOR_* settings
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

settings = Settings.from_env()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the database, wire services into the routers, register providers."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    db = await Database.connect(settings.db_path)

    conversations = ConversationService(
        db, default_system_prompt=settings.default_system_prompt
    )
    app.dependency_overrides[get_conversation_service] = lambda: conversations

    messages = MessageService(conversations.message_store, conversations)
    app.dependency_overrides[get_message_service] = lambda: messages

    if os.environ.get("OPENROUTER_API_KEY"):
        register_provider(OpenRouterProvider(api_key=os.environ["OPENROUTER_API_KEY"]))
    else:
        logger.warning("OPENROUTER_API_KEY not set; /api/chat has no provider")

    gen_service = GenerationService(
        messages,
        default_provider=settings.default_provider,
        default_model=settings.default_model,
    )
    app.dependency_overrides[get_generation_service] = lambda: gen_service

    app.state.db = db
    logger.info("Arbor started with database %s", settings.db_path)
    yield

    clear_providers()
    await db.close()


app = FastAPI(
    title="Arbor",
    description="Branching conversations with language models",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(conversations_router)
app.include_router(messages_router)
app.include_router(chat_router)


@app.get("/api/health")
async def health() -> dict:
    return {"status": "ok", "version": "0.1.0"}


@app.get("/api/providers")
async def providers() -> list[dict]:
    return [
        {"name": p.name, "available": True, "models": p.suggested_models}
        for p in get_all_providers()
    ]
