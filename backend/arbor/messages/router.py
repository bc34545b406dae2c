"""FastAPI routes for single messages and their model context."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from arbor.conversations.schemas import MessageResponse
from arbor.conversations.service import MessageNotFoundError
from arbor.messages.schemas import ContextMessage, CreateMessageRequest, PatchMessageRequest
from arbor.messages.service import InvalidParentError, MessageService
from arbor.messages.store import MessageStoreError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/messages", tags=["messages"])


def get_message_service() -> MessageService:
    """Dependency placeholder, replaced at app startup."""
    raise RuntimeError("MessageService not initialized")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_message(
    request: CreateMessageRequest,
    service: MessageService = Depends(get_message_service),
) -> MessageResponse:
    try:
        return await service.create_message(request)
    except InvalidParentError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{message_id}")
async def get_message(
    message_id: str,
    service: MessageService = Depends(get_message_service),
) -> MessageResponse:
    try:
        return await service.get_message(message_id)
    except MessageNotFoundError:
        raise HTTPException(status_code=404, detail=f"Message not found: {message_id}")


@router.patch("/{message_id}")
async def update_message(
    message_id: str,
    request: PatchMessageRequest,
    service: MessageService = Depends(get_message_service),
) -> MessageResponse:
    try:
        return await service.update_content(message_id, request.content)
    except MessageNotFoundError:
        raise HTTPException(status_code=404, detail=f"Message not found: {message_id}")


@router.get("/{message_id}/context")
async def get_context(
    message_id: str,
    service: MessageService = Depends(get_message_service),
) -> list[ContextMessage]:
    try:
        return await service.get_context(message_id)
    except MessageStoreError:
        logger.exception("Failed to build context for %s", message_id)
        raise HTTPException(status_code=503, detail="Failed to build message context")
