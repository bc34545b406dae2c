"""FastAPI routes for conversations and their trees."""

from fastapi import APIRouter, Depends, HTTPException, status

from arbor.conversations.schemas import (
    ConversationDetail,
    ConversationSummary,
    ConversationTreeResponse,
    CreateConversationRequest,
    MessageResponse,
    PatchConversationRequest,
)
from arbor.conversations.service import (
    ConversationNotFoundError,
    ConversationService,
    MessageNotFoundError,
)

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


def get_conversation_service() -> ConversationService:
    """Dependency placeholder, replaced at app startup."""
    raise RuntimeError("ConversationService not initialized")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_conversation(
    request: CreateConversationRequest,
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationDetail:
    return await service.create_conversation(request)


@router.get("")
async def list_conversations(
    service: ConversationService = Depends(get_conversation_service),
) -> list[ConversationSummary]:
    return await service.list_conversations()


@router.get("/{conversation_id}")
async def get_conversation(
    conversation_id: str,
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationDetail:
    conversation = await service.get_conversation(conversation_id)
    if conversation is None:
        raise HTTPException(
            status_code=404, detail=f"Conversation not found: {conversation_id}"
        )
    return conversation


@router.patch("/{conversation_id}")
async def update_conversation(
    conversation_id: str,
    request: PatchConversationRequest,
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationDetail:
    try:
        return await service.update_conversation(conversation_id, request)
    except ConversationNotFoundError:
        raise HTTPException(
            status_code=404, detail=f"Conversation not found: {conversation_id}"
        )


@router.delete("/{conversation_id}")
async def delete_conversation(
    conversation_id: str,
    service: ConversationService = Depends(get_conversation_service),
) -> dict:
    try:
        await service.delete_conversation(conversation_id)
    except ConversationNotFoundError:
        raise HTTPException(
            status_code=404, detail=f"Conversation not found: {conversation_id}"
        )
    return {"success": True}


@router.get("/{conversation_id}/tree")
async def get_tree(
    conversation_id: str,
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationTreeResponse:
    try:
        return await service.get_tree(conversation_id)
    except ConversationNotFoundError:
        raise HTTPException(
            status_code=404, detail=f"Conversation not found: {conversation_id}"
        )


@router.get("/{conversation_id}/leaves")
async def get_leaves(
    conversation_id: str,
    service: ConversationService = Depends(get_conversation_service),
) -> list[MessageResponse]:
    try:
        return await service.get_leaves(conversation_id)
    except ConversationNotFoundError:
        raise HTTPException(
            status_code=404, detail=f"Conversation not found: {conversation_id}"
        )


@router.get("/{conversation_id}/path/{message_id}")
async def get_path(
    conversation_id: str,
    message_id: str,
    service: ConversationService = Depends(get_conversation_service),
) -> list[MessageResponse]:
    try:
        return await service.get_path(conversation_id, message_id)
    except ConversationNotFoundError:
        raise HTTPException(
            status_code=404, detail=f"Conversation not found: {conversation_id}"
        )
    except MessageNotFoundError:
        raise HTTPException(status_code=404, detail=f"Message not found: {message_id}")
