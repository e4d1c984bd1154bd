"""
AI conversation API routes.

Dashboard-facing endpoints over the message store: conversation history
for the drawer, transcript reload, and the writes the session client issues.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from modules.message_store.base import ConversationNotFoundError, MessageStore
from modules.message_store.service import get_message_store
from schemas.conversation import (
    ConversationCreateSchema,
    ConversationCreatedSchema,
    ConversationListResponse,
    ConversationRecord,
    ConversationUpdateSchema,
    MessageCreateSchema,
    MessageListResponse,
)
from utils.logging import get_logger

logger = get_logger("message_store.routes")

router = APIRouter()


@router.get("/conversations", response_model=ConversationListResponse)
async def list_conversations(
    user_id: str,
    limit: int = Query(default=50, le=100),
    store: MessageStore = Depends(get_message_store),
):
    """
    List a user's conversations, most recently updated first.
    """
    try:
        conversations = await store.get_user_conversations(user_id, limit=limit)
    except Exception as e:
        logger.error(f"Failed to list conversations: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve conversations"
        )

    logger.info(f"Returning {len(conversations)} conversations for user {user_id}")
    return ConversationListResponse(conversations=conversations)


@router.post("/conversations", response_model=ConversationCreatedSchema, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    data: ConversationCreateSchema,
    store: MessageStore = Depends(get_message_store),
):
    """
    Create a conversation. The ID is assigned by the store.
    """
    try:
        conversation_id = await store.create_conversation(
            data.user_id,
            data.user_role,
            title=data.title,
            description=data.description,
            metadata=data.metadata,
            previous_response_id=data.previous_response_id,
        )
    except Exception as e:
        logger.error(f"Failed to create conversation: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create conversation"
        )
    return ConversationCreatedSchema(id=conversation_id)


@router.get("/conversations/{conversation_id}", response_model=ConversationRecord)
async def get_conversation(
    conversation_id: str,
    store: MessageStore = Depends(get_message_store),
):
    """Get a single conversation."""
    try:
        conversation = await store.get_conversation_by_id(conversation_id)
    except Exception as e:
        logger.error(f"Failed to get conversation: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve conversation"
        )

    if conversation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Conversation {conversation_id} not found"
        )
    return conversation


@router.patch("/conversations/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_conversation(
    conversation_id: str,
    data: ConversationUpdateSchema,
    store: MessageStore = Depends(get_message_store),
):
    """
    Update title, description and/or previous response ID.

    Last write wins; omitted fields are left untouched.
    """
    try:
        await store.update_conversation(
            conversation_id,
            title=data.title,
            description=data.description,
            previous_response_id=data.previous_response_id,
        )
    except ConversationNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Failed to update conversation: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update conversation"
        )


@router.get("/conversations/{conversation_id}/messages", response_model=MessageListResponse)
async def list_messages(
    conversation_id: str,
    limit: int = Query(default=1000, le=1000),
    store: MessageStore = Depends(get_message_store),
):
    """
    Return the persisted transcript in creation order.
    """
    try:
        messages = await store.get_conversation_messages(conversation_id, limit=limit)
    except Exception as e:
        logger.error(f"Failed to list messages: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve messages"
        )
    return MessageListResponse(conversation_id=conversation_id, messages=messages)


@router.post("/conversations/{conversation_id}/messages", status_code=status.HTTP_201_CREATED)
async def create_message(
    conversation_id: str,
    data: MessageCreateSchema,
    store: MessageStore = Depends(get_message_store),
):
    """Append a message to a conversation."""
    try:
        await store.create_message(
            conversation_id,
            data.role,
            data.content,
            user_id=data.user_id,
            provider_response_id=data.provider_response_id,
            metadata=data.metadata,
        )
    except ConversationNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Failed to create message: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create message"
        )
    return {"status": "created"}
