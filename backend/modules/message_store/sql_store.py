"""
Direct-database message store.

Implements the message store contract with SQLAlchemy async sessions.
Used as the fallback when the GraphQL endpoint is unavailable.
"""

from typing import Any, Optional
from uuid import UUID

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database import async_session_maker
from models.conversation import AIConversationModel, utcnow
from models.message import AIMessageModel, MessageRole
from modules.message_store.base import ConversationNotFoundError, MessageStore
from schemas.conversation import ConversationRecord, MessageRecord, MessageRoleName
from utils.logging import get_logger

logger = get_logger("message_store.sql")


def _parse_id(value: str) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except ValueError:
        return None


class SqlMessageStore(MessageStore):
    """Message store backed by the relational database."""

    name = "database"

    def __init__(self, session_maker: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_maker = session_maker or async_session_maker

    async def create_conversation(
        self,
        user_id: str,
        user_role: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        previous_response_id: Optional[str] = None,
    ) -> str:
        async with self._session_maker() as session:
            conversation = AIConversationModel(
                user_id=user_id,
                user_role=user_role,
                title=title,
                description=description,
                metadata_=metadata,
                previous_response_id=previous_response_id,
                last_message_at=utcnow(),
            )
            session.add(conversation)
            await session.commit()
            await session.refresh(conversation)

            logger.info(f"Created conversation {conversation.id} for user {user_id}")
            return str(conversation.id)

    async def update_conversation(
        self,
        conversation_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        previous_response_id: Optional[str] = None,
    ) -> None:
        conversation_uuid = _parse_id(conversation_id)
        if conversation_uuid is None:
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")

        async with self._session_maker() as session:
            conversation = await session.get(AIConversationModel, conversation_uuid)
            if not conversation:
                raise ConversationNotFoundError(f"Conversation {conversation_id} not found")

            # Update fields if provided
            if title is not None:
                conversation.title = title
            if description is not None:
                conversation.description = description
            if previous_response_id is not None:
                conversation.previous_response_id = previous_response_id
            conversation.touch()

            await session.commit()

    async def get_user_conversations(self, user_id: str, limit: int = 50) -> list[ConversationRecord]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(AIConversationModel)
                .where(AIConversationModel.user_id == user_id)
                .order_by(desc(AIConversationModel.last_message_at))
                .limit(limit)
            )
            return [ConversationRecord.model_validate(c) for c in result.scalars().all()]

    async def get_conversation_by_id(self, conversation_id: str) -> Optional[ConversationRecord]:
        conversation_uuid = _parse_id(conversation_id)
        if conversation_uuid is None:
            return None

        async with self._session_maker() as session:
            conversation = await session.get(AIConversationModel, conversation_uuid)
            return ConversationRecord.model_validate(conversation) if conversation else None

    async def create_message(
        self,
        conversation_id: str,
        role: MessageRoleName,
        content: str,
        user_id: Optional[str] = None,
        provider_response_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        conversation_uuid = _parse_id(conversation_id)
        if conversation_uuid is None:
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")

        async with self._session_maker() as session:
            if await session.get(AIConversationModel, conversation_uuid) is None:
                raise ConversationNotFoundError(f"Conversation {conversation_id} not found")

            session.add(AIMessageModel(
                conversation_id=conversation_uuid,
                user_id=user_id,
                role=MessageRole(role).value,
                content=content,
                provider_response_id=provider_response_id,
                metadata_=metadata,
                created_at=utcnow(),
            ))
            await session.commit()

    async def get_conversation_messages(self, conversation_id: str, limit: int = 1000) -> list[MessageRecord]:
        conversation_uuid = _parse_id(conversation_id)
        if conversation_uuid is None:
            return []

        async with self._session_maker() as session:
            result = await session.execute(
                select(AIMessageModel)
                .where(AIMessageModel.conversation_id == conversation_uuid)
                .order_by(AIMessageModel.created_at)
                .limit(limit)
            )
            return [MessageRecord.model_validate(m) for m in result.scalars().all()]
