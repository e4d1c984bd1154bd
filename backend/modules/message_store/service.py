"""
Message store service with GraphQL-first, database-fallback routing.

Every operation is tried once on the primary backend; any failure is
logged and the same logical operation is retried once on the fallback.
Callers see a single MessageStore and never learn which path served them.
"""

from typing import Any, Awaitable, Callable, Optional, TypeVar

from modules.message_store.base import ConversationNotFoundError, MessageStore, MessageStoreError
from modules.message_store.graphql_store import GraphQLMessageStore
from modules.message_store.sql_store import SqlMessageStore
from schemas.conversation import ConversationRecord, MessageRecord, MessageRoleName
from utils.logging import get_logger, log_store_event

logger = get_logger("message_store.service")

T = TypeVar("T")


class FallbackMessageStore(MessageStore):
    """Routes each operation to the primary store, then once to the fallback."""

    name = "fallback"

    def __init__(self, primary: MessageStore, fallback: MessageStore):
        self.primary = primary
        self.fallback = fallback

    async def _run(self, operation: str, call: Callable[[MessageStore], Awaitable[T]]) -> T:
        try:
            result = await call(self.primary)
            log_store_event(operation, self.primary.name, True)
            return result
        except Exception as e:
            logger.error(
                f"Error in {operation} via {self.primary.name}, falling back to {self.fallback.name}: {e}"
            )
            log_store_event(operation, self.primary.name, False, error=str(e))

        try:
            result = await call(self.fallback)
            log_store_event(operation, self.fallback.name, True)
            return result
        except ConversationNotFoundError:
            raise
        except Exception as e:
            logger.error(f"Error in {operation} via {self.fallback.name}: {e}", exc_info=True)
            log_store_event(operation, self.fallback.name, False, error=str(e))
            raise MessageStoreError(f"{operation} failed on all backends: {e}") from e

    async def create_conversation(
        self,
        user_id: str,
        user_role: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        previous_response_id: Optional[str] = None,
    ) -> str:
        return await self._run(
            "create_conversation",
            lambda store: store.create_conversation(
                user_id,
                user_role,
                title=title,
                description=description,
                metadata=metadata,
                previous_response_id=previous_response_id,
            ),
        )

    async def update_conversation(
        self,
        conversation_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        previous_response_id: Optional[str] = None,
    ) -> None:
        await self._run(
            "update_conversation",
            lambda store: store.update_conversation(
                conversation_id,
                title=title,
                description=description,
                previous_response_id=previous_response_id,
            ),
        )

    async def get_user_conversations(self, user_id: str, limit: int = 50) -> list[ConversationRecord]:
        return await self._run(
            "get_user_conversations",
            lambda store: store.get_user_conversations(user_id, limit=limit),
        )

    async def get_conversation_by_id(self, conversation_id: str) -> Optional[ConversationRecord]:
        return await self._run(
            "get_conversation_by_id",
            lambda store: store.get_conversation_by_id(conversation_id),
        )

    async def create_message(
        self,
        conversation_id: str,
        role: MessageRoleName,
        content: str,
        user_id: Optional[str] = None,
        provider_response_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        await self._run(
            "create_message",
            lambda store: store.create_message(
                conversation_id,
                role,
                content,
                user_id=user_id,
                provider_response_id=provider_response_id,
                metadata=metadata,
            ),
        )

    async def get_conversation_messages(self, conversation_id: str, limit: int = 1000) -> list[MessageRecord]:
        return await self._run(
            "get_conversation_messages",
            lambda store: store.get_conversation_messages(conversation_id, limit=limit),
        )


# Global store instance
_message_store: Optional[MessageStore] = None


def get_message_store() -> MessageStore:
    """
    Get or create the global message store instance.

    Returns:
        MessageStore: GraphQL-first store with database fallback
    """
    global _message_store
    if _message_store is None:
        _message_store = FallbackMessageStore(
            primary=GraphQLMessageStore(),
            fallback=SqlMessageStore(),
        )
    return _message_store
