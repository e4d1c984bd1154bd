"""
Message store contract.

A message store persists conversations (mutable metadata) and their
messages (append-only). Every backend exposes the same async operations
so that callers never know which path served a request.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from schemas.conversation import ConversationRecord, MessageRecord, MessageRoleName


class MessageStoreError(Exception):
    """Raised when a store operation fails on every available backend."""


class ConversationNotFoundError(MessageStoreError):
    """Raised when a conversation ID does not exist."""


class MessageStore(ABC):
    """Abstract persistence for conversations and messages."""

    name: str = "store"

    @abstractmethod
    async def create_conversation(
        self,
        user_id: str,
        user_role: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        previous_response_id: Optional[str] = None,
    ) -> str:
        """Create a conversation and return its store-assigned ID."""

    @abstractmethod
    async def update_conversation(
        self,
        conversation_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        previous_response_id: Optional[str] = None,
    ) -> None:
        """
        Update conversation metadata.

        Last write wins. None leaves a field untouched; last_message_at is
        always bumped.
        """

    @abstractmethod
    async def get_user_conversations(self, user_id: str, limit: int = 50) -> list[ConversationRecord]:
        """List a user's conversations, most recently updated first."""

    @abstractmethod
    async def get_conversation_by_id(self, conversation_id: str) -> Optional[ConversationRecord]:
        """Fetch one conversation or None."""

    @abstractmethod
    async def create_message(
        self,
        conversation_id: str,
        role: MessageRoleName,
        content: str,
        user_id: Optional[str] = None,
        provider_response_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        """Append a message to a conversation."""

    @abstractmethod
    async def get_conversation_messages(self, conversation_id: str, limit: int = 1000) -> list[MessageRecord]:
        """List a conversation's messages in creation order."""
