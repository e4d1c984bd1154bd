"""
Message model for AI Manager conversation turns.

Messages are append-only and read back in creation order.
"""

import enum
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship

from database import Base
from models.conversation import utcnow


class MessageRole(str, enum.Enum):
    """Role of a conversation turn."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class AIMessageModel(Base):
    """Model for a single role-tagged utterance within a conversation."""

    __tablename__ = "ai_messages"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)

    conversation_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("ai_conversations.id"),
        nullable=False,
        index=True,
    )
    user_id = Column(String(255), nullable=True)

    role = Column(String(32), nullable=False)
    content = Column(Text, nullable=False)
    provider_response_id = Column(String(255), nullable=True)
    metadata_ = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    conversation = relationship("AIConversationModel", back_populates="messages")

    def __repr__(self):
        return f"<AIMessageModel(id={self.id}, conversation={self.conversation_id}, role={self.role})>"
