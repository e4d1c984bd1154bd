"""
Conversation model for AI Manager chat threads.

Each row is one titled thread owned by a dashboard user. Rows are created
lazily when the first message of a session is sent and are never deleted
by the chat flow.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, String, Text, Uuid
from sqlalchemy.orm import relationship

from database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AIConversationModel(Base):
    """
    Model for storing AI conversation metadata.

    The title and description track the latest completed exchange, and
    previous_response_id threads the provider's response chain into the
    next request.
    """

    __tablename__ = "ai_conversations"

    # Primary key (assigned here, never by the client)
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)

    # Owner
    user_id = Column(String(255), nullable=False, index=True)
    user_role = Column(String(255), nullable=False)

    # Latest exchange summary
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    previous_response_id = Column(String(255), nullable=True)

    # "metadata" is reserved on declarative classes
    metadata_ = Column("metadata", JSON, nullable=True)

    # Timestamps
    last_message_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Relationships
    messages = relationship(
        "AIMessageModel",
        back_populates="conversation",
        order_by="AIMessageModel.created_at",
    )

    def __repr__(self):
        return f"<AIConversationModel(id={self.id}, user={self.user_id}, title={self.title!r})>"

    def touch(self):
        """Bump last_message_at after a mutation."""
        self.last_message_at = utcnow()
