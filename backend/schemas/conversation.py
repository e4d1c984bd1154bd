"""
Pydantic schemas for AI conversations and messages.

These are the records exchanged with the message store (both the GraphQL
and the direct-database path) and the dashboard routes built on top of it.
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

MessageRoleName = Literal["user", "assistant", "system"]


class ConversationRecord(BaseModel):
    """A persisted conversation row."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    user_id: Optional[str] = None
    user_role: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    metadata: Optional[dict[str, Any]] = Field(default=None, validation_alias=AliasChoices("metadata_", "metadata"))
    previous_response_id: Optional[str] = None
    last_message_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value)


class MessageRecord(BaseModel):
    """A persisted message row."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    conversation_id: str
    user_id: Optional[str] = None
    role: MessageRoleName
    content: str
    provider_response_id: Optional[str] = None
    metadata: Optional[dict[str, Any]] = Field(default=None, validation_alias=AliasChoices("metadata_", "metadata"))
    created_at: Optional[datetime] = None

    @field_validator("id", "conversation_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value):
        return str(value)


class ConversationCreateSchema(BaseModel):
    """Schema for creating a conversation."""

    user_id: str = Field(..., description="Owner user ID")
    user_role: str = Field(..., description="Owner role name")
    title: Optional[str] = Field(None, description="Initial title (usually unset)")
    description: Optional[str] = Field(None, description="Initial description")
    metadata: Optional[dict[str, Any]] = Field(None, description="Free-form metadata")
    previous_response_id: Optional[str] = Field(None, description="Provider response chain start")


class ConversationCreatedSchema(BaseModel):
    """Response for a created conversation."""

    id: str


class ConversationUpdateSchema(BaseModel):
    """Schema for updating conversation metadata. Unset fields are left untouched."""

    title: Optional[str] = Field(None, description="Conversation title")
    description: Optional[str] = Field(None, description="Latest response summary")
    previous_response_id: Optional[str] = Field(None, description="Latest provider response ID")


class MessageCreateSchema(BaseModel):
    """Schema for appending a message."""

    user_id: Optional[str] = Field(None, description="Author user ID")
    role: MessageRoleName = Field(..., description="user, assistant or system")
    content: str = Field(..., description="Plain text or markdown content")
    provider_response_id: Optional[str] = Field(None, description="Provider response ID")
    metadata: Optional[dict[str, Any]] = Field(None, description="Free-form metadata")


class ConversationListResponse(BaseModel):
    """Response for listing conversations."""

    conversations: list[ConversationRecord]


class MessageListResponse(BaseModel):
    """Response for listing the messages of a conversation."""

    conversation_id: str
    messages: list[MessageRecord]
