"""
Pydantic schemas for API validation.

This package contains Pydantic models for request/response validation
and data transformation.
"""

from .chat import ChatCompletionRequest, ChatErrorResponse, VectorContextResponse
from .conversation import (
    ConversationRecord,
    MessageRecord,
    ConversationCreateSchema,
    ConversationUpdateSchema,
    MessageCreateSchema,
)

__all__ = [
    "ChatCompletionRequest",
    "ChatErrorResponse",
    "VectorContextResponse",
    "ConversationRecord",
    "MessageRecord",
    "ConversationCreateSchema",
    "ConversationUpdateSchema",
    "MessageCreateSchema",
]
