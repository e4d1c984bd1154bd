"""
Database models for the AI Manager backend.

This package contains SQLAlchemy models for the direct-database path
of the message store.
"""

from .conversation import AIConversationModel
from .message import AIMessageModel, MessageRole

__all__ = ["AIConversationModel", "AIMessageModel", "MessageRole"]
