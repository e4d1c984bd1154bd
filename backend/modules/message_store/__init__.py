"""
Message Store Module

Durable storage for AI conversations and messages.

Key Components:
- MessageStore: async contract shared by every backend
- GraphQLMessageStore: primary path over the GraphQL endpoint
- SqlMessageStore: direct-database path
- FallbackMessageStore: GraphQL first, database once on failure
"""

from .base import MessageStore, MessageStoreError, ConversationNotFoundError
from .graphql_store import GraphQLMessageStore
from .sql_store import SqlMessageStore
from .service import FallbackMessageStore, get_message_store

__all__ = [
    "MessageStore",
    "MessageStoreError",
    "ConversationNotFoundError",
    "GraphQLMessageStore",
    "SqlMessageStore",
    "FallbackMessageStore",
    "get_message_store",
]
