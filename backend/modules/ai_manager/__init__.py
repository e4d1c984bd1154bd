"""
AI Manager Module

Client-side session for the AI Manager chat. It keeps the transcript,
talks to the chat endpoint, and queues write-backs to the message store.

Key Components:
- ConversationSession: Session reconciler for the active conversation
- SessionState: Immutable snapshot of the session
- PersistenceOutbox: Background queue of store writes
- ChatClient / ContextClient: HTTP transport to the chat service
"""

from .credentials import CredentialStore, FileCredentialStore
from .outbox import OutboxOperation, PersistenceOutbox
from .output_parser import ParsedOutput, extract_display_text, parse_provider_output
from .session import ConversationSession, create_session
from .state import SessionState, StreamStatus, SubmitOutcome, UserProfile
from .transport import ChatClient, ChatRequestPayload, ContextClient

__all__ = [
    "CredentialStore",
    "FileCredentialStore",
    "OutboxOperation",
    "PersistenceOutbox",
    "ParsedOutput",
    "extract_display_text",
    "parse_provider_output",
    "ConversationSession",
    "create_session",
    "SessionState",
    "StreamStatus",
    "SubmitOutcome",
    "UserProfile",
    "ChatClient",
    "ChatRequestPayload",
    "ContextClient",
]
