"""
AI Manager Session State

Immutable values describing the client-side chat session. Every session
step takes the current SessionState and produces a new one; nothing
mutates a state in place, so async callbacks never observe half-applied
changes.
"""

from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from modules.ai_manager.output_parser import extract_display_text
from schemas.conversation import ConversationRecord, MessageRecord, MessageRoleName

NEW_CONVERSATION_TITLE = "New conversation"
TITLE_WORD_LIMIT = 5


def _now() -> datetime:
    return datetime.now(timezone.utc)


class StreamStatus(StrEnum):
    """Streaming status of the active exchange."""
    IDLE = "idle"
    SUBMITTED = "submitted"
    STREAMING = "streaming"


class SubmitOutcome(StrEnum):
    """Result of a submit command."""
    SENT = "sent"
    EMPTY_INPUT = "empty_input"
    BUSY = "busy"
    NO_PROVIDER = "no_provider"
    CREDENTIAL_REQUIRED = "credential_required"
    FAILED = "failed"
    CANCELLED = "cancelled"


class NotificationLevel(StrEnum):
    ERROR = "error"
    CREDENTIAL_REQUIRED = "credential_required"


class Notification(BaseModel):
    """A user-visible notice (toast, credential prompt)."""

    model_config = ConfigDict(frozen=True)

    level: NotificationLevel
    title: str
    description: str
    provider: Optional[str] = None


class UserProfile(BaseModel):
    """The signed-in dashboard user the session acts for."""

    model_config = ConfigDict(frozen=True)

    id: str
    role_name: str


class SessionMessage(BaseModel):
    """A message as displayed in the transcript."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    role: MessageRoleName
    content: str
    raw: Optional[str] = None
    provider_response_id: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)
    local_only: bool = False

    @classmethod
    def from_record(cls, record: MessageRecord) -> "SessionMessage":
        content = record.content
        if record.role == "assistant":
            content = extract_display_text(content)
        return cls(
            id=record.id,
            role=record.role,
            content=content,
            raw=record.content,
            provider_response_id=record.provider_response_id,
            created_at=record.created_at or _now(),
        )


class ConversationSummary(BaseModel):
    """Entry of the in-memory conversation index."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = NEW_CONVERSATION_TITLE
    description: Optional[str] = None
    previous_response_id: Optional[str] = None
    updated_at: datetime = Field(default_factory=_now)

    @classmethod
    def from_record(cls, record: ConversationRecord) -> "ConversationSummary":
        return cls(
            id=record.id,
            title=record.title or NEW_CONVERSATION_TITLE,
            description=record.description,
            previous_response_id=record.previous_response_id,
            updated_at=record.last_message_at or record.created_at or _now(),
        )


class Exchange(BaseModel):
    """
    Context of one submit, carried from step to step.

    epoch pins the exchange to the conversation that was active when it
    started; once the session's epoch moves on, the exchange's results are
    discarded.
    """

    model_config = ConfigDict(frozen=True)

    epoch: int
    conversation_id: Optional[str] = None
    user_message_id: str
    user_text: str = ""
    assistant_message_id: str = Field(default_factory=lambda: str(uuid4()))
    previous_response_id: Optional[str] = None
    model: str
    provider: str


class SessionState(BaseModel):
    """Snapshot of the chat session."""

    model_config = ConfigDict(frozen=True)

    conversation_id: Optional[str] = None
    messages: tuple[SessionMessage, ...] = ()
    status: StreamStatus = StreamStatus.IDLE
    error: Optional[str] = None
    conversations: tuple[ConversationSummary, ...] = ()
    loading_messages: bool = False
    epoch: int = 0

    @property
    def is_busy(self) -> bool:
        return self.status in (StreamStatus.SUBMITTED, StreamStatus.STREAMING)

    def evolve(self, **changes) -> "SessionState":
        return self.model_copy(update=changes)

    def find_conversation(self, conversation_id: Optional[str]) -> Optional[ConversationSummary]:
        if conversation_id is None:
            return None
        return next((c for c in self.conversations if c.id == conversation_id), None)

    def with_message(self, message: SessionMessage) -> "SessionState":
        """Append a message, or replace the message with the same ID."""
        for index, existing in enumerate(self.messages):
            if existing.id == message.id:
                messages = self.messages[:index] + (message,) + self.messages[index + 1:]
                return self.evolve(messages=messages)
        return self.evolve(messages=self.messages + (message,))

    def without_message(self, message_id: str) -> "SessionState":
        return self.evolve(messages=tuple(m for m in self.messages if m.id != message_id))

    def with_conversation(self, summary: ConversationSummary, prepend: bool = False) -> "SessionState":
        """Replace the index entry with the same ID, or add it."""
        if self.find_conversation(summary.id) is not None:
            conversations = tuple(summary if c.id == summary.id else c for c in self.conversations)
        elif prepend:
            conversations = (summary,) + self.conversations
        else:
            conversations = self.conversations + (summary,)
        return self.evolve(conversations=conversations)

    def last_user_message(self) -> Optional[SessionMessage]:
        return next((m for m in reversed(self.messages) if m.role == "user"), None)


def derive_title(text: Optional[str], word_limit: int = TITLE_WORD_LIMIT) -> Optional[str]:
    """First words of a message, used as a conversation title."""
    if not text:
        return None
    words = text.split()
    if not words:
        return None
    return " ".join(words[:word_limit])
