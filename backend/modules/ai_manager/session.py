"""
AI Manager Conversation Session

Client-side orchestrator of the active conversation. It owns the displayed
transcript, decides when a persisted conversation is created, attaches
provider credentials and knowledge base context to each request, tracks
streaming status, and hands finished exchanges to the persistence outbox
without making the transcript wait on storage.

Streaming status: idle -> submitted -> streaming -> idle. Only one exchange
may be in flight; switching conversations resets the status to idle and
discards the in-flight exchange's results.
"""

import re
from typing import Callable, Optional

from config import settings
from modules.ai_manager.credentials import CredentialStore, FileCredentialStore
from modules.ai_manager.outbox import OutboxOperation, PersistenceOutbox
from modules.ai_manager.output_parser import extract_display_text, parse_provider_output
from modules.ai_manager.state import (
    NEW_CONVERSATION_TITLE,
    ConversationSummary,
    Exchange,
    Notification,
    NotificationLevel,
    SessionMessage,
    SessionState,
    StreamStatus,
    SubmitOutcome,
    UserProfile,
    derive_title,
)
from modules.ai_manager.transport import ChatClient, ChatRequestPayload, ContextClient
from modules.chat.prompts import DEFAULT_SYSTEM_PROMPT, get_system_prompt
from modules.chat.providers import provider_from_model
from modules.message_store.base import MessageStore
from modules.message_store.service import get_message_store
from utils.logging import get_logger

logger = get_logger("ai_manager.session")

CONVERSATION_ID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

GENERIC_ERROR = "Something went wrong while calling the AI provider."

StateListener = Callable[[SessionState], None]
NotificationListener = Callable[[Notification], None]


def is_valid_conversation_id(value: Optional[str]) -> bool:
    """Check a conversation ID taken from a URL against the UUID shape."""
    return isinstance(value, str) and bool(CONVERSATION_ID_PATTERN.match(value))


class ConversationSession:
    """
    Session reconciler for the AI Manager chat.

    Responsibilities:
    - Lazily create the persisted conversation on the first message
    - Resolve provider and credential for each request
    - Stream the provider output into the transcript
    - Queue message and conversation write-backs on the outbox
    """

    def __init__(
        self,
        user: UserProfile,
        store: MessageStore,
        chat_client: ChatClient,
        credentials: CredentialStore,
        outbox: Optional[PersistenceOutbox] = None,
        context_client: Optional[ContextClient] = None,
        base_system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        default_model: Optional[str] = None,
    ):
        self.user = user
        self.store = store
        self.chat_client = chat_client
        self.credentials = credentials
        self.outbox = outbox or PersistenceOutbox(store)
        self.context_client = context_client
        self.base_system_prompt = base_system_prompt
        self.default_model = default_model or settings.default_model

        self.state = SessionState()
        self.notifications: list[Notification] = []
        self._state_listeners: list[StateListener] = []
        self._notification_listeners: list[NotificationListener] = []

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener. Returns an unsubscribe callable."""
        self._state_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._state_listeners:
                self._state_listeners.remove(listener)

        return unsubscribe

    def on_notification(self, listener: NotificationListener) -> None:
        self._notification_listeners.append(listener)

    @property
    def query_string(self) -> str:
        """Navigable URL query for the active conversation."""
        if self.state.conversation_id:
            return f"?conversationId={self.state.conversation_id}"
        return "?"

    def _commit(self, state: SessionState) -> None:
        self.state = state
        for listener in list(self._state_listeners):
            listener(state)

    def _notify(self, notification: Notification) -> None:
        self.notifications.append(notification)
        for listener in list(self._notification_listeners):
            listener(notification)

    def _is_current(self, exchange: Exchange) -> bool:
        return self.state.epoch == exchange.epoch

    # ------------------------------------------------------------------
    # Conversation selection
    # ------------------------------------------------------------------

    async def load_conversations(self) -> None:
        """Populate the conversation index from the store."""
        try:
            records = await self.store.get_user_conversations(self.user.id)
        except Exception as e:
            logger.error(f"Error loading conversations: {e}")
            return

        self._commit(self.state.evolve(
            conversations=tuple(ConversationSummary.from_record(r) for r in records)
        ))

    async def select_conversation(self, conversation_id: str, from_url: bool = False) -> None:
        """
        Make a conversation active and load its transcript.

        The transcript is cleared immediately and filled once the load
        completes, and only if this selection is still the latest one.
        """
        epoch = self.state.epoch + 1
        self._commit(self.state.evolve(
            conversation_id=conversation_id,
            messages=(),
            status=StreamStatus.IDLE,
            error=None,
            loading_messages=True,
            epoch=epoch,
        ))

        try:
            records = await self.store.get_conversation_messages(conversation_id)
        except Exception as e:
            logger.error(f"Error loading messages for {conversation_id}: {e}")
            if self.state.epoch == epoch:
                self._commit(self.state.evolve(loading_messages=False))
            return

        if self.state.epoch != epoch:
            logger.info(f"Discarding superseded message load for {conversation_id}")
            return

        if not records and from_url:
            # Unknown or empty conversation in the URL: drop it
            self._commit(self.state.evolve(conversation_id=None, loading_messages=False))
            return

        messages = tuple(SessionMessage.from_record(r) for r in records)
        self._commit(self.state.evolve(messages=messages, loading_messages=False))

    async def open_from_url(self, conversation_id: Optional[str]) -> bool:
        """
        Restore the conversation named by the URL query parameter.

        Returns:
            True if the value was a well-formed ID, False if it was stripped
        """
        if conversation_id is None:
            return False

        if is_valid_conversation_id(conversation_id):
            await self.select_conversation(conversation_id, from_url=True)
            return True

        logger.warning(f"Ignoring malformed conversation ID from URL: {conversation_id!r}")
        self.create_new_conversation()
        return False

    def create_new_conversation(self) -> None:
        """Start a fresh conversation. Storage is contacted on the next submit."""
        self._commit(self.state.evolve(
            conversation_id=None,
            messages=(),
            status=StreamStatus.IDLE,
            error=None,
            loading_messages=False,
            epoch=self.state.epoch + 1,
        ))

    # ------------------------------------------------------------------
    # Exchanges
    # ------------------------------------------------------------------

    async def submit(self, user_text: str, model: Optional[str] = None) -> SubmitOutcome:
        """
        Send a user message and stream the reply.

        Args:
            user_text: Message typed by the user
            model: Model selector; the provider is derived from it

        Returns:
            SubmitOutcome describing what happened
        """
        if not user_text or not user_text.strip():
            return SubmitOutcome.EMPTY_INPUT

        # A transcript load would replace the message list under the new exchange
        if self.state.is_busy or self.state.loading_messages:
            return SubmitOutcome.BUSY

        model = model or self.default_model
        provider = provider_from_model(model)
        if provider is None:
            logger.warning(f"No provider matches model {model!r}")
            return SubmitOutcome.NO_PROVIDER

        api_key = self.credentials.get(provider)
        if api_key is None:
            self._notify(Notification(
                level=NotificationLevel.CREDENTIAL_REQUIRED,
                title="API key required",
                description=f"Add your {provider} API key to use {model}.",
                provider=provider,
            ))
            return SubmitOutcome.CREDENTIAL_REQUIRED

        user_message = SessionMessage(role="user", content=user_text)
        summary = self.state.find_conversation(self.state.conversation_id)
        exchange = Exchange(
            epoch=self.state.epoch,
            conversation_id=self.state.conversation_id,
            user_message_id=user_message.id,
            user_text=user_text,
            previous_response_id=summary.previous_response_id if summary else None,
            model=model,
            provider=provider,
        )

        self._commit(self.state.with_message(user_message).evolve(
            status=StreamStatus.SUBMITTED,
            error=None,
        ))

        if exchange.conversation_id is None:
            exchange = await self._create_conversation(exchange)
            if not self._is_current(exchange):
                logger.info("Session changed while creating conversation; exchange abandoned")
                return SubmitOutcome.CANCELLED

        if exchange.conversation_id is not None:
            self.outbox.enqueue(
                OutboxOperation.CREATE_MESSAGE,
                conversation_id=exchange.conversation_id,
                role="user",
                content=user_text,
                user_id=self.user.id,
                provider_response_id=exchange.previous_response_id,
            )

        context = await self.context_client.get_context() if self.context_client else None
        payload = ChatRequestPayload(
            system_prompt=get_system_prompt(context, self.base_system_prompt),
            previous_response_id=exchange.previous_response_id,
            user_message=user_text,
            model=model,
            provider_api_key=api_key,
            provider_name=provider,
        )

        raw = ""
        response_id = None
        try:
            async with self.chat_client.stream(payload) as stream:
                response_id = stream.response_id
                async for text in stream.iter_text():
                    if not self._is_current(exchange):
                        logger.info("Conversation changed mid-stream; exchange abandoned")
                        return SubmitOutcome.CANCELLED
                    raw += text
                    self._on_chunk(exchange, raw)
        except Exception as e:
            if not self._is_current(exchange):
                return SubmitOutcome.CANCELLED
            logger.error(f"AI chat error: {e}", exc_info=True)
            self.on_exchange_error(exchange, e)
            return SubmitOutcome.FAILED

        if not self._is_current(exchange):
            return SubmitOutcome.CANCELLED

        self.on_exchange_complete(exchange, raw, response_id)
        return SubmitOutcome.SENT

    async def _create_conversation(self, exchange: Exchange) -> Exchange:
        """
        Create the persisted conversation before the request is sent.

        Awaited so the ID exists before any write references it. On
        failure the exchange proceeds without persistence.
        """
        try:
            conversation_id = await self.store.create_conversation(
                self.user.id,
                self.user.role_name,
                title=None,
                previous_response_id=exchange.previous_response_id,
            )
        except Exception as e:
            logger.error(f"Error creating conversation: {e}")
            return exchange

        if not self._is_current(exchange):
            return exchange.model_copy(update={"conversation_id": conversation_id})

        self._commit(
            self.state
            .with_conversation(
                ConversationSummary(
                    id=conversation_id,
                    previous_response_id=exchange.previous_response_id,
                ),
                prepend=True,
            )
            .evolve(conversation_id=conversation_id)
        )
        logger.info(f"Created conversation {conversation_id}")
        return exchange.model_copy(update={"conversation_id": conversation_id})

    def _on_chunk(self, exchange: Exchange, raw: str) -> None:
        message = SessionMessage(
            id=exchange.assistant_message_id,
            role="assistant",
            content=extract_display_text(raw, streaming=True),
            raw=raw,
        )
        self._commit(self.state.with_message(message).evolve(status=StreamStatus.STREAMING))

    def on_exchange_complete(self, exchange: Exchange, raw: str, response_id: Optional[str]) -> None:
        """
        Apply a finished provider stream.

        The transcript and index are updated first; write-backs are queued
        afterwards. Provider-reported errors are shown but never persisted.
        """
        parsed = parse_provider_output(raw)

        state = self.state
        if raw:
            state = state.with_message(SessionMessage(
                id=exchange.assistant_message_id,
                role="assistant",
                content=parsed.text,
                raw=raw,
                provider_response_id=response_id,
            ))

        if parsed.is_error:
            logger.warning(f"API returned error: {parsed.text[:100]}")
            self._commit(state.evolve(status=StreamStatus.IDLE, error=parsed.text))
            self._notify(Notification(
                level=NotificationLevel.ERROR,
                title="AI Provider Error",
                description=parsed.text,
                provider=exchange.provider,
            ))
            return

        conversation_id = exchange.conversation_id
        title = derive_title(exchange.user_text)
        description = parsed.text if parsed.text.strip() else None

        # Stores leave previous_response_id untouched when None is written
        chain_id = response_id or exchange.previous_response_id

        if conversation_id is not None:
            existing = state.find_conversation(conversation_id)
            if response_id is None and existing is not None:
                chain_id = existing.previous_response_id or chain_id
            summary = ConversationSummary(
                id=conversation_id,
                title=title or (existing.title if existing else NEW_CONVERSATION_TITLE),
                description=description if description is not None else (existing.description if existing else None),
                previous_response_id=chain_id,
            )
            state = state.with_conversation(summary)

        self._commit(state.evolve(status=StreamStatus.IDLE, error=None))

        if conversation_id is None:
            return

        if description is not None:
            self.outbox.enqueue(
                OutboxOperation.CREATE_MESSAGE,
                conversation_id=conversation_id,
                role="assistant",
                content=parsed.text,
                user_id=self.user.id,
                provider_response_id=response_id,
            )

        self.outbox.enqueue(
            OutboxOperation.UPDATE_CONVERSATION,
            conversation_id=conversation_id,
            title=title,
            description=description,
            previous_response_id=chain_id,
        )

    def on_exchange_error(self, exchange: Exchange, error: BaseException) -> None:
        """
        Apply a transport failure.

        A synthetic assistant message carrying the error text is shown; it
        is never persisted and conversation metadata is left unchanged.
        """
        text = str(error) or GENERIC_ERROR
        state = self.state.without_message(exchange.assistant_message_id)
        state = state.with_message(SessionMessage(role="assistant", content=text, local_only=True))
        self._commit(state.evolve(status=StreamStatus.IDLE, error=text))

    async def close(self) -> None:
        """Drain queued writes and stop the outbox."""
        await self.outbox.flush()
        await self.outbox.close()


def create_session(user: UserProfile, store: Optional[MessageStore] = None) -> ConversationSession:
    """
    Build a session wired to the configured services.

    Args:
        user: Signed-in user
        store: Message store (defaults to the global GraphQL-first store)

    Returns:
        ConversationSession
    """
    store = store or get_message_store()
    return ConversationSession(
        user=user,
        store=store,
        chat_client=ChatClient(),
        credentials=FileCredentialStore(settings.credential_store_path),
        outbox=PersistenceOutbox(store),
        context_client=ContextClient(),
    )
