"""
Provider Router Service

Forwards a single user message plus system prompt to the selected provider
and exposes the model output as a raw text stream.

The stream is primed before the HTTP response starts: chunks are pulled
until the first text arrives, which surfaces credential and quota failures
while an error body can still be returned, and captures the provider
response ID so it can travel in a response header.
"""

from typing import Any, AsyncIterator, Callable, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessageChunk, HumanMessage, SystemMessage

from config import settings
from modules.chat.prompts import resolve_system_prompt
from modules.chat.providers import ProviderName, build_chat_model, route_provider
from schemas.chat import ChatCompletionRequest
from utils.logging import get_logger, log_chat_event

logger = get_logger("chat.service")

ModelFactory = Callable[[str, Any, str], BaseChatModel]


def chunk_text(chunk: BaseMessageChunk) -> str:
    """
    Extract plain text from a streamed message chunk.

    Normalizes provider-specific chunk shapes (Responses API content blocks).
    """
    raw_content = chunk.content if chunk is not None and hasattr(chunk, "content") else ""

    if isinstance(raw_content, str):
        return raw_content
    if isinstance(raw_content, list):
        # Block style: [{"type":"text","text":"..."}, ...]
        parts: list[str] = []
        for block in raw_content:
            if isinstance(block, dict):
                if block.get("type") in ("text", "output_text"):
                    parts.append(block.get("text", ""))
            else:
                parts.append(str(block))
        return "".join(parts)
    return str(raw_content)


def chunk_response_id(chunk: BaseMessageChunk) -> Optional[str]:
    """Return the OpenAI Responses API ID carried by a chunk, if any."""
    metadata = getattr(chunk, "response_metadata", None) or {}
    response_id = metadata.get("id")
    if isinstance(response_id, str) and response_id.startswith("resp_"):
        return response_id
    chunk_id = getattr(chunk, "id", None)
    if isinstance(chunk_id, str) and chunk_id.startswith("resp_"):
        return chunk_id
    return None


class ProviderStream:
    """
    A primed provider stream.

    Holds the text already pulled while priming and the remaining chunk
    iterator. Iterate with iter_text() exactly once.
    """

    def __init__(
        self,
        provider: ProviderName,
        model: str,
        chunks: AsyncIterator[BaseMessageChunk],
        buffered: list[str],
        response_id: Optional[str],
        exhausted: bool,
    ):
        self.provider = provider
        self.model = model
        self.response_id = response_id
        self._chunks = chunks
        self._buffered = buffered
        self._exhausted = exhausted

    async def iter_text(self) -> AsyncIterator[str]:
        """
        Yield raw model text.

        Errors after the response has started cannot change the status line;
        they are logged and end the body.
        """
        total = 0
        try:
            for text in self._buffered:
                total += len(text)
                yield text

            if not self._exhausted:
                async for chunk in self._chunks:
                    text = chunk_text(chunk)
                    if text:
                        total += len(text)
                        yield text

            log_chat_event("completed", provider=self.provider, model=self.model, characters=total)
        except Exception as e:
            logger.error(f"Provider stream failed mid-response: {e}", exc_info=True)
            log_chat_event("failed", provider=self.provider, model=self.model, error=str(e))
        finally:
            aclose = getattr(self._chunks, "aclose", None)
            if aclose is not None:
                await aclose()


class ProviderRouter:
    """
    Routes chat requests to provider models.

    Responsibilities:
    - Select and configure a provider client per request
    - Send system prompt plus the single latest user message
    - Thread previous_response_id for providers that chain responses
    """

    def __init__(self, model_factory: ModelFactory = build_chat_model):
        self._model_factory = model_factory

    async def open_stream(self, request: ChatCompletionRequest) -> ProviderStream:
        """
        Start a provider stream and prime it.

        Args:
            request: Parsed chat request

        Returns:
            ProviderStream ready to be returned as a response body

        Raises:
            ProviderRoutingError: Missing key or unsupported provider
            Exception: Any provider failure raised before the first text chunk
        """
        provider_name = request.provider_name or settings.default_provider
        model = request.model or settings.default_model
        system_prompt = resolve_system_prompt(request.system_prompt)

        log_chat_event("started", provider=provider_name, model=model)

        chat_model = self._model_factory(provider_name, request.provider_api_key, model)
        provider = route_provider(provider_name)

        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=request.user_message),
        ]

        stream_kwargs: dict[str, Any] = {}
        if provider == ProviderName.OPENAI and request.previous_response_id:
            stream_kwargs["previous_response_id"] = request.previous_response_id

        chunks = chat_model.astream(messages, **stream_kwargs).__aiter__()

        buffered: list[str] = []
        response_id: Optional[str] = None
        exhausted = False

        try:
            while True:
                try:
                    chunk = await chunks.__anext__()
                except StopAsyncIteration:
                    exhausted = True
                    break

                if provider == ProviderName.OPENAI and response_id is None:
                    response_id = chunk_response_id(chunk)

                text = chunk_text(chunk)
                if text:
                    buffered.append(text)
                    break
        except Exception:
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                await aclose()
            raise

        return ProviderStream(
            provider=provider,
            model=model,
            chunks=chunks,
            buffered=buffered,
            response_id=response_id,
            exhausted=exhausted,
        )


# Global service instance
_provider_router: Optional[ProviderRouter] = None


def get_provider_router() -> ProviderRouter:
    """
    Get or create the global provider router instance.

    Returns:
        ProviderRouter: Service instance
    """
    global _provider_router
    if _provider_router is None:
        _provider_router = ProviderRouter()
    return _provider_router
