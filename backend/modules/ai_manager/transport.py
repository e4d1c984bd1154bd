"""
HTTP transport between the session client and the chat service.

ChatClient posts a single-turn request to /api/chat and yields the raw
response text as it arrives, exposing the x-response-id header. The
ContextClient fetches the knowledge base context once and caches it.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from config import settings
from utils.logging import get_logger

logger = get_logger("ai_manager.transport")

RESPONSE_ID_HEADER = "x-response-id"


class ChatRequestPayload(BaseModel):
    """Body of a chat request (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True)

    system_prompt: str = Field(alias="systemPrompt")
    previous_response_id: Optional[str] = Field(default=None, alias="previousResponseId")
    user_message: str = Field(alias="userMessage")
    model: str
    provider_api_key: str = Field(alias="providerApiKey")
    provider_name: str = Field(alias="providerName")


class ChatStream:
    """An open chat response: headers are available, the body is still streaming."""

    def __init__(self, response: httpx.Response, idle_timeout: Optional[float] = None):
        self._response = response
        self._idle_timeout = idle_timeout
        self.response_id: Optional[str] = response.headers.get(RESPONSE_ID_HEADER)

    async def iter_text(self) -> AsyncIterator[str]:
        """
        Yield decoded body text.

        Raises:
            asyncio.TimeoutError: If idle_timeout elapses between chunks
        """
        chunks = self._response.aiter_text().__aiter__()
        while True:
            try:
                if self._idle_timeout is None:
                    text = await chunks.__anext__()
                else:
                    text = await asyncio.wait_for(chunks.__anext__(), self._idle_timeout)
            except StopAsyncIteration:
                return
            if text:
                yield text


class ChatClient:
    """Streaming client for the chat endpoint."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        idle_timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.chat_api_url).rstrip("/")
        self._client = client
        self.idle_timeout = idle_timeout if idle_timeout is not None else settings.stream_idle_timeout

    @asynccontextmanager
    async def stream(self, payload: ChatRequestPayload) -> AsyncIterator[ChatStream]:
        """
        Open a chat stream.

        Raises:
            httpx.HTTPError: On network failures or non-2xx responses
        """
        body = payload.model_dump(by_alias=True)
        url = f"{self.base_url}/api/chat"

        if self._client is not None:
            async with self._client.stream("POST", url, json=body) as response:
                response.raise_for_status()
                yield ChatStream(response, self.idle_timeout)
        else:
            # Stream lifetime is bounded by the provider, not by a read timeout
            async with httpx.AsyncClient(timeout=httpx.Timeout(10.0, read=None)) as client:
                async with client.stream("POST", url, json=body) as response:
                    response.raise_for_status()
                    yield ChatStream(response, self.idle_timeout)


class ContextClient:
    """Fetches and caches the knowledge base context."""

    def __init__(self, base_url: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        self.base_url = (base_url or settings.chat_api_url).rstrip("/")
        self._client = client
        self._context: Optional[str] = None
        self._loaded = False

    async def get_context(self) -> Optional[str]:
        """Return the cached context, loading it on first use. Failures yield None."""
        if self._loaded:
            return self._context

        url = f"{self.base_url}/api/openai/vector-context"
        try:
            if self._client is not None:
                response = await self._client.get(url)
            else:
                async with httpx.AsyncClient(timeout=10.0) as client:
                    response = await client.get(url)
            if response.is_success:
                context = response.json().get("context")
                if isinstance(context, str):
                    self._context = context
            self._loaded = True
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to load vector context: {e}")

        return self._context
