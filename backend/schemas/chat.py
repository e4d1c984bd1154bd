"""
Chat schemas for the provider router.

IMPORTANT: the chat wire format uses camelCase in JSON.
Use Field(alias=...) for camelCase serialization while keeping
Pythonic snake_case in code.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatCompletionRequest(BaseModel):
    """Single-turn chat request sent by the session client."""

    model_config = ConfigDict(populate_by_name=True)

    system_prompt: Optional[Any] = Field(default=None, alias="systemPrompt")
    previous_response_id: Optional[str] = Field(default=None, alias="previousResponseId")
    user_message: str = Field(default="", alias="userMessage")
    model: Optional[str] = None
    provider_api_key: Optional[Any] = Field(default=None, alias="providerApiKey")
    provider_name: Optional[str] = Field(default=None, alias="providerName")


class ChatErrorResponse(BaseModel):
    """Error body returned with HTTP 200 so clients can branch on one shape."""

    description: str
    error: bool = True
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    )


class VectorContextResponse(BaseModel):
    """Knowledge base context summary."""

    context: str
