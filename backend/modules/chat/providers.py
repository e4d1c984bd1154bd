"""
LLM provider routing.

Maps provider names and model selectors onto LangChain chat models.
Supported providers: OpenAI (Responses API, so follow-up turns can chain
on a previous response ID) and Google Gemini.
"""

from enum import StrEnum
from typing import Optional

from langchain_core.language_models import BaseChatModel
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI

from modules.chat.errors import ProviderRoutingError
from utils.logging import get_logger

logger = get_logger("chat.providers")


class ProviderName(StrEnum):
    """Known provider integrations."""
    OPENAI = "openai"
    GEMINI = "gemini"


def provider_from_model(model: str) -> Optional[ProviderName]:
    """
    Resolve a provider from a model selector.

    "gpt-*" or anything containing "openai" routes to OpenAI, anything
    containing "gemini" routes to Gemini. Unknown selectors return None.
    """
    lower = (model or "").lower()
    if lower.startswith("gpt") or "openai" in lower:
        return ProviderName.OPENAI
    if "gemini" in lower:
        return ProviderName.GEMINI
    return None


def route_provider(provider_name: str) -> ProviderName:
    """
    Route a provider name by substring match.

    Raises:
        ProviderRoutingError: If no known provider matches
    """
    lower = str(provider_name).lower()
    if "gemini" in lower:
        return ProviderName.GEMINI
    if "openai" in lower:
        return ProviderName.OPENAI
    raise ProviderRoutingError(f"Unsupported provider: {provider_name}")


def build_chat_model(provider_name: str, api_key, model: str) -> BaseChatModel:
    """
    Create a chat model client for one request.

    Args:
        provider_name: Provider name from the request
        api_key: Caller-supplied provider key
        model: Model identifier

    Returns:
        Configured LangChain chat model

    Raises:
        ProviderRoutingError: If the key is missing or the provider is unknown
    """
    trimmed_key = api_key.strip() if isinstance(api_key, str) else ""
    if not trimmed_key:
        raise ProviderRoutingError(f"No API key provided for {provider_name}")

    provider = route_provider(provider_name)

    if provider == ProviderName.GEMINI:
        logger.info(f"Using Google Generative AI (Gemini) provider, model={model}")
        return ChatGoogleGenerativeAI(model=model, google_api_key=trimmed_key)

    logger.info(f"Using OpenAI provider, model={model}")
    return ChatOpenAI(model=model, api_key=trimmed_key, use_responses_api=True)
