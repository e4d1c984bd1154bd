import pytest
from langchain_openai import ChatOpenAI

from modules.chat.errors import ProviderRoutingError
from modules.chat.providers import ProviderName, build_chat_model, provider_from_model, route_provider


@pytest.mark.parametrize(
    "model, provider",
    [
        ("gpt-4o-mini", ProviderName.OPENAI),
        ("GPT-4.1", ProviderName.OPENAI),
        ("azure-openai-gpt", ProviderName.OPENAI),
        ("gemini-1.5-flash", ProviderName.GEMINI),
        ("models/gemini-pro", ProviderName.GEMINI),
        ("claude-3-opus", None),
        ("", None),
    ],
)
def test_provider_from_model(model, provider):
    assert provider_from_model(model) == provider


def test_route_provider_by_substring():
    assert route_provider("Google Gemini") == ProviderName.GEMINI
    assert route_provider("openai") == ProviderName.OPENAI


def test_route_provider_unknown():
    with pytest.raises(ProviderRoutingError, match="Unsupported provider: anthropic"):
        route_provider("anthropic")


@pytest.mark.parametrize("api_key", [None, "", "   ", 42])
def test_build_chat_model_requires_key(api_key):
    with pytest.raises(ProviderRoutingError, match="No API key provided for openai"):
        build_chat_model("openai", api_key, "gpt-4o-mini")


def test_build_chat_model_rejects_unknown_provider():
    with pytest.raises(ProviderRoutingError, match="Unsupported provider"):
        build_chat_model("mistral", "key", "mistral-large")


def test_build_openai_model_uses_responses_api():
    model = build_chat_model("openai", "  sk-test  ", "gpt-4o-mini")
    assert isinstance(model, ChatOpenAI)
    assert model.model_name == "gpt-4o-mini"
    assert model.use_responses_api is True
    assert model.openai_api_key.get_secret_value() == "sk-test"
