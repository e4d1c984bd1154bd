import json

import httpx
import pytest

from modules.ai_manager.transport import ChatClient, ChatRequestPayload, ContextClient


def make_payload(**overrides):
    values = {
        "system_prompt": "Be brief.",
        "user_message": "Hi",
        "model": "gpt-4o-mini",
        "provider_api_key": "sk-test",
        "provider_name": "openai",
    }
    values.update(overrides)
    return ChatRequestPayload(**values)


async def test_stream_posts_camel_case_and_exposes_response_id():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(
            200,
            headers={"x-response-id": "resp_9", "content-type": "text/plain; charset=utf-8"},
            content=b'{"description": "Hello"}',
        )

    client = ChatClient(base_url="http://chat.test/", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    async with client.stream(make_payload(previous_response_id="resp_8")) as stream:
        assert stream.response_id == "resp_9"
        text = "".join([chunk async for chunk in stream.iter_text()])

    assert text == '{"description": "Hello"}'
    assert str(seen[0].url) == "http://chat.test/api/chat"
    assert json.loads(seen[0].content) == {
        "systemPrompt": "Be brief.",
        "previousResponseId": "resp_8",
        "userMessage": "Hi",
        "model": "gpt-4o-mini",
        "providerApiKey": "sk-test",
        "providerName": "openai",
    }


async def test_stream_raises_on_http_error():
    def handler(request):
        return httpx.Response(502, text="bad gateway")

    client = ChatClient(base_url="http://chat.test", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    with pytest.raises(httpx.HTTPStatusError):
        async with client.stream(make_payload()):
            pass


async def test_context_client_caches():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"context": "Found 2 documents in vector store."})

    client = ContextClient(base_url="http://chat.test", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    assert await client.get_context() == "Found 2 documents in vector store."
    assert await client.get_context() == "Found 2 documents in vector store."
    assert len(calls) == 1
    assert calls[0].url.path == "/api/openai/vector-context"


async def test_context_client_failure_returns_none():
    def handler(request):
        raise httpx.ConnectError("refused")

    client = ContextClient(base_url="http://chat.test", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    assert await client.get_context() is None
