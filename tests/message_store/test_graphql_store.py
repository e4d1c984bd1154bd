import json

import httpx
import pytest

from modules.message_store.graphql_store import GraphQLError, GraphQLMessageStore
from modules.message_store.queries import UPDATE_AI_CONVERSATION


class GraphQLStub:
    """Records GraphQL requests and replies with queued payloads."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, json=response)

    def body(self, index=0):
        return json.loads(self.requests[index].content)


def make_store(stub, api_key="service-key"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(stub))
    return GraphQLMessageStore(url="http://graphql.test/graphql/v1", api_key=api_key, client=client)


async def test_create_conversation_returns_id(conversation_id):
    stub = GraphQLStub({"data": {"insertIntoai_conversationsCollection": {"records": [{"id": conversation_id}]}}})
    store = make_store(stub)

    result = await store.create_conversation("user-1", "admin", metadata={"source": "chat"})

    assert result == conversation_id
    request = stub.requests[0]
    assert request.headers["apikey"] == "service-key"
    assert request.headers["authorization"] == "Bearer service-key"
    row = stub.body()["variables"]["objects"][0]
    assert row["user_id"] == "user-1"
    assert row["user_role"] == "admin"
    assert row["title"] is None
    assert json.loads(row["metadata"]) == {"source": "chat"}
    assert row["last_message_at"]


async def test_create_conversation_without_records_fails():
    stub = GraphQLStub({"data": {"insertIntoai_conversationsCollection": {"records": []}}})
    store = make_store(stub)

    with pytest.raises(GraphQLError):
        await store.create_conversation("user-1", "admin")


async def test_graphql_errors_raise():
    stub = GraphQLStub({"errors": [{"message": "permission denied"}]})
    store = make_store(stub)

    with pytest.raises(GraphQLError, match="permission denied"):
        await store.get_user_conversations("user-1")


async def test_http_errors_raise():
    stub = GraphQLStub(httpx.Response(503, text="unavailable"))
    store = make_store(stub)

    with pytest.raises(httpx.HTTPStatusError):
        await store.get_user_conversations("user-1")


async def test_no_auth_headers_without_key():
    stub = GraphQLStub({"data": {"ai_conversationsCollection": {"edges": []}}})
    store = make_store(stub, api_key="")

    assert await store.get_user_conversations("user-1") == []
    assert "apikey" not in stub.requests[0].headers


async def test_update_conversation_sends_only_set_fields(conversation_id):
    stub = GraphQLStub({"data": {"updateai_conversationsCollection": {"affectedCount": 1}}})
    store = make_store(stub)

    await store.update_conversation(conversation_id, title="Hello there", previous_response_id="resp_1")

    body = stub.body()
    assert body["query"] == UPDATE_AI_CONVERSATION
    assert body["variables"]["id"] == conversation_id
    values = body["variables"]["set"]
    assert values["title"] == "Hello there"
    assert values["previous_response_id"] == "resp_1"
    assert "description" not in values
    assert "last_message_at" in values


async def test_get_user_conversations_decodes_metadata(conversation_id):
    node = {
        "id": conversation_id,
        "user_id": "user-1",
        "user_role": "admin",
        "title": "Hello there",
        "description": "Hi!",
        "metadata": '{"source": "chat"}',
        "previous_response_id": "resp_1",
        "last_message_at": "2024-05-01T10:00:00+00:00",
        "created_at": "2024-05-01T09:00:00+00:00",
    }
    stub = GraphQLStub({"data": {"ai_conversationsCollection": {"edges": [{"node": node}]}}})
    store = make_store(stub)

    conversations = await store.get_user_conversations("user-1", limit=10)

    assert len(conversations) == 1
    assert conversations[0].id == conversation_id
    assert conversations[0].metadata == {"source": "chat"}
    assert conversations[0].previous_response_id == "resp_1"
    variables = stub.body()["variables"]
    assert variables["filter"] == {"user_id": {"eq": "user-1"}}
    assert variables["limit"] == 10


async def test_get_conversation_by_id_missing(conversation_id):
    stub = GraphQLStub({"data": {"ai_conversationsCollection": {"edges": []}}})
    store = make_store(stub)

    assert await store.get_conversation_by_id(conversation_id) is None


async def test_create_message(conversation_id):
    stub = GraphQLStub({"data": {"insertIntoai_messagesCollection": {"affectedCount": 1}}})
    store = make_store(stub)

    await store.create_message(conversation_id, "assistant", "Hello", user_id="user-1", provider_response_id="resp_1")

    row = stub.body()["variables"]["objects"][0]
    assert row == {
        "conversation_id": conversation_id,
        "user_id": "user-1",
        "role": "assistant",
        "content": "Hello",
        "provider_response_id": "resp_1",
        "metadata": None,
    }


async def test_create_message_without_affected_rows_fails(conversation_id):
    stub = GraphQLStub({"data": {"insertIntoai_messagesCollection": {"affectedCount": 0}}})
    store = make_store(stub)

    with pytest.raises(GraphQLError):
        await store.create_message(conversation_id, "user", "Hi")


async def test_get_conversation_messages(conversation_id):
    edges = [
        {"node": {"id": "m1", "conversation_id": conversation_id, "role": "user", "content": "Hi",
                  "created_at": "2024-05-01T10:00:00+00:00"}},
        {"node": {"id": "m2", "conversation_id": conversation_id, "role": "assistant",
                  "content": '{"description": "Hello"}', "provider_response_id": "resp_1",
                  "created_at": "2024-05-01T10:00:01+00:00"}},
    ]
    stub = GraphQLStub({"data": {"ai_messagesCollection": {"edges": edges}}})
    store = make_store(stub)

    messages = await store.get_conversation_messages(conversation_id)

    assert [m.id for m in messages] == ["m1", "m2"]
    assert messages[1].provider_response_id == "resp_1"
