import pytest
from fastapi.testclient import TestClient

from main import app
from modules.message_store.base import ConversationNotFoundError, MessageStoreError
from modules.message_store.service import get_message_store
from schemas.conversation import ConversationRecord, MessageRecord

CONVERSATION_ID = "7b1d3c52-3f5a-4c1e-9a7e-2f4b8d6e1a90"


class StubStore:
    def __init__(self, fail=False):
        self.fail = fail
        self.updates = []
        self.messages = []

    def _check(self):
        if self.fail:
            raise MessageStoreError("all backends down")

    async def get_user_conversations(self, user_id, limit=50):
        self._check()
        return [ConversationRecord(id=CONVERSATION_ID, user_id=user_id, title="Hello there")]

    async def create_conversation(self, user_id, user_role, title=None, description=None,
                                  metadata=None, previous_response_id=None):
        self._check()
        return CONVERSATION_ID

    async def get_conversation_by_id(self, conversation_id):
        self._check()
        if conversation_id != CONVERSATION_ID:
            return None
        return ConversationRecord(id=CONVERSATION_ID, user_id="user-1")

    async def update_conversation(self, conversation_id, title=None, description=None,
                                  previous_response_id=None):
        self._check()
        if conversation_id != CONVERSATION_ID:
            raise ConversationNotFoundError(conversation_id)
        self.updates.append((conversation_id, title, description, previous_response_id))

    async def get_conversation_messages(self, conversation_id, limit=1000):
        self._check()
        return [MessageRecord(id="m1", conversation_id=conversation_id, role="user", content="Hi")]

    async def create_message(self, conversation_id, role, content, user_id=None,
                             provider_response_id=None, metadata=None):
        self._check()
        if conversation_id != CONVERSATION_ID:
            raise ConversationNotFoundError(conversation_id)
        self.messages.append((conversation_id, role, content))


@pytest.fixture
def store():
    stub = StubStore()
    app.dependency_overrides[get_message_store] = lambda: stub
    yield stub
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


def test_list_conversations(client, store):
    response = client.get("/api/ai/conversations", params={"user_id": "user-1"})

    assert response.status_code == 200
    conversations = response.json()["conversations"]
    assert conversations[0]["id"] == CONVERSATION_ID
    assert conversations[0]["title"] == "Hello there"


def test_create_conversation(client, store):
    response = client.post("/api/ai/conversations", json={"user_id": "user-1", "user_role": "admin"})

    assert response.status_code == 201
    assert response.json() == {"id": CONVERSATION_ID}


def test_get_conversation(client, store):
    assert client.get(f"/api/ai/conversations/{CONVERSATION_ID}").status_code == 200
    assert client.get("/api/ai/conversations/unknown").status_code == 404


def test_update_conversation(client, store):
    response = client.patch(f"/api/ai/conversations/{CONVERSATION_ID}", json={"title": "New title"})

    assert response.status_code == 204
    assert store.updates == [(CONVERSATION_ID, "New title", None, None)]


def test_update_unknown_conversation(client, store):
    response = client.patch("/api/ai/conversations/unknown", json={"title": "x"})
    assert response.status_code == 404


def test_messages(client, store):
    response = client.get(f"/api/ai/conversations/{CONVERSATION_ID}/messages")
    assert response.status_code == 200
    assert response.json()["messages"][0]["content"] == "Hi"

    response = client.post(
        f"/api/ai/conversations/{CONVERSATION_ID}/messages",
        json={"role": "assistant", "content": "Hello"},
    )
    assert response.status_code == 201
    assert store.messages == [(CONVERSATION_ID, "assistant", "Hello")]


def test_store_failure_returns_500(client):
    app.dependency_overrides[get_message_store] = lambda: StubStore(fail=True)
    try:
        response = client.get("/api/ai/conversations", params={"user_id": "user-1"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
