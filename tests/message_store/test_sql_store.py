import asyncio

import pytest

from modules.message_store.base import ConversationNotFoundError
from modules.message_store.sql_store import SqlMessageStore


@pytest.fixture
async def store(db_tables):
    return SqlMessageStore()


async def test_create_and_fetch_conversation(store):
    conversation_id = await store.create_conversation("user-1", "admin", metadata={"source": "chat"})

    record = await store.get_conversation_by_id(conversation_id)

    assert record is not None
    assert record.id == conversation_id
    assert record.user_id == "user-1"
    assert record.user_role == "admin"
    assert record.title is None
    assert record.metadata == {"source": "chat"}
    assert record.last_message_at is not None


async def test_get_conversation_by_unknown_id(store, conversation_id):
    assert await store.get_conversation_by_id(conversation_id) is None
    assert await store.get_conversation_by_id("not-a-uuid") is None


async def test_update_leaves_unset_fields(store):
    conversation_id = await store.create_conversation("user-1", "admin")

    await store.update_conversation(conversation_id, title="First title", description="First answer")
    await store.update_conversation(conversation_id, previous_response_id="resp_2")

    record = await store.get_conversation_by_id(conversation_id)
    assert record.title == "First title"
    assert record.description == "First answer"
    assert record.previous_response_id == "resp_2"


async def test_update_last_write_wins(store):
    conversation_id = await store.create_conversation("user-1", "admin")

    await store.update_conversation(conversation_id, title="Tab one")
    await store.update_conversation(conversation_id, title="Tab two")

    record = await store.get_conversation_by_id(conversation_id)
    assert record.title == "Tab two"


async def test_update_unknown_conversation(store, conversation_id):
    with pytest.raises(ConversationNotFoundError):
        await store.update_conversation(conversation_id, title="x")
    with pytest.raises(ConversationNotFoundError):
        await store.update_conversation("garbage", title="x")


async def test_conversations_ordered_by_last_activity(store):
    older = await store.create_conversation("user-1", "admin")
    await asyncio.sleep(0.01)
    newer = await store.create_conversation("user-1", "admin")
    await store.create_conversation("user-2", "member")

    assert [c.id for c in await store.get_user_conversations("user-1")] == [newer, older]

    await asyncio.sleep(0.01)
    await store.update_conversation(older, title="Bumped")

    assert [c.id for c in await store.get_user_conversations("user-1")] == [older, newer]
    assert len(await store.get_user_conversations("user-1", limit=1)) == 1


async def test_messages_in_creation_order(store):
    conversation_id = await store.create_conversation("user-1", "admin")

    await store.create_message(conversation_id, "user", "Hi", user_id="user-1")
    await asyncio.sleep(0.01)
    await store.create_message(conversation_id, "assistant", "Hello", provider_response_id="resp_1")

    messages = await store.get_conversation_messages(conversation_id)

    assert [(m.role, m.content) for m in messages] == [("user", "Hi"), ("assistant", "Hello")]
    assert messages[0].conversation_id == conversation_id
    assert messages[1].provider_response_id == "resp_1"


async def test_message_for_unknown_conversation(store, conversation_id):
    with pytest.raises(ConversationNotFoundError):
        await store.create_message(conversation_id, "user", "Hi")


async def test_messages_of_unknown_conversation_are_empty(store, conversation_id):
    assert await store.get_conversation_messages(conversation_id) == []
    assert await store.get_conversation_messages("garbage") == []
