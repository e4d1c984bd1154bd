import asyncio
import json

import pytest

from modules.ai_manager.outbox import OutboxError, OutboxOperation, PersistenceOutbox


class FlakyStore:
    """Records writes; the first `failures` calls raise."""

    def __init__(self, failures=0):
        self.failures = failures
        self.calls = []

    async def _record(self, operation, payload):
        if self.failures > 0:
            self.failures -= 1
            raise RuntimeError("store unavailable")
        self.calls.append((operation, payload))

    async def create_message(self, **payload):
        await self._record("create_message", payload)

    async def update_conversation(self, **payload):
        await self._record("update_conversation", payload)


async def test_applies_entries_in_order():
    store = FlakyStore()
    outbox = PersistenceOutbox(store, max_attempts=3, retry_base_delay=0, journal_path="")

    outbox.enqueue(OutboxOperation.CREATE_MESSAGE, conversation_id="c1", role="user", content="Hi")
    outbox.enqueue(OutboxOperation.CREATE_MESSAGE, conversation_id="c1", role="assistant", content="Hello")
    outbox.enqueue(OutboxOperation.UPDATE_CONVERSATION, conversation_id="c1", title="Hi")
    await outbox.flush()
    await outbox.close()

    assert [(op, payload.get("content", payload.get("title"))) for op, payload in store.calls] == [
        ("create_message", "Hi"),
        ("create_message", "Hello"),
        ("update_conversation", "Hi"),
    ]
    assert outbox.pending == []
    assert outbox.dead_letters == []


async def test_retries_until_success():
    store = FlakyStore(failures=2)
    outbox = PersistenceOutbox(store, max_attempts=3, retry_base_delay=0, journal_path="")

    outbox.enqueue(OutboxOperation.CREATE_MESSAGE, conversation_id="c1", role="user", content="Hi")
    await outbox.flush()
    await outbox.close()

    assert len(store.calls) == 1
    assert outbox.dead_letters == []


async def test_dead_letters_after_max_attempts():
    store = FlakyStore(failures=10)
    outbox = PersistenceOutbox(store, max_attempts=2, retry_base_delay=0, journal_path="")

    outbox.enqueue(OutboxOperation.CREATE_MESSAGE, conversation_id="c1", role="user", content="Hi")
    outbox.enqueue(OutboxOperation.UPDATE_CONVERSATION, conversation_id="c1", title="Hi")
    await outbox.flush()
    await outbox.close()

    assert [entry.operation for entry in outbox.dead_letters] == [
        OutboxOperation.CREATE_MESSAGE,
        OutboxOperation.UPDATE_CONVERSATION,
    ]
    assert outbox.dead_letters[0].attempts == 2
    assert outbox.dead_letters[0].last_error == "store unavailable"


async def test_flush_with_nothing_queued():
    outbox = PersistenceOutbox(FlakyStore(), journal_path="")
    await outbox.flush()
    await outbox.close()


async def test_journal_replays_pending_entries(tmp_path):
    journal = tmp_path / "outbox.json"
    failing = FlakyStore(failures=100)
    first = PersistenceOutbox(failing, max_attempts=100, retry_base_delay=60, journal_path=str(journal))

    first.enqueue(OutboxOperation.CREATE_MESSAGE, conversation_id="c1", role="user", content="Hi")
    await first.close()

    saved = json.loads(journal.read_text())
    assert [entry["operation"] for entry in saved] == ["create_message"]

    store = FlakyStore()
    second = PersistenceOutbox(store, retry_base_delay=0, journal_path=str(journal))
    assert len(second.pending) == 1

    second.start()
    await second.flush()
    await second.close()

    assert store.calls == [("create_message", {"conversation_id": "c1", "role": "user", "content": "Hi"})]
    assert json.loads(journal.read_text()) == []


async def test_unserializable_payload_does_not_stop_drain(tmp_path):
    store = FlakyStore()
    marker = object()
    outbox = PersistenceOutbox(store, retry_base_delay=0, journal_path=str(tmp_path / "outbox.json"))

    outbox.enqueue(OutboxOperation.CREATE_MESSAGE, conversation_id="c1", role="user", content="Hi", metadata=marker)
    await asyncio.wait_for(outbox.flush(), timeout=1)
    await outbox.close()

    assert store.calls[0][1]["metadata"] is marker


async def test_flush_raises_when_drain_task_dies():
    outbox = PersistenceOutbox(FlakyStore(), retry_base_delay=0, journal_path="")
    outbox.enqueue(OutboxOperation.CREATE_MESSAGE, conversation_id="c1", role="user", content="Hi")

    def broken_journal():
        raise RuntimeError("disk gone")

    outbox._write_journal = broken_journal

    with pytest.raises(OutboxError, match="disk gone"):
        await asyncio.wait_for(outbox.flush(), timeout=1)
    await outbox.close()
