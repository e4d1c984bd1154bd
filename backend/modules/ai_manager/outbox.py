"""
Persistence outbox.

Write-backs from the chat session (message inserts, conversation metadata
updates) are appended here instead of being awaited inline. A single
background task drains the queue in FIFO order, retrying each entry with
exponential backoff; entries that exhaust their attempts are moved to a
dead-letter list so failures stay observable. When a journal path is set,
pending entries are mirrored to disk and replayed on the next start.
"""

import asyncio
import json
from collections import deque
from enum import StrEnum
from pathlib import Path
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from config import settings
from modules.message_store.base import MessageStore
from utils.logging import get_logger

logger = get_logger("ai_manager.outbox")


class OutboxError(Exception):
    """Raised by flush() when the drain task stopped with entries still queued."""


class OutboxOperation(StrEnum):
    """Store operations that may be deferred."""
    CREATE_MESSAGE = "create_message"
    UPDATE_CONVERSATION = "update_conversation"


class OutboxEntry(BaseModel):
    """One intended write."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    operation: OutboxOperation
    payload: dict[str, Any]
    attempts: int = 0
    last_error: Optional[str] = None


class PersistenceOutbox:
    """FIFO queue of store writes drained by one background task."""

    def __init__(
        self,
        store: MessageStore,
        max_attempts: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        journal_path: Optional[str] = None,
    ):
        self.store = store
        self.max_attempts = max_attempts if max_attempts is not None else settings.outbox_max_attempts
        self.retry_base_delay = (
            retry_base_delay if retry_base_delay is not None else settings.outbox_retry_base_delay
        )
        journal_path = journal_path if journal_path is not None else settings.outbox_journal_path
        self.journal_path = Path(journal_path).expanduser() if journal_path else None

        self._queue: deque[OutboxEntry] = deque()
        self.dead_letters: list[OutboxEntry] = []
        self._idle = asyncio.Event()
        self._wakeup = asyncio.Event()
        self._worker: Optional[asyncio.Task] = None

        self._load_journal()
        if not self._queue:
            self._idle.set()

    @property
    def pending(self) -> list[OutboxEntry]:
        return list(self._queue)

    def enqueue(self, operation: OutboxOperation, **payload: Any) -> OutboxEntry:
        """
        Append a write and make sure the drain task is running.

        Must be called from a running event loop.
        """
        entry = OutboxEntry(operation=operation, payload=payload)
        self._queue.append(entry)
        self._idle.clear()
        self._write_journal()
        self._ensure_worker()
        self._wakeup.set()
        return entry

    def start(self) -> None:
        """Start draining entries replayed from the journal."""
        if self._queue:
            self._ensure_worker()
            self._wakeup.set()

    async def flush(self) -> None:
        """
        Wait until every queued entry has been applied or dead-lettered.

        Raises:
            OutboxError: If the drain task stops before the queue is empty
        """
        if self._queue:
            self._ensure_worker()
            self._wakeup.set()
        if self._idle.is_set():
            return

        worker = self._worker
        idle = asyncio.ensure_future(self._idle.wait())
        try:
            await asyncio.wait({idle, worker}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not idle.done():
                idle.cancel()

        if self._idle.is_set():
            return
        if worker.cancelled():
            raise OutboxError(f"Outbox closed with {len(self._queue)} pending entries")
        error = worker.exception()
        raise OutboxError(f"Outbox drain stopped: {error}") from error

    async def close(self) -> None:
        """Stop the drain task. Pending entries stay in the journal."""
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        while True:
            if not self._queue:
                self._idle.set()
                self._wakeup.clear()
                await self._wakeup.wait()
                continue

            entry = self._queue[0]
            try:
                await self._apply(entry)
            except Exception as e:
                entry.attempts += 1
                entry.last_error = str(e)
                logger.error(
                    f"Outbox {entry.operation} failed "
                    f"(attempt {entry.attempts}/{self.max_attempts}): {e}"
                )
                if entry.attempts >= self.max_attempts:
                    self._queue.popleft()
                    self.dead_letters.append(entry)
                    self._write_journal()
                    logger.error(f"Outbox entry {entry.id} dead-lettered after {entry.attempts} attempts")
                else:
                    self._write_journal()
                    await asyncio.sleep(self.retry_base_delay * (2 ** (entry.attempts - 1)))
                continue

            self._queue.popleft()
            self._write_journal()
            logger.debug(f"Outbox {entry.operation} applied ({entry.id})")

    async def _apply(self, entry: OutboxEntry) -> None:
        operation = getattr(self.store, entry.operation.value)
        await operation(**entry.payload)

    def _load_journal(self) -> None:
        if self.journal_path is None or not self.journal_path.exists():
            return
        try:
            raw_entries = json.loads(self.journal_path.read_text(encoding="utf-8"))
            for raw in raw_entries:
                self._queue.append(OutboxEntry.model_validate(raw))
        except (OSError, ValueError) as e:
            logger.error(f"Failed to replay outbox journal {self.journal_path}: {e}")
            return
        if self._queue:
            logger.info(f"Replaying {len(self._queue)} pending outbox entries")

    def _write_journal(self) -> None:
        if self.journal_path is None:
            return
        try:
            self.journal_path.parent.mkdir(parents=True, exist_ok=True)
            self.journal_path.write_text(
                json.dumps([entry.model_dump(mode="json") for entry in self._queue]),
                encoding="utf-8",
            )
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write outbox journal {self.journal_path}: {e}")
