"""Conversation store - threads and their messages."""

import asyncio
import weakref
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from ..db import DatabaseConnection, ThreadRepository, MessageRepository
from ..db.database_models import ThreadDO, MessageDO
from ..utils.logger import get_app_logger


class ConversationStore(ABC):
    """What the orchestrator needs from thread/message storage."""

    @abstractmethod
    async def get_thread(self, thread_id: str) -> Optional[ThreadDO]:
        """Look up a thread."""
        pass

    @abstractmethod
    async def list_messages(self, thread_id: str, limit: Optional[int] = None) -> List[MessageDO]:
        """Messages of a thread, oldest first; the most recent ``limit`` when given."""
        pass

    @abstractmethod
    async def append_message(self, message: MessageDO) -> MessageDO:
        """Append a message and return it with its store-assigned id."""
        pass

    @abstractmethod
    async def rename_thread(self, thread_id: str, name: str) -> bool:
        """Rename a thread."""
        pass


class DuckDBConversationStore(ConversationStore):
    """Store backed by the duckdb repositories."""

    def __init__(self, db: DatabaseConnection):
        self.db = db
        self.threads = ThreadRepository(db.conn)
        self.messages = MessageRepository(db.conn)
        self.logger = get_app_logger()
        # Entries vanish once no coroutine holds or waits on the lock
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, thread_id: str) -> asyncio.Lock:
        lock = self._locks.get(thread_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[thread_id] = lock
        return lock

    async def create_thread(self, thread: ThreadDO) -> ThreadDO:
        """
        Persist a new thread.

        Raises:
            ValueError: If the id is already taken or the write fails
        """
        if self.threads.get(thread.id) is not None:
            raise ValueError(f"Thread already exists: {thread.id}")
        if not self.threads.create(thread):
            raise ValueError(f"Failed to create thread: {thread.id}")
        return thread

    async def list_threads(self) -> List[ThreadDO]:
        return self.threads.list_all()

    async def count_threads(self) -> int:
        return self.threads.count()

    async def get_thread(self, thread_id: str) -> Optional[ThreadDO]:
        return self.threads.get(thread_id)

    async def delete_thread(self, thread_id: str) -> bool:
        """Delete a thread together with its messages."""
        async with self._lock_for(thread_id):
            if self.threads.get(thread_id) is None:
                return False
            self.messages.delete_by_thread(thread_id)
            deleted = self.threads.delete(thread_id)
        return deleted

    async def list_messages(self, thread_id: str, limit: Optional[int] = None) -> List[MessageDO]:
        return self.messages.get_by_thread(thread_id, limit=limit)

    async def append_message(self, message: MessageDO) -> MessageDO:
        """
        Append a message to an existing thread and bump its activity time.

        Raises:
            ValueError: If the thread does not exist
            RuntimeError: If the message could not be written
        """
        async with self._lock_for(message.thread_id):
            if self.threads.get(message.thread_id) is None:
                raise ValueError(f"Thread not found: {message.thread_id}")

            message_id = self.messages.add(message)
            if message_id is None:
                raise RuntimeError(f"Failed to store message for thread {message.thread_id}")

            self.threads.touch(message.thread_id, datetime.utcnow())

        return replace(message, id=message_id)

    async def rename_thread(self, thread_id: str, name: str) -> bool:
        if self.threads.get(thread_id) is None:
            return False
        renamed = self.threads.rename(thread_id, name)
        if renamed:
            self.logger.info(f"Renamed thread {thread_id} to '{name}'")
        return renamed
