"""At-most-one-turn-per-thread guard."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Set


class TurnInProgressError(Exception):
    """A turn is already running for this thread."""

    def __init__(self, thread_id: str):
        super().__init__(f"A message is already being processed for thread {thread_id}")
        self.thread_id = thread_id


class TurnGuard:
    """Rejects a second submission for a thread while one is in flight."""

    def __init__(self):
        self._active: Set[str] = set()

    def is_active(self, thread_id: str) -> bool:
        return thread_id in self._active

    @asynccontextmanager
    async def hold(self, thread_id: str) -> AsyncIterator[None]:
        """
        Claim a thread for the duration of a turn.

        Raises:
            TurnInProgressError: If the thread is already claimed
        """
        if thread_id in self._active:
            raise TurnInProgressError(thread_id)
        self._active.add(thread_id)
        try:
            yield
        finally:
            self._active.discard(thread_id)
