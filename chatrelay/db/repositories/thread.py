"""Thread repository for database operations."""

from datetime import datetime
from typing import Optional, List
from .base import BaseRepository
from ..database_models.thread import ThreadDO


_COLUMNS = "id, name, configuration_id, has_default_name, created_at, last_activity"


def _from_row(row) -> ThreadDO:
    return ThreadDO(
        id=row[0],
        name=row[1],
        configuration_id=row[2],
        has_default_name=bool(row[3]),
        created_at=row[4],
        last_activity=row[5]
    )


class ThreadRepository(BaseRepository):
    """Repository for Thread CRUD operations."""

    def create(self, thread: ThreadDO) -> bool:
        """
        Create a new thread record.

        Args:
            thread: ThreadDO instance

        Returns:
            True if successful, False otherwise (including duplicate ids)
        """
        created = self._write(f"""
            INSERT INTO threads ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?)
        """, [
            thread.id,
            thread.name,
            thread.configuration_id,
            thread.has_default_name,
            thread.created_at,
            thread.last_activity
        ], "create thread")
        if created:
            self.logger.info(f"Created thread record: {thread.id} ({thread.name})")
        return created

    def get(self, thread_id: str) -> Optional[ThreadDO]:
        """
        Get thread by ID.

        Args:
            thread_id: Thread ID

        Returns:
            ThreadDO instance or None
        """
        row = self._fetch_one(
            f"SELECT {_COLUMNS} FROM threads WHERE id = ?",
            [thread_id],
            f"get thread {thread_id}"
        )
        return _from_row(row) if row else None

    def list_all(self) -> List[ThreadDO]:
        """
        List all threads, most recently active first.

        Returns:
            List of ThreadDO instances
        """
        rows = self._fetch_all(
            f"SELECT {_COLUMNS} FROM threads ORDER BY last_activity DESC",
            [],
            "list threads"
        )
        return [_from_row(row) for row in rows]

    def count(self) -> int:
        row = self._fetch_one("SELECT COUNT(*) FROM threads", [], "count threads")
        return row[0] if row else 0

    def rename(self, thread_id: str, name: str) -> bool:
        """Set a chosen name; the thread no longer counts as default-named."""
        return self._write(
            "UPDATE threads SET name = ?, has_default_name = FALSE WHERE id = ?",
            [name, thread_id],
            "rename thread"
        )

    def touch(self, thread_id: str, when: Optional[datetime] = None) -> bool:
        """Bump last_activity for a thread."""
        return self._write(
            "UPDATE threads SET last_activity = ? WHERE id = ?",
            [when or datetime.utcnow(), thread_id],
            "update thread activity"
        )

    def delete(self, thread_id: str) -> bool:
        """
        Delete thread by ID.

        Args:
            thread_id: Thread ID

        Returns:
            True if successful, False otherwise
        """
        deleted = self._write("DELETE FROM threads WHERE id = ?", [thread_id], "delete thread")
        if deleted:
            self.logger.info(f"Deleted thread record: {thread_id}")
        return deleted
