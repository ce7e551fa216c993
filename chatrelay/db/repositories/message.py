"""Message repository for database operations."""

import json
from typing import Optional, List
from .base import BaseRepository
from ..database_models.message import MessageDO, AttachmentDO


_COLUMNS = "id, thread_id, role, content, timestamp, attachments"


def _from_row(row) -> MessageDO:
    raw = row[5]
    if isinstance(raw, str):
        raw = json.loads(raw)
    return MessageDO(
        id=row[0],
        thread_id=row[1],
        role=row[2],
        content=row[3],
        timestamp=row[4],
        attachments=[AttachmentDO(**item) for item in (raw or [])]
    )


class MessageRepository(BaseRepository):
    """Repository for Message append/read operations."""

    def add(self, message: MessageDO) -> Optional[int]:
        """
        Append a message.

        Args:
            message: MessageDO instance

        Returns:
            Message ID if successful, None otherwise
        """
        try:
            result = self.conn.execute(f"""
                INSERT INTO messages ({_COLUMNS})
                VALUES (nextval('messages_id_seq'), ?, ?, ?, ?, ?)
                RETURNING id
            """, [
                message.thread_id,
                message.role,
                message.content,
                message.timestamp,
                json.dumps([a.to_dict() for a in message.attachments])
            ]).fetchone()

            message_id = result[0] if result else None
            if message_id:
                self.conn.commit()
                self.logger.debug(f"Added {message.role} message {message_id} to thread {message.thread_id}")
            return message_id
        except Exception as e:
            self.logger.error(f"Failed to add message: {e}")
            return None

    def get_by_thread(self, thread_id: str, limit: Optional[int] = None) -> List[MessageDO]:
        """
        Get messages for a thread.

        Args:
            thread_id: Thread ID
            limit: Only the most recent N messages when given

        Returns:
            List of MessageDO instances (chronological order, oldest first)
        """
        if limit is None:
            rows = self._fetch_all(
                f"SELECT {_COLUMNS} FROM messages WHERE thread_id = ? ORDER BY id ASC",
                [thread_id],
                "get thread messages"
            )
            return [_from_row(row) for row in rows]

        if limit <= 0:
            return []

        rows = self._fetch_all(
            f"SELECT {_COLUMNS} FROM messages WHERE thread_id = ? ORDER BY id DESC LIMIT ?",
            [thread_id, limit],
            "get thread messages"
        )
        messages = [_from_row(row) for row in rows]

        # Reverse to get chronological order
        messages.reverse()
        return messages

    def count_by_thread(self, thread_id: str) -> int:
        row = self._fetch_one(
            "SELECT COUNT(*) FROM messages WHERE thread_id = ?", [thread_id], "count thread messages"
        )
        return row[0] if row else 0

    def delete_by_thread(self, thread_id: str) -> bool:
        """
        Delete all messages for a thread.

        Args:
            thread_id: Thread ID

        Returns:
            True if successful, False otherwise
        """
        return self._write("DELETE FROM messages WHERE thread_id = ?", [thread_id], "delete messages")
