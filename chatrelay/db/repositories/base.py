"""Base repository class."""

from typing import Any, List, Optional, Sequence

import duckdb
from ...utils.logger import get_app_logger


class BaseRepository:
    """Base class for all repositories."""

    def __init__(self, conn: duckdb.DuckDBPyConnection):
        """
        Initialize repository with database connection.

        Args:
            conn: DuckDB connection instance
        """
        self.conn = conn
        self.logger = get_app_logger()

    def _write(self, sql: str, params: Sequence[Any], action: str) -> bool:
        """
        Execute a write statement and commit.

        Args:
            sql: Statement to execute
            params: Positional parameters
            action: Short description used in the failure log line

        Returns:
            True if successful, False otherwise
        """
        try:
            self.conn.execute(sql, list(params))
            self.conn.commit()
            return True
        except Exception as e:
            self.logger.error(f"Failed to {action}: {e}")
            return False

    def _fetch_one(self, sql: str, params: Sequence[Any], action: str) -> Optional[tuple]:
        try:
            return self.conn.execute(sql, list(params)).fetchone()
        except Exception as e:
            self.logger.error(f"Failed to {action}: {e}")
            return None

    def _fetch_all(self, sql: str, params: Sequence[Any], action: str) -> List[tuple]:
        try:
            return self.conn.execute(sql, list(params)).fetchall()
        except Exception as e:
            self.logger.error(f"Failed to {action}: {e}")
            return []
