"""Database connection and schema management."""

import duckdb
from typing import Optional
from pathlib import Path
from ..utils.logger import get_app_logger


class DatabaseConnection:
    """DuckDB connection manager."""

    def __init__(self, db_path: str = "./data/chatrelay.db"):
        """
        Initialize database connection.

        Args:
            db_path: Path to DuckDB database file
        """
        self.db_path = db_path
        self.logger = get_app_logger()
        self.conn: Optional[duckdb.DuckDBPyConnection] = None

        db_dir = Path(db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)

        self._connect()
        self._init_schema()

    def _connect(self):
        """Connect to DuckDB database."""
        try:
            self.conn = duckdb.connect(self.db_path)
            self.logger.info(f"Connected to DuckDB at {self.db_path}")
        except Exception as e:
            self.logger.error(f"Failed to connect to DuckDB: {e}")
            raise

    def _init_schema(self):
        """Initialize database schema."""
        try:
            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS configurations (
                    id VARCHAR PRIMARY KEY,
                    name VARCHAR NOT NULL,
                    api_key VARCHAR NOT NULL,
                    assistant_id VARCHAR,
                    vector_store_id VARCHAR,
                    model VARCHAR NOT NULL,
                    mode VARCHAR NOT NULL,
                    webhook_url VARCHAR,
                    is_default BOOLEAN DEFAULT FALSE,
                    created_at TIMESTAMP NOT NULL
                )
            """)

            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS threads (
                    id VARCHAR PRIMARY KEY,
                    name VARCHAR NOT NULL,
                    configuration_id VARCHAR,
                    has_default_name BOOLEAN DEFAULT FALSE,
                    created_at TIMESTAMP NOT NULL,
                    last_activity TIMESTAMP NOT NULL
                )
            """)

            # Append-only; id order is insertion order
            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS messages (
                    id BIGINT PRIMARY KEY,
                    thread_id VARCHAR NOT NULL,
                    role VARCHAR NOT NULL,
                    content VARCHAR NOT NULL,
                    timestamp TIMESTAMP NOT NULL,
                    attachments JSON
                )
            """)

            self.conn.execute("CREATE INDEX IF NOT EXISTS idx_configurations_default ON configurations(is_default)")
            self.conn.execute("CREATE INDEX IF NOT EXISTS idx_threads_activity ON threads(last_activity)")
            self.conn.execute("CREATE INDEX IF NOT EXISTS idx_messages_thread ON messages(thread_id)")

            self.conn.execute("CREATE SEQUENCE IF NOT EXISTS messages_id_seq START 1")

            self.logger.info("Database schema initialized successfully")

        except Exception as e:
            self.logger.error(f"Failed to initialize database schema: {e}")
            raise

    def close(self):
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.logger.info("Database connection closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
