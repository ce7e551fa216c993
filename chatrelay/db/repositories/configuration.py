"""Configuration repository for database operations."""

from typing import Optional, List, Dict, Any
from .base import BaseRepository
from ..database_models.configuration import ConfigurationDO, WorkflowMode


_COLUMNS = "id, name, api_key, assistant_id, vector_store_id, model, mode, webhook_url, is_default, created_at"

_UPDATABLE = ("name", "api_key", "assistant_id", "vector_store_id", "model", "mode", "webhook_url")


def _from_row(row) -> ConfigurationDO:
    return ConfigurationDO(
        id=row[0],
        name=row[1],
        api_key=row[2],
        assistant_id=row[3],
        vector_store_id=row[4],
        model=row[5],
        mode=WorkflowMode(row[6]),
        webhook_url=row[7],
        is_default=bool(row[8]),
        created_at=row[9]
    )


class ConfigurationRepository(BaseRepository):
    """Repository for Configuration CRUD operations."""

    def create(self, config: ConfigurationDO) -> bool:
        """
        Create a new configuration record.

        Args:
            config: ConfigurationDO instance

        Returns:
            True if successful, False otherwise
        """
        created = self._write(f"""
            INSERT INTO configurations ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, [
            config.id,
            config.name,
            config.api_key,
            config.assistant_id,
            config.vector_store_id,
            config.model,
            config.mode.value,
            config.webhook_url,
            config.is_default,
            config.created_at
        ], "create configuration")
        if created:
            self.logger.info(f"Created configuration record: {config.id} ({config.name})")
        return created

    def get(self, config_id: str) -> Optional[ConfigurationDO]:
        """
        Get configuration by ID.

        Args:
            config_id: Configuration ID

        Returns:
            ConfigurationDO instance or None
        """
        row = self._fetch_one(
            f"SELECT {_COLUMNS} FROM configurations WHERE id = ?",
            [config_id],
            f"get configuration {config_id}"
        )
        return _from_row(row) if row else None

    def get_default(self) -> Optional[ConfigurationDO]:
        """Get the default configuration, if one is marked."""
        row = self._fetch_one(
            f"SELECT {_COLUMNS} FROM configurations WHERE is_default = TRUE LIMIT 1",
            [],
            "get default configuration"
        )
        return _from_row(row) if row else None

    def list_all(self) -> List[ConfigurationDO]:
        """
        List all configurations, oldest first.

        Returns:
            List of ConfigurationDO instances
        """
        rows = self._fetch_all(
            f"SELECT {_COLUMNS} FROM configurations ORDER BY created_at ASC",
            [],
            "list configurations"
        )
        return [_from_row(row) for row in rows]

    def count(self) -> int:
        row = self._fetch_one("SELECT COUNT(*) FROM configurations", [], "count configurations")
        return row[0] if row else 0

    def set_default(self, config_id: str) -> bool:
        """
        Mark one configuration as the default, clearing the flag elsewhere.

        Args:
            config_id: Configuration ID

        Returns:
            True if successful, False otherwise
        """
        try:
            self.conn.execute("UPDATE configurations SET is_default = FALSE WHERE is_default = TRUE")
            self.conn.execute("UPDATE configurations SET is_default = TRUE WHERE id = ?", [config_id])
            self.conn.commit()
            return True
        except Exception as e:
            self.logger.error(f"Failed to set default configuration: {e}")
            return False

    def update(self, config_id: str, updates: Dict[str, Any]) -> bool:
        """
        Update configuration fields.

        Args:
            config_id: Configuration ID
            updates: Dictionary of fields to update; unknown keys are ignored

        Returns:
            True if successful, False otherwise
        """
        set_clauses = []
        params = []

        for column in _UPDATABLE:
            if column in updates:
                value = updates[column]
                if isinstance(value, WorkflowMode):
                    value = value.value
                set_clauses.append(f"{column} = ?")
                params.append(value)

        if not set_clauses:
            return True

        params.append(config_id)
        return self._write(
            f"UPDATE configurations SET {', '.join(set_clauses)} WHERE id = ?",
            params,
            "update configuration"
        )

    def delete(self, config_id: str) -> bool:
        """
        Delete configuration by ID.

        Args:
            config_id: Configuration ID

        Returns:
            True if successful, False otherwise
        """
        deleted = self._write("DELETE FROM configurations WHERE id = ?", [config_id], "delete configuration")
        if deleted:
            self.logger.info(f"Deleted configuration record: {config_id}")
        return deleted
