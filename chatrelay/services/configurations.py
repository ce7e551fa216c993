"""Configuration bookkeeping: defaults and per-turn resolution."""

import uuid
from typing import Any, Dict, Optional

from ..db import ConfigurationRepository
from ..db.database_models import ConfigurationDO, ThreadDO, WorkflowMode
from ..utils.logger import get_app_logger, mask_secret


class ConfigurationService:
    """Creates configurations and resolves the one a turn runs under."""

    def __init__(self, repo: ConfigurationRepository):
        self.repo = repo
        self.logger = get_app_logger()

    def create(
        self,
        name: str,
        api_key: str,
        model: str,
        assistant_id: Optional[str] = None,
        vector_store_id: Optional[str] = None,
        mode: Optional[WorkflowMode] = None,
        webhook_url: Optional[str] = None,
        is_default: bool = False
    ) -> ConfigurationDO:
        """
        Store a new configuration.

        The mode defaults to assisted when an assistant id is given. The first
        configuration stored always becomes the default.

        Raises:
            ValueError: If the record could not be written
        """
        if mode is None:
            mode = WorkflowMode.ASSISTED if assistant_id else WorkflowMode.DIRECT

        make_default = is_default or self.repo.count() == 0
        config = ConfigurationDO(
            id=str(uuid.uuid4()),
            name=name,
            api_key=api_key,
            model=model,
            assistant_id=assistant_id or None,
            vector_store_id=vector_store_id or None,
            mode=mode,
            webhook_url=webhook_url or None,
            is_default=False
        )
        if not self.repo.create(config):
            raise ValueError("Failed to create configuration")

        if make_default:
            self.repo.set_default(config.id)
            config.is_default = True

        self.logger.info(
            f"Configuration {config.id} ({config.name}) stored: mode={config.mode.value}, "
            f"model={config.model}, key={mask_secret(config.api_key)}"
        )
        return config

    def resolve(self, requested_id: Optional[str] = None, thread: Optional[ThreadDO] = None) -> Optional[ConfigurationDO]:
        """
        Pick the configuration for a turn.

        Order: explicitly requested id, the thread's own configuration, the
        default configuration.
        """
        if requested_id:
            return self.repo.get(requested_id)
        if thread is not None and thread.configuration_id:
            config = self.repo.get(thread.configuration_id)
            if config is not None:
                return config
        return self.repo.get_default()

    def update(self, config_id: str, updates: Dict[str, Any]) -> Optional[ConfigurationDO]:
        """
        Apply field updates to a configuration.

        Returns:
            The updated ConfigurationDO, or None if it does not exist

        Raises:
            ValueError: If the record could not be written
        """
        if self.repo.get(config_id) is None:
            return None
        if not self.repo.update(config_id, updates):
            raise ValueError(f"Failed to update configuration {config_id}")
        return self.repo.get(config_id)

    def make_default(self, config_id: str) -> Optional[ConfigurationDO]:
        if self.repo.get(config_id) is None:
            return None
        if not self.repo.set_default(config_id):
            raise ValueError(f"Failed to set default configuration {config_id}")
        return self.repo.get(config_id)

    def remove(self, config_id: str) -> bool:
        """
        Delete a configuration. When the default goes, the oldest remaining
        configuration takes its place.

        Returns:
            True if a configuration was deleted
        """
        config = self.repo.get(config_id)
        if config is None:
            return False
        if not self.repo.delete(config_id):
            return False

        if config.is_default:
            remaining = self.repo.list_all()
            if remaining:
                self.repo.set_default(remaining[0].id)
                self.logger.info(f"Default configuration moved to {remaining[0].id}")
        return True
