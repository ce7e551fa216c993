"""Thread lifecycle - creating threads under a configuration."""

import time
from datetime import datetime
from typing import Optional

from ..db.database_models import ConfigurationDO, ThreadDO
from ..gateway.client import ChatGateway
from ..utils.logger import get_app_logger
from .side_effects import default_thread_name
from .store import DuckDBConversationStore


class ThreadManager:
    """Creates threads: provider-issued ids in assisted mode, local ids otherwise."""

    def __init__(self, store: DuckDBConversationStore, gateway: ChatGateway, name_prefix: str = "Thread"):
        self.store = store
        self.gateway = gateway
        self.name_prefix = name_prefix
        self.logger = get_app_logger()

    async def _local_id(self) -> str:
        stamp = int(time.time() * 1000)
        while await self.store.get_thread(f"local-{stamp}") is not None:
            stamp += 1
        return f"local-{stamp}"

    async def new_thread(self, config: ConfigurationDO, name: Optional[str] = None) -> ThreadDO:
        """
        Create a thread.

        Args:
            config: Configuration the thread is created under
            name: Explicit name; defaults to ``Thread <n>``

        Returns:
            The stored ThreadDO

        Raises:
            GatewayError: If the provider thread could not be created
        """
        if config.uses_assistant:
            thread_id = await self.gateway.create_conversation(config)
        else:
            thread_id = await self._local_id()

        has_default_name = not name
        if has_default_name:
            name = default_thread_name(await self.store.count_threads() + 1, self.name_prefix)

        now = datetime.utcnow()
        thread = await self.store.create_thread(ThreadDO(
            id=thread_id,
            name=name,
            configuration_id=config.id,
            has_default_name=has_default_name,
            created_at=now,
            last_activity=now
        ))

        self.logger.info(f"Created thread: {thread.id} ({thread.name})")
        return thread
