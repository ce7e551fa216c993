"""Post-turn side effects: thread auto-naming and webhook notification."""

import asyncio
from datetime import datetime
from typing import Optional, Set

from pydantic import BaseModel, ConfigDict, Field

from ..db.database_models import ConfigurationDO, ThreadDO
from ..gateway.client import ChatGateway
from ..utils.logger import get_app_logger
from .store import ConversationStore


NAME_TOKENS = 4


def default_thread_name(index: int, prefix: str = "Thread") -> str:
    """System-assigned name for the index-th thread (1-based)."""
    return f"{prefix} {index}"


def derive_thread_name(text: str) -> str:
    """First four whitespace-separated tokens of the input, suffixed with an ellipsis."""
    return " ".join(text.split()[:NAME_TOKENS]) + "..."


class WebhookPayload(BaseModel):
    """JSON body posted to the configured webhook."""

    model_config = ConfigDict(populate_by_name=True)

    user_name: str = Field(serialization_alias="userName")
    prompt: str
    timestamp: str
    model: str
    thread_id: str = Field(serialization_alias="threadId")


class SideEffectDispatcher:
    """
    Runs the best-effort effects of a completed turn.

    Nothing here raises to the caller: a failed rename or webhook is logged
    and the turn keeps its outcome.
    """

    def __init__(
        self,
        store: ConversationStore,
        gateway: ChatGateway,
        user_name: str = "User"
    ):
        self.store = store
        self.gateway = gateway
        self.user_name = user_name
        self.logger = get_app_logger()
        self._pending: Set[asyncio.Task] = set()

    async def after_turn(self, thread: ThreadDO, config: ConfigurationDO, user_input: str) -> None:
        """
        Apply side effects for a successful turn.

        Args:
            thread: Thread as it was when the turn started
            config: Configuration the turn ran under
            user_input: The user's text for this turn
        """
        await self.rename_if_default(thread, user_input)
        if config.webhook_url:
            self.schedule_notification(thread, config, user_input)

    async def rename_if_default(self, thread: ThreadDO, user_input: str) -> Optional[str]:
        """
        Rename a thread from its default name to one derived from the input.

        Returns:
            The new name, or None if the thread kept its name
        """
        try:
            current = await self.store.get_thread(thread.id)
            if not (current or thread).has_default_name:
                return None

            new_name = derive_thread_name(user_input)
            renamed = await self.store.rename_thread(thread.id, new_name)
        except Exception as e:
            self.logger.warning(f"Auto-naming failed for thread {thread.id}: {e}")
            return None

        return new_name if renamed else None

    def build_payload(self, thread: ThreadDO, config: ConfigurationDO, user_input: str) -> WebhookPayload:
        return WebhookPayload(
            user_name=self.user_name,
            prompt=user_input,
            timestamp=datetime.utcnow().isoformat() + "Z",
            model=config.model,
            thread_id=thread.id
        )

    def schedule_notification(self, thread: ThreadDO, config: ConfigurationDO, user_input: str) -> asyncio.Task:
        """Fire the webhook in the background; the turn does not wait for it."""
        payload = self.build_payload(thread, config, user_input).model_dump(by_alias=True)
        task = asyncio.create_task(self._deliver(config.webhook_url, payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _deliver(self, webhook_url: str, payload: dict) -> bool:
        try:
            delivered = await self.gateway.notify(webhook_url, payload)
        except Exception as e:
            self.logger.error(f"Webhook dispatch crashed for {webhook_url}: {e}")
            return False
        if not delivered:
            self.logger.warning(f"Webhook not delivered for thread {payload.get('threadId')}")
        return delivered

    async def drain(self) -> None:
        """Wait for outstanding webhook deliveries."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
