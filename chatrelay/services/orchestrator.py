"""Run orchestrator - drives one user message to one reply or a terminal error."""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional

from ..db.database_models import AttachmentDO, ConfigurationDO, MessageDO, ThreadDO
from ..gateway.client import ChatGateway
from ..gateway.errors import (
    ChatRelayError,
    EmptyCompletion,
    ErrorKind,
    NoReplyFound,
    RunCancelled,
    RunFailed,
    RunTimedOut,
)
from ..gateway.schemas import RemoteRun, RunStatus
from ..utils.logger import get_app_logger
from .side_effects import SideEffectDispatcher
from .store import ConversationStore


Sleep = Callable[[float], Awaitable[None]]


class TurnState(str, Enum):
    """States a turn moves through."""
    IDLE = "idle"
    VALIDATING = "validating"
    DISPATCHING = "dispatching"
    ASSISTED_RUNNING = "assisted_running"
    POLLING = "polling"
    DIRECT_CALLING = "direct_calling"
    EXTRACTING = "extracting"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class TurnStatus(str, Enum):
    """Outcome of a turn."""
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    SKIPPED = "skipped"


@dataclass
class TurnResult:
    """
    Discriminated outcome of ``RunOrchestrator.run_turn``.

    ``COMPLETED`` carries the appended assistant ``message``; ``FAILED`` and
    ``TIMED_OUT`` carry ``error_kind`` and a human-readable ``detail``;
    ``SKIPPED`` means a precondition was missing and nothing was done.
    """

    status: TurnStatus
    message: Optional[MessageDO] = None
    user_message: Optional[MessageDO] = None
    error_kind: Optional[ErrorKind] = None
    detail: Optional[str] = None
    run_id: Optional[str] = None
    poll_count: int = 0
    states: List[TurnState] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == TurnStatus.COMPLETED


@dataclass
class _Turn:
    """Per-turn working state; discarded when the turn resolves."""

    thread: ThreadDO
    config: ConfigurationDO
    text: str
    states: List[TurnState]
    attachments: List[AttachmentDO] = field(default_factory=list)
    run: Optional[RemoteRun] = None
    poll_count: int = 0

    def enter(self, state: TurnState) -> None:
        self.states.append(state)


class RunOrchestrator:
    """
    Executes conversation turns against the remote chat gateway.

    A single instance serves every thread, but it is not reentrant for one
    thread: callers must keep at most one turn in flight per thread
    (see ``TurnGuard``).
    """

    def __init__(
        self,
        gateway: ChatGateway,
        store: ConversationStore,
        dispatcher: Optional[SideEffectDispatcher] = None,
        poll_interval: float = 1.0,
        max_polls: int = 60,
        context_window: int = 10,
        sleep: Sleep = asyncio.sleep
    ):
        """
        Initialize the orchestrator.

        Args:
            gateway: Remote chat gateway
            store: Conversation store holding threads and messages
            dispatcher: Post-turn side effects; skipped when None
            poll_interval: Seconds between run status reads
            max_polls: Maximum status reads per assisted turn
            context_window: Prior messages sent with a direct completion
            sleep: Awaitable sleep used between polls
        """
        self.gateway = gateway
        self.store = store
        self.dispatcher = dispatcher
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.context_window = context_window
        self._sleep = sleep
        self.logger = get_app_logger()

    @classmethod
    def from_settings(cls, settings, gateway: ChatGateway, store: ConversationStore,
                      dispatcher: Optional[SideEffectDispatcher] = None) -> "RunOrchestrator":
        return cls(
            gateway=gateway,
            store=store,
            dispatcher=dispatcher,
            poll_interval=settings.poll_interval,
            max_polls=settings.max_polls,
            context_window=settings.context_window
        )

    async def run_turn(
        self,
        thread_id: str,
        text: str,
        config: Optional[ConfigurationDO],
        attachments: Optional[List[AttachmentDO]] = None
    ) -> TurnResult:
        """
        Drive one user input through to a reply or a terminal error.

        The user's message is recorded before any provider call and stays
        recorded whatever happens downstream. Cancellation propagates as
        ``asyncio.CancelledError`` after whatever has already committed.

        Args:
            thread_id: Thread receiving the input
            text: User input
            config: Resolved configuration for this turn
            attachments: Files attached to the input

        Returns:
            TurnResult
        """
        states = [TurnState.IDLE, TurnState.VALIDATING]

        if not text or not text.strip():
            return TurnResult(status=TurnStatus.SKIPPED, detail="Input is empty.", states=states)
        if config is None:
            return TurnResult(status=TurnStatus.SKIPPED, detail="No configuration selected.", states=states)
        thread = await self.store.get_thread(thread_id)
        if thread is None:
            return TurnResult(status=TurnStatus.SKIPPED, detail=f"Thread not found: {thread_id}", states=states)

        turn = _Turn(thread=thread, config=config, text=text, states=states, attachments=attachments or [])
        turn.enter(TurnState.DISPATCHING)

        assisted = config.uses_assistant
        history = [] if assisted else await self._context_window(thread_id)

        user_message = await self.store.append_message(MessageDO(
            thread_id=thread_id,
            role="user",
            content=text,
            attachments=list(turn.attachments)
        ))

        self.logger.info(
            f"Turn started on thread {thread_id} ({'assisted' if assisted else 'direct'}, "
            f"config={config.id}, length={len(text)})"
        )

        try:
            if assisted:
                reply = await self._run_assisted(turn)
            else:
                reply = await self._run_direct(turn, history)
        except RunTimedOut as e:
            turn.enter(TurnState.TIMED_OUT)
            self.logger.warning(f"Turn on thread {thread_id} timed out after {turn.poll_count} polls")
            return self._failure(TurnStatus.TIMED_OUT, turn, user_message, e)
        except ChatRelayError as e:
            turn.enter(TurnState.FAILED)
            self.logger.error(f"Turn on thread {thread_id} failed ({e.kind.value}): {e}")
            return self._failure(TurnStatus.FAILED, turn, user_message, e)

        assistant_message = await self.store.append_message(MessageDO(
            thread_id=thread_id,
            role="assistant",
            content=reply,
            timestamp=datetime.utcnow()
        ))
        turn.enter(TurnState.COMPLETED)
        self.logger.info(f"Turn on thread {thread_id} completed (message={assistant_message.id})")

        await self._after_turn(turn)

        return TurnResult(
            status=TurnStatus.COMPLETED,
            message=assistant_message,
            user_message=user_message,
            run_id=turn.run.id if turn.run else None,
            poll_count=turn.poll_count,
            states=turn.states
        )

    # === Assisted path ===

    async def _run_assisted(self, turn: _Turn) -> str:
        config, thread_id = turn.config, turn.thread.id

        await self.gateway.post_message(
            config, thread_id, turn.text,
            [a.id for a in turn.attachments] or None
        )
        turn.run = await self.gateway.start_run(config, thread_id)
        turn.enter(TurnState.ASSISTED_RUNNING)

        await self._poll(turn)

        turn.enter(TurnState.EXTRACTING)
        return await self._extract_reply(turn)

    async def _poll(self, turn: _Turn) -> None:
        """
        Read the run status until it is terminal or the poll cap is reached.

        Raises:
            RunFailed: Run ended as failed
            RunCancelled: Run ended as cancelled
            RunTimedOut: Cap reached while the run was still non-terminal
        """
        turn.enter(TurnState.POLLING)
        run = turn.run

        while not run.is_terminal and turn.poll_count < self.max_polls:
            await self._sleep(self.poll_interval)
            run = await self.gateway.poll_run(turn.config, turn.thread.id, run.id)
            turn.poll_count += 1
            turn.run = run
            self.logger.debug(f"Run status check {turn.poll_count}: {run.status}")

        if run.status == RunStatus.COMPLETED.value:
            return
        if run.status == RunStatus.FAILED.value:
            raise RunFailed()
        if run.status == RunStatus.CANCELLED.value:
            raise RunCancelled()
        raise RunTimedOut(
            f"Assistant run timed out after {turn.poll_count} status checks "
            f"(last status: {run.status}). Please try again."
        )

    async def _extract_reply(self, turn: _Turn) -> str:
        messages = await self.gateway.list_messages(turn.config, turn.thread.id)
        replies = [m for m in messages if m.role == "assistant"]
        if not replies:
            raise NoReplyFound()

        # Listing order is not relied on; ties keep the first listed (newest-first listing)
        latest = max(replies, key=lambda m: m.created_at)
        return latest.text()

    # === Direct path ===

    async def _context_window(self, thread_id: str) -> List[Dict[str, str]]:
        prior = await self.store.list_messages(thread_id, limit=self.context_window)
        return [{"role": m.role, "content": m.content} for m in prior]

    async def _run_direct(self, turn: _Turn, history: List[Dict[str, str]]) -> str:
        turn.enter(TurnState.DIRECT_CALLING)
        reply = await self.gateway.direct_completion(
            turn.config,
            history + [{"role": "user", "content": turn.text}]
        )

        turn.enter(TurnState.EXTRACTING)
        if not reply or not reply.strip():
            raise EmptyCompletion()
        return reply

    # === Helpers ===

    async def _after_turn(self, turn: _Turn) -> None:
        if self.dispatcher is None:
            return
        try:
            await self.dispatcher.after_turn(turn.thread, turn.config, turn.text)
        except Exception as e:
            self.logger.warning(f"Side effects failed for thread {turn.thread.id}: {e}")

    @staticmethod
    def _failure(status: TurnStatus, turn: _Turn, user_message: MessageDO, error: ChatRelayError) -> TurnResult:
        return TurnResult(
            status=status,
            user_message=user_message,
            error_kind=error.kind,
            detail=str(error),
            run_id=turn.run.id if turn.run else None,
            poll_count=turn.poll_count,
            states=turn.states
        )
