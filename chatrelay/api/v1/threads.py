"""Thread REST API routes - V1."""

from fastapi import APIRouter, HTTPException, Depends

from ...models.thread import (
    ThreadResponse,
    ThreadListResponse,
    CreateThreadRequest,
    RenameThreadRequest
)
from ...models.message import (
    MessageResponse,
    ThreadMessagesResponse,
    SendMessageRequest,
    TurnResponse
)
from ...db import DatabaseConnection, ConfigurationRepository
from ...gateway import GatewayError
from ...services import (
    ConfigurationService,
    DuckDBConversationStore,
    RunOrchestrator,
    ThreadManager,
    TurnGuard,
    TurnInProgressError,
    TurnStatus
)
from ...utils.logger import get_app_logger

router = APIRouter(prefix="/api/v1/threads", tags=["Threads"])

logger = get_app_logger()

# Database connection (set by main.py)
db_conn: DatabaseConnection = None
# Conversation store (set by main.py)
store: DuckDBConversationStore = None
# Thread manager (set by main.py)
thread_manager: ThreadManager = None
# Run orchestrator (set by main.py)
orchestrator: RunOrchestrator = None
# One turn per thread (set by main.py)
turn_guard: TurnGuard = None


def get_configuration_service() -> ConfigurationService:
    """Dependency to get configuration service."""
    if db_conn is None:
        raise HTTPException(status_code=500, detail="Database not initialized")
    return ConfigurationService(ConfigurationRepository(db_conn.conn))


def get_store() -> DuckDBConversationStore:
    """Dependency to get conversation store."""
    if store is None:
        raise HTTPException(status_code=500, detail="Conversation store not initialized")
    return store


def get_thread_manager() -> ThreadManager:
    if thread_manager is None:
        raise HTTPException(status_code=500, detail="Thread manager not initialized")
    return thread_manager


def get_orchestrator() -> RunOrchestrator:
    if orchestrator is None:
        raise HTTPException(status_code=500, detail="Orchestrator not initialized")
    return orchestrator


def get_turn_guard() -> TurnGuard:
    if turn_guard is None:
        raise HTTPException(status_code=500, detail="Turn guard not initialized")
    return turn_guard


async def _require_thread(conv_store: DuckDBConversationStore, thread_id: str):
    thread = await conv_store.get_thread(thread_id)
    if not thread:
        raise HTTPException(status_code=404, detail=f"Thread not found: {thread_id}")
    return thread


@router.get("", response_model=ThreadListResponse)
async def list_threads(conv_store: DuckDBConversationStore = Depends(get_store)):
    """List all threads, most recently active first."""
    threads = await conv_store.list_threads()
    return ThreadListResponse(
        threads=[ThreadResponse.from_do(t) for t in threads],
        total=len(threads)
    )


@router.post("", response_model=ThreadResponse, status_code=201)
async def create_thread(
    request: CreateThreadRequest,
    configs: ConfigurationService = Depends(get_configuration_service),
    manager: ThreadManager = Depends(get_thread_manager)
):
    """
    Create a new thread.

    In assisted mode the provider issues the thread id; in direct mode a
    local id is generated. A provider failure is reported as 502 and no
    local thread is created in its place.
    """
    if request.configuration_id and configs.repo.get(request.configuration_id) is None:
        raise HTTPException(status_code=404, detail=f"Configuration not found: {request.configuration_id}")

    config = configs.resolve(request.configuration_id)
    if config is None:
        raise HTTPException(status_code=400, detail="No configuration selected")

    try:
        thread = await manager.new_thread(config, request.name)
    except GatewayError as e:
        logger.error(f"Thread creation failed under configuration {config.id}: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return ThreadResponse.from_do(thread)


@router.get("/{thread_id}", response_model=ThreadResponse)
async def get_thread(thread_id: str, conv_store: DuckDBConversationStore = Depends(get_store)):
    """Get a thread by ID."""
    return ThreadResponse.from_do(await _require_thread(conv_store, thread_id))


@router.patch("/{thread_id}", response_model=ThreadResponse)
async def rename_thread(
    thread_id: str,
    request: RenameThreadRequest,
    conv_store: DuckDBConversationStore = Depends(get_store)
):
    """Rename a thread."""
    await _require_thread(conv_store, thread_id)
    if not await conv_store.rename_thread(thread_id, request.new_name):
        raise HTTPException(status_code=500, detail="Failed to rename thread")
    return ThreadResponse.from_do(await conv_store.get_thread(thread_id))


@router.delete("/{thread_id}")
async def delete_thread(
    thread_id: str,
    conv_store: DuckDBConversationStore = Depends(get_store),
    guard: TurnGuard = Depends(get_turn_guard)
):
    """Delete a thread and its messages."""
    await _require_thread(conv_store, thread_id)
    if guard.is_active(thread_id):
        raise HTTPException(status_code=409, detail=f"A message is being processed for thread {thread_id}")
    if not await conv_store.delete_thread(thread_id):
        raise HTTPException(status_code=500, detail="Failed to delete thread")
    return {"message": f"Thread {thread_id} deleted"}


@router.get("/{thread_id}/messages", response_model=ThreadMessagesResponse)
async def get_thread_messages(thread_id: str, conv_store: DuckDBConversationStore = Depends(get_store)):
    """Get all messages of a thread, oldest first."""
    await _require_thread(conv_store, thread_id)
    messages = await conv_store.list_messages(thread_id)
    return ThreadMessagesResponse(
        thread_id=thread_id,
        messages=[MessageResponse.from_do(m) for m in messages],
        total=len(messages)
    )


@router.post("/{thread_id}/messages", response_model=TurnResponse)
async def send_message(
    thread_id: str,
    request: SendMessageRequest,
    conv_store: DuckDBConversationStore = Depends(get_store),
    configs: ConfigurationService = Depends(get_configuration_service),
    runner: RunOrchestrator = Depends(get_orchestrator),
    guard: TurnGuard = Depends(get_turn_guard)
):
    """
    Run one turn on a thread.

    Completed, failed and timed-out turns all answer 200 with the outcome in
    the body; the user's message is recorded in every one of them.
    """
    thread = await _require_thread(conv_store, thread_id)

    if request.configuration_id and configs.repo.get(request.configuration_id) is None:
        raise HTTPException(status_code=404, detail=f"Configuration not found: {request.configuration_id}")
    config = configs.resolve(request.configuration_id, thread)

    try:
        async with guard.hold(thread_id):
            result = await runner.run_turn(
                thread_id,
                request.content,
                config,
                [a.to_do() for a in request.attachments]
            )
    except TurnInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if result.status == TurnStatus.SKIPPED:
        raise HTTPException(status_code=400, detail=result.detail)

    return TurnResponse(
        thread_id=thread_id,
        status=result.status.value,
        message=MessageResponse.from_do(result.message) if result.message else None,
        user_message=MessageResponse.from_do(result.user_message) if result.user_message else None,
        error_kind=result.error_kind.value if result.error_kind else None,
        detail=result.detail,
        run_id=result.run_id,
        poll_count=result.poll_count
    )
