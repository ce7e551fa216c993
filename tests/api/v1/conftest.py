"""Pytest fixtures for API testing."""

import pytest
from httpx import AsyncClient, ASGITransport
from fastapi import FastAPI

from chatrelay.api.v1 import configurations, threads
from chatrelay.services import (
    DuckDBConversationStore,
    RunOrchestrator,
    SideEffectDispatcher,
    ThreadManager,
    TurnGuard
)


@pytest.fixture
def dispatcher(store, gateway):
    return SideEffectDispatcher(store, gateway)


@pytest.fixture
def guard():
    return TurnGuard()


@pytest.fixture(scope="function")
async def client(db_conn, store: DuckDBConversationStore, gateway, dispatcher, guard):
    """Create async HTTP client over a fresh database and a fake provider."""
    async def no_sleep(_):
        pass

    # Inject dependencies into routers
    configurations.db_conn = db_conn
    configurations.gateway = gateway
    threads.db_conn = db_conn
    threads.store = store
    threads.thread_manager = ThreadManager(store, gateway)
    threads.orchestrator = RunOrchestrator(gateway, store, dispatcher, sleep=no_sleep)
    threads.turn_guard = guard

    # Create a test app without lifespan (to avoid conflicts)
    test_app = FastAPI(title="Chat Relay Test")
    test_app.include_router(configurations.router)
    test_app.include_router(threads.router)

    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await dispatcher.drain()
    configurations.db_conn = None
    configurations.gateway = None
    threads.db_conn = None
    threads.store = None
    threads.thread_manager = None
    threads.orchestrator = None
    threads.turn_guard = None
