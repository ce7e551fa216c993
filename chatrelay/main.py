"""FastAPI main application."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from .config import settings
from .db import DatabaseConnection, ConfigurationRepository
from .gateway import ChatGateway
from .services import (
    DuckDBConversationStore,
    RunOrchestrator,
    SideEffectDispatcher,
    ThreadManager,
    TurnGuard
)
from .utils.logger import init_app_logger
from .api.v1 import configurations, threads


# Initialize logger
logger = init_app_logger(settings)

# Global instances
db_instance: DatabaseConnection = None
gateway_instance: ChatGateway = None
dispatcher_instance: SideEffectDispatcher = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.

    Args:
        app: FastAPI application instance
    """
    global db_instance, gateway_instance, dispatcher_instance

    # Startup
    logger.info("=" * 70)
    logger.info("Starting Chat Relay...")
    logger.info("=" * 70)

    logger.info("")
    logger.info("📡 Server Configuration:")
    logger.info(f"  Host: {settings.host}")
    logger.info(f"  Port: {settings.port}")
    logger.info(f"  Debug: {settings.debug}")
    logger.info(f"  Log Level: {settings.log_level}")
    logger.info(f"  Log File: {settings.log_file}")

    logger.info("")
    logger.info("🤖 Provider Configuration:")
    logger.info(f"  API Base: {settings.api_base_url}")
    logger.info(f"  Request Timeout: {settings.request_timeout}s")
    logger.info(f"  Completion Timeout: {settings.completion_timeout}s")
    logger.info(f"  Poll: every {settings.poll_interval}s, at most {settings.max_polls} times")
    logger.info(f"  Context Window: {settings.context_window} messages")

    logger.info("")
    logger.info("💾 Initializing Database...")
    db_instance = DatabaseConnection(settings.database_path)
    logger.info(f"  Database: {settings.database_path}")
    logger.info(f"  Configurations: {ConfigurationRepository(db_instance.conn).count()}")

    gateway_instance = ChatGateway(settings)
    store = DuckDBConversationStore(db_instance)
    dispatcher_instance = SideEffectDispatcher(
        store,
        gateway_instance,
        user_name=settings.webhook_user_name
    )

    # Set dependencies in API modules
    configurations.db_conn = db_instance
    configurations.gateway = gateway_instance
    threads.db_conn = db_instance
    threads.store = store
    threads.thread_manager = ThreadManager(store, gateway_instance, settings.default_thread_prefix)
    threads.orchestrator = RunOrchestrator.from_settings(settings, gateway_instance, store, dispatcher_instance)
    threads.turn_guard = TurnGuard()

    logger.info("")
    logger.info("=" * 70)
    logger.info("✅ Chat Relay started successfully!")
    logger.info(f"📍 Access at: http://{settings.host}:{settings.port}")
    logger.info(f"📚 API Docs: http://{settings.host}:{settings.port}/docs")
    logger.info("=" * 70)

    yield

    # Shutdown
    logger.info("")
    logger.info("Shutting down Chat Relay...")

    if dispatcher_instance:
        await dispatcher_instance.drain()
    if gateway_instance:
        await gateway_instance.aclose()
    if db_instance:
        db_instance.close()

    logger.info("✅ Chat Relay shut down successfully")


# Create FastAPI application
app = FastAPI(
    title="Chat Relay",
    description="Relays chat turns to a hosted assistant or completion endpoint",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(configurations.router)
app.include_router(threads.router)


@app.get("/health")
async def health():
    """
    Simple health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": "Chat Relay"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "chatrelay.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
