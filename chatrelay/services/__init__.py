"""Services package."""

from .store import ConversationStore, DuckDBConversationStore
from .orchestrator import RunOrchestrator, TurnResult, TurnState, TurnStatus
from .side_effects import SideEffectDispatcher
from .turn_guard import TurnGuard, TurnInProgressError
from .thread_manager import ThreadManager
from .configurations import ConfigurationService
from .diagnostics import ConfigurationDiagnostics, enable_file_search, fetch_available_models

__all__ = [
    "ConversationStore",
    "DuckDBConversationStore",
    "RunOrchestrator",
    "TurnResult",
    "TurnState",
    "TurnStatus",
    "SideEffectDispatcher",
    "TurnGuard",
    "TurnInProgressError",
    "ThreadManager",
    "ConfigurationService",
    "ConfigurationDiagnostics",
    "enable_file_search",
    "fetch_available_models",
]
