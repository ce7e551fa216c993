"""Configuration diagnostics and model discovery."""

from dataclasses import dataclass, field
from typing import List, Optional

from ..db.database_models import ConfigurationDO, WorkflowMode
from ..gateway.client import ChatGateway
from ..gateway.errors import AuthError, GatewayError, NotFound
from ..gateway.schemas import RemoteAssistant
from ..utils.logger import get_app_logger


DEFAULT_MODELS = [
    "gpt-4",
    "gpt-4-turbo",
    "gpt-3.5-turbo",
    "gpt-3.5-turbo-16k",
]


def is_chat_model(model_id: str) -> bool:
    name = model_id.lower()
    return "gpt" in name and "instruct" not in name and ("turbo" in name or "gpt-4" in name)


async def fetch_available_models(gateway: ChatGateway, config: ConfigurationDO) -> List[str]:
    """
    Chat-capable models visible to a credential.

    Falls back to ``DEFAULT_MODELS`` when the provider cannot be queried.
    """
    try:
        models = await gateway.list_models(config)
    except GatewayError as e:
        get_app_logger().warning(f"Model listing failed, using defaults: {e}")
        return list(DEFAULT_MODELS)
    return sorted(m for m in models if is_chat_model(m))


def suggest_model(model: str, available: List[str]) -> Optional[str]:
    """Closest available model from the same family, if any."""
    for candidate in available:
        if ("gpt-4" in model and "gpt-4" in candidate) or ("gpt-3.5" in model and "gpt-3.5" in candidate):
            return candidate
    return None


@dataclass
class DiagnosticReport:
    messages: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    thread_creation_works: bool = False
    has_file_search_tool: Optional[bool] = None
    vector_store_attached: Optional[bool] = None


class ConfigurationDiagnostics:
    """Step-by-step checks of a configuration against the provider."""

    def __init__(self, gateway: ChatGateway):
        self.gateway = gateway
        self.logger = get_app_logger()

    async def run(self, config: ConfigurationDO, probe_thread: bool = True) -> DiagnosticReport:
        """
        Check credential, model, assistant, knowledge store and thread creation.

        Args:
            config: Configuration under test
            probe_thread: Also try creating a provider thread in assisted mode

        Returns:
            DiagnosticReport
        """
        report = DiagnosticReport()

        if not config.api_key.startswith("sk-"):
            report.messages.append('API key format is invalid. It should start with "sk-".')
            report.recommendations.append(
                'Ensure your API key starts with "sk-" and is copied correctly from the provider dashboard.'
            )
            return report

        report.messages.append("Testing API key validity...")
        try:
            available = await self.gateway.list_models(config)
        except AuthError:
            report.messages.append("API key is invalid or has expired.")
            report.recommendations.append("Generate a new API key in the provider dashboard.")
            return report
        except GatewayError as e:
            report.messages.append(f"Error connecting to the provider: {e}")
            report.recommendations.append("Check your network connection and firewall settings.")
            return report
        report.messages.append("API key is valid.")

        if config.mode == WorkflowMode.DIRECT:
            self._check_model(config, available, report)
            report.messages.append("Using direct completion mode (assistant workflow disabled).")
            return report

        await self._check_assistant(config, report, probe_thread)
        return report

    def _check_model(self, config: ConfigurationDO, available: List[str], report: DiagnosticReport) -> None:
        if config.model in available:
            report.messages.append(f'Model "{config.model}" is available.')
            return

        report.messages.append(f'Model "{config.model}" is not available for your API key.')
        suggested = suggest_model(config.model, available)
        if suggested:
            report.recommendations.append(f'Use "{suggested}" instead of "{config.model}".')
        else:
            report.recommendations.append("Check the models available to your account and select an accessible one.")

    async def _check_assistant(self, config: ConfigurationDO, report: DiagnosticReport, probe_thread: bool) -> None:
        report.messages.append("Testing Assistants API access...")
        try:
            await self.gateway.list_assistants(config)
        except NotFound:
            report.messages.append("Assistants API is not available for your account.")
            report.recommendations.append("Use direct completion mode instead of the assistant workflow.")
            return
        except GatewayError as e:
            report.messages.append(f"Error accessing Assistants API: {e}")
            report.recommendations.append("Check your API key and network connection.")
            return
        report.messages.append("Assistants API is accessible.")

        if config.assistant_id:
            await self._check_assistant_id(config, report)
        else:
            report.messages.append("No Assistant ID provided.")
            report.recommendations.append("Add an Assistant ID to use the assistant workflow.")

        if not probe_thread:
            return

        report.messages.append("Testing thread creation...")
        try:
            await self.gateway.create_conversation(config)
        except GatewayError as e:
            report.messages.append(f"Thread creation failed: {e}")
            report.recommendations.append("Check your API key permissions for the Assistants API.")
            return
        report.messages.append("Thread creation successful.")
        report.thread_creation_works = True

    async def _check_assistant_id(self, config: ConfigurationDO, report: DiagnosticReport) -> None:
        report.messages.append(f"Validating Assistant ID: {config.assistant_id}...")
        try:
            assistant = await self.gateway.get_assistant(config, config.assistant_id)
        except NotFound:
            report.messages.append("Assistant ID not found.")
            report.recommendations.append("Check your Assistant ID or create a new assistant.")
            return
        except GatewayError:
            report.messages.append("Error validating Assistant ID.")
            report.recommendations.append('Check that the Assistant ID is correctly formatted (starts with "asst_").')
            return
        report.messages.append("Assistant ID is valid and accessible.")

        if config.model and assistant.model and assistant.model != config.model:
            report.messages.append(f'Assistant uses model "{assistant.model}".')

        report.has_file_search_tool = assistant.has_file_search
        if assistant.has_file_search:
            report.messages.append("File search tool is enabled on this assistant.")
        else:
            report.messages.append("File search tool is not enabled on this assistant.")
            report.recommendations.append("Enable the file_search tool on your assistant to search documents.")

        if not config.vector_store_id:
            report.messages.append("No Vector Store configured. The assistant cannot search documents.")
            report.recommendations.append("Consider adding a Vector Store to enable document search.")
            return

        report.messages.append(f"Checking Vector Store ID: {config.vector_store_id}...")
        try:
            await self.gateway.get_vector_store(config, config.vector_store_id)
        except GatewayError as e:
            report.messages.append(f"Vector Store ID is invalid or inaccessible: {e}")
            report.recommendations.append("Check your Vector Store ID or create a new vector store.")
            return
        report.messages.append("Vector Store ID is valid and accessible.")

        report.vector_store_attached = config.vector_store_id in assistant.vector_store_ids
        if report.vector_store_attached:
            report.messages.append("Vector Store is attached to the assistant.")
        else:
            report.messages.append("Assistant is not configured with the specified vector store.")
            report.recommendations.append("Attach the Vector Store to the assistant's file search tool.")


@dataclass
class FileSearchSetup:
    """Outcome of enabling file search on a configuration's assistant."""
    assistant: RemoteAssistant
    updated: bool
    vector_store_id: Optional[str] = None

    @property
    def vector_store_attached(self) -> Optional[bool]:
        if self.vector_store_id is None:
            return None
        return self.vector_store_id in self.assistant.vector_store_ids


async def enable_file_search(gateway: ChatGateway, config: ConfigurationDO) -> FileSearchSetup:
    """
    Turn on the file_search tool for the configuration's assistant.

    Existing tools are kept. When the configuration names a vector store that
    the assistant does not reference yet, it is added to the file search
    resources. Nothing is written when the assistant already qualifies.

    Raises:
        ValueError: The configuration has no assistant
        GatewayError: A provider call failed
    """
    if not config.assistant_id:
        raise ValueError("Configuration has no Assistant ID")

    logger = get_app_logger()
    assistant = await gateway.get_assistant(config, config.assistant_id)

    tools = assistant.tools_payload()
    if not assistant.has_file_search:
        tools.append({"type": "file_search"})

    store_ids: Optional[List[str]] = None
    if config.vector_store_id and config.vector_store_id not in assistant.vector_store_ids:
        store_ids = assistant.vector_store_ids + [config.vector_store_id]

    if assistant.has_file_search and store_ids is None:
        logger.info(f"Assistant {assistant.id} already has file search")
        return FileSearchSetup(assistant=assistant, updated=False, vector_store_id=config.vector_store_id)

    updated = await gateway.update_assistant_tools(config, assistant.id, tools, vector_store_ids=store_ids)
    return FileSearchSetup(assistant=updated, updated=True, vector_store_id=config.vector_store_id)
