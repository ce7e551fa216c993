"""Remote chat gateway - stateless wrapper over the provider's REST endpoints."""

from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..config import Settings
from ..db.database_models.configuration import ConfigurationDO
from ..utils.logger import get_app_logger
from .errors import NetworkError, UpstreamError, classify_response
from .schemas import (
    AssistantList,
    CompletionResponse,
    MessageList,
    ModelList,
    RemoteAssistant,
    RemoteMessage,
    RemoteMessageRef,
    RemoteRun,
    RemoteThread,
    RemoteVectorStore,
)


ModelT = TypeVar("ModelT", bound=BaseModel)

WEBHOOK_SCHEMES = ("http", "https")


class ChatGateway:
    """
    Client for the provider's thread/run/message and completion endpoints.

    One instance is shared by every turn. It holds no per-conversation state:
    the credential and identifiers arrive with each call, so any call can be
    retried independently by the caller.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize the gateway.

        Args:
            settings: Application settings (base URL, timeouts, completion params)
            transport: Optional httpx transport, used by tests
        """
        self.settings = settings
        self.logger = get_app_logger()
        self._client = httpx.AsyncClient(
            base_url=settings.api_base_url,
            timeout=settings.request_timeout,
            transport=transport
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self, config: ConfigurationDO, assisted: bool) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {config.api_key}",
            "Content-Type": "application/json",
        }
        if assisted:
            headers["OpenAI-Beta"] = self.settings.assistants_beta_header
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        config: ConfigurationDO,
        *,
        assisted: bool = True,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        not_found: Optional[str] = None
    ) -> Any:
        """
        Issue one provider call and classify any failure.

        Raises:
            GatewayError: Classified failure (auth, rate limit, not found, ...)
        """
        try:
            response = await self._client.request(
                method,
                path,
                headers=self._headers(config, assisted),
                json=json,
                params=params,
                timeout=timeout if timeout is not None else self.settings.request_timeout
            )
        except httpx.TimeoutException as e:
            self.logger.error(f"{method} {path} timed out: {e}")
            raise NetworkError(f"Request to {path} timed out.") from e
        except httpx.TransportError as e:
            self.logger.error(f"{method} {path} transport failure: {e}")
            raise NetworkError() from e

        if response.is_success:
            try:
                return response.json()
            except ValueError as e:
                raise UpstreamError("Provider returned a malformed response.", status_code=response.status_code) from e

        self.logger.error(f"{method} {path} failed: {response.status_code} {response.text[:500]}")
        raise classify_response(response, not_found=not_found)

    def _parse(self, schema: Type[ModelT], data: Any, path: str) -> ModelT:
        """
        Validate a success body against the shape the caller reads.

        Raises:
            UpstreamError: The body is not the expected object
        """
        try:
            return schema.model_validate(data)
        except (ValidationError, TypeError, KeyError, AttributeError) as e:
            self.logger.error(f"Unexpected {schema.__name__} body from {path}: {e}")
            raise UpstreamError("Provider returned a malformed response.") from e

    async def _call(self, schema: Type[ModelT], method: str, path: str, config: ConfigurationDO, **kwargs) -> ModelT:
        data = await self._request(method, path, config, **kwargs)
        return self._parse(schema, data, path)

    # === Assisted workflow ===

    async def create_conversation(self, config: ConfigurationDO) -> str:
        """
        Create a provider-side thread.

        Returns:
            Provider-issued thread ID
        """
        thread = await self._call(
            RemoteThread, "POST", "/threads", config,
            json={},
            not_found="Assistants API not available for your account."
        )
        self.logger.info(f"Thread created: {thread.id}")
        return thread.id

    async def post_message(
        self,
        config: ConfigurationDO,
        thread_id: str,
        text: str,
        attachment_ids: Optional[List[str]] = None
    ) -> str:
        """
        Post a user message to a provider thread.

        Args:
            config: Resolved configuration
            thread_id: Provider thread ID
            text: Message body
            attachment_ids: Uploaded file IDs to attach

        Returns:
            Provider message ID
        """
        payload: Dict[str, Any] = {"role": "user", "content": text}
        if attachment_ids:
            payload["attachments"] = [
                {"file_id": file_id, "tools": [{"type": "file_search"}]}
                for file_id in attachment_ids
            ]

        self.logger.info(f"Posting message to thread {thread_id} (length={len(text)})")
        ref = await self._call(
            RemoteMessageRef, "POST", f"/threads/{thread_id}/messages", config,
            json=payload,
            not_found=f"Thread {thread_id} not found. It may have expired or been deleted."
        )
        return ref.id

    async def start_run(self, config: ConfigurationDO, thread_id: str) -> RemoteRun:
        """Start a run of the configured assistant on a thread."""
        payload: Dict[str, Any] = {"assistant_id": config.assistant_id}
        if config.model:
            payload["model"] = config.model

        run = await self._call(
            RemoteRun, "POST", f"/threads/{thread_id}/runs", config,
            json=payload,
            not_found=f"Thread {thread_id} or assistant not found."
        )
        self.logger.info(f"Run {run.id} started on thread {thread_id} ({run.status})")
        return run

    async def poll_run(self, config: ConfigurationDO, thread_id: str, run_id: str) -> RemoteRun:
        """Read a run's status once."""
        return await self._call(
            RemoteRun, "GET", f"/threads/{thread_id}/runs/{run_id}", config,
            not_found=f"Run {run_id} not found on thread {thread_id}."
        )

    async def list_messages(self, config: ConfigurationDO, thread_id: str) -> List[RemoteMessage]:
        """
        List a thread's messages, newest first.

        Callers locate the reply they want by role and creation time.
        """
        messages = await self._call(
            MessageList, "GET", f"/threads/{thread_id}/messages", config,
            params={"order": "desc"},
            not_found=f"Thread {thread_id} not found. It may have expired or been deleted."
        )
        return messages.data

    # === Direct workflow ===

    async def direct_completion(self, config: ConfigurationDO, history: List[Dict[str, str]]) -> str:
        """
        Single stateless completion call.

        Args:
            config: Resolved configuration (model and credential)
            history: Ordered ``{"role", "content"}`` turns ending with the new input

        Returns:
            Reply text of the first choice (empty string when absent)
        """
        payload = {
            "model": config.model,
            "messages": history,
            "temperature": self.settings.completion_temperature,
            "max_tokens": self.settings.completion_max_tokens,
        }
        completion = await self._call(
            CompletionResponse, "POST", "/chat/completions", config,
            assisted=False,
            json=payload,
            timeout=self.settings.completion_timeout,
            not_found=f"Model {config.model} not found."
        )
        return completion.first_content()

    # === Assistant and knowledge-store lookups ===

    async def list_models(self, config: ConfigurationDO) -> List[str]:
        models = await self._call(ModelList, "GET", "/models", config, assisted=False)
        return [model.id for model in models.data]

    async def list_assistants(self, config: ConfigurationDO) -> List[RemoteAssistant]:
        assistants = await self._call(
            AssistantList, "GET", "/assistants", config,
            not_found="Assistants API not available for your account."
        )
        return assistants.data

    async def get_assistant(self, config: ConfigurationDO, assistant_id: str) -> RemoteAssistant:
        return await self._call(
            RemoteAssistant, "GET", f"/assistants/{assistant_id}", config,
            not_found="Assistant ID not found. Please check the ID and try again."
        )

    async def update_assistant_tools(
        self,
        config: ConfigurationDO,
        assistant_id: str,
        tools: List[Dict[str, Any]],
        vector_store_ids: Optional[List[str]] = None
    ) -> RemoteAssistant:
        """
        Replace an assistant's tool list.

        Args:
            config: Configuration holding the credential
            assistant_id: Assistant to modify
            tools: Full tool list to store; existing tools must be included
            vector_store_ids: Knowledge stores to bind to file search, if given

        Returns:
            The assistant as stored after the update
        """
        payload: Dict[str, Any] = {"tools": tools}
        if vector_store_ids is not None:
            payload["tool_resources"] = {"file_search": {"vector_store_ids": vector_store_ids}}

        assistant = await self._call(
            RemoteAssistant, "POST", f"/assistants/{assistant_id}", config,
            json=payload,
            not_found="Assistant ID not found. Please check the ID and try again."
        )
        self.logger.info(f"Assistant {assistant_id} tools updated: {[tool.type for tool in assistant.tools]}")
        return assistant

    async def get_vector_store(self, config: ConfigurationDO, vector_store_id: str) -> RemoteVectorStore:
        return await self._call(
            RemoteVectorStore, "GET", f"/vector_stores/{vector_store_id}", config,
            not_found="Vector Store ID not found. Please check the ID and try again."
        )

    # === Notifications ===

    async def notify(self, webhook_url: str, payload: Dict[str, Any]) -> bool:
        """
        Best-effort webhook delivery.

        Only absolute http(s) URLs are contacted; anything else would be
        resolved against the provider base URL. Never raises; failures are
        logged and reported as False.
        """
        try:
            url = httpx.URL(webhook_url)
        except (httpx.InvalidURL, TypeError) as e:
            self.logger.error(f"Invalid webhook URL {webhook_url!r}: {e}")
            return False
        if url.scheme not in WEBHOOK_SCHEMES or not url.host:
            self.logger.error(f"Webhook URL must be an absolute http(s) URL: {webhook_url!r}")
            return False

        try:
            response = await self._client.post(
                url,
                json=payload,
                timeout=self.settings.webhook_timeout
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self.logger.error(f"Error sending webhook to {webhook_url}: {e}")
            return False

        if response.is_success:
            self.logger.info(f"Webhook delivered to {webhook_url}")
            return True

        self.logger.warning(f"Webhook to {webhook_url} failed: {response.status_code}")
        return False
