"""Shared pytest fixtures."""

import uuid
import pytest
from datetime import datetime
from typing import Any, Dict, List, Optional

from chatrelay.config import Settings
from chatrelay.db import DatabaseConnection
from chatrelay.db.database_models import ConfigurationDO, ThreadDO, WorkflowMode
from chatrelay.gateway.schemas import RemoteAssistant, RemoteMessage, RemoteRun, RemoteVectorStore
from chatrelay.services.store import DuckDBConversationStore


class FakeGateway:
    """In-memory stand-in for ChatGateway that records every call."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.errors: Dict[str, Exception] = {}
        self.start_status = "queued"
        self.poll_statuses: List[str] = ["completed"]
        self.remote_messages: List[RemoteMessage] = []
        self.completion = "Hi there"
        self.histories: List[List[Dict[str, str]]] = []
        self.notify_result = True
        self.notifications: List[tuple] = []
        self.models = ["gpt-4", "gpt-3.5-turbo", "text-embedding-3-small"]
        self.assistant = {"id": "asst_1", "model": "gpt-4"}
        self._polls = 0
        self._threads = 0

    def _check(self, name: str) -> None:
        if name in self.errors:
            raise self.errors[name]

    @property
    def poll_count(self) -> int:
        return self._polls

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    async def create_conversation(self, config):
        self.calls.append(("create_conversation", config.id))
        self._check("create_conversation")
        self._threads += 1
        return f"thread_{self._threads}"

    async def post_message(self, config, thread_id, text, attachment_ids=None):
        self.calls.append(("post_message", thread_id, text, attachment_ids))
        self._check("post_message")
        return "msg_user"

    async def start_run(self, config, thread_id):
        self.calls.append(("start_run", thread_id))
        self._check("start_run")
        return RemoteRun(id="run_1", status=self.start_status, thread_id=thread_id)

    async def poll_run(self, config, thread_id, run_id):
        self.calls.append(("poll_run", thread_id, run_id))
        self._check("poll_run")
        index = min(self._polls, len(self.poll_statuses) - 1)
        self._polls += 1
        return RemoteRun(id=run_id, status=self.poll_statuses[index], thread_id=thread_id)

    async def list_messages(self, config, thread_id):
        self.calls.append(("list_messages", thread_id))
        self._check("list_messages")
        return list(self.remote_messages)

    async def direct_completion(self, config, history):
        self.calls.append(("direct_completion", config.model))
        self.histories.append([dict(turn) for turn in history])
        self._check("direct_completion")
        return self.completion

    async def list_models(self, config):
        self.calls.append(("list_models",))
        self._check("list_models")
        return list(self.models)

    async def list_assistants(self, config):
        self.calls.append(("list_assistants",))
        self._check("list_assistants")
        return [RemoteAssistant.model_validate(self.assistant)]

    async def get_assistant(self, config, assistant_id):
        self.calls.append(("get_assistant", assistant_id))
        self._check("get_assistant")
        return RemoteAssistant.model_validate(self.assistant)

    async def update_assistant_tools(self, config, assistant_id, tools, vector_store_ids=None):
        self.calls.append(("update_assistant_tools", assistant_id, tools, vector_store_ids))
        self._check("update_assistant_tools")
        self.assistant = dict(self.assistant, tools=tools)
        if vector_store_ids is not None:
            self.assistant["tool_resources"] = {"file_search": {"vector_store_ids": vector_store_ids}}
        return RemoteAssistant.model_validate(self.assistant)

    async def get_vector_store(self, config, vector_store_id):
        self.calls.append(("get_vector_store", vector_store_id))
        self._check("get_vector_store")
        return RemoteVectorStore(id=vector_store_id)

    async def notify(self, webhook_url: str, payload: Dict[str, Any]) -> bool:
        self.notifications.append((webhook_url, payload))
        self._check("notify")
        return self.notify_result


@pytest.fixture
def make_reply():
    """Factory for provider-side messages."""
    def _make(text: str, created_at: int = 100, role: str = "assistant", content=None) -> RemoteMessage:
        return RemoteMessage.model_validate({
            "id": f"msg_{role}_{created_at}",
            "role": role,
            "created_at": created_at,
            "content": content if content is not None else [{"type": "text", "text": {"value": text}}]
        })
    return _make


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a throwaway database."""
    return Settings(
        database_path=str(tmp_path / "chatrelay.db"),
        log_level="WARNING",
        log_file=None
    )


@pytest.fixture
def db_conn(tmp_path):
    """Provide a fresh database connection."""
    db = DatabaseConnection(str(tmp_path / "test.db"))
    yield db
    db.close()


@pytest.fixture
def store(db_conn):
    """Provide a DuckDB-backed conversation store."""
    return DuckDBConversationStore(db_conn)


@pytest.fixture
def gateway():
    """Provide a recording fake gateway."""
    return FakeGateway()


@pytest.fixture
def make_config():
    """Factory for ConfigurationDO with sensible defaults."""
    def _make(**overrides) -> ConfigurationDO:
        defaults = dict(
            id=str(uuid.uuid4()),
            name="Test Config",
            api_key="sk-test-1234567890abcdef",
            model="gpt-4"
        )
        defaults.update(overrides)
        return ConfigurationDO(**defaults)
    return _make


@pytest.fixture
def direct_config(make_config):
    return make_config(mode=WorkflowMode.DIRECT)


@pytest.fixture
def assisted_config(make_config):
    return make_config(mode=WorkflowMode.ASSISTED, assistant_id="asst_1")


@pytest.fixture
def make_thread(store):
    """Factory that stores a thread and returns it; without a name it gets the default one."""
    async def _make(thread_id: str = "thread_1", name: Optional[str] = None, configuration_id: Optional[str] = None) -> ThreadDO:
        now = datetime.utcnow()
        return await store.create_thread(ThreadDO(
            id=thread_id,
            name=name or "Thread 1",
            configuration_id=configuration_id,
            has_default_name=name is None,
            created_at=now,
            last_activity=now
        ))
    return _make
