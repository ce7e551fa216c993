"""Provider response shapes the gateway reads.

Only the fields the orchestrator depends on are declared; everything else in
the provider payload is ignored.
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class RunStatus(str, Enum):
    """Lifecycle states of a provider run."""
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REQUIRES_ACTION = "requires_action"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


# Statuses that end polling immediately; anything else keeps polling until the cap
TERMINAL_STATUSES = frozenset({RunStatus.COMPLETED.value, RunStatus.FAILED.value, RunStatus.CANCELLED.value})


class _ProviderModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class RemoteThread(_ProviderModel):
    id: str
    created_at: Optional[int] = None


class RemoteMessageRef(_ProviderModel):
    """Acknowledgement of a posted message."""

    id: str


class RemoteRun(_ProviderModel):
    """A provider-side run; never persisted."""

    id: str
    status: str
    thread_id: Optional[str] = None
    assistant_id: Optional[str] = None
    created_at: Optional[int] = None
    completed_at: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class TextValue(_ProviderModel):
    value: str = ""


class ContentBlock(_ProviderModel):
    type: str
    text: Optional[TextValue] = None


class RemoteMessage(_ProviderModel):
    id: str
    role: str
    created_at: int = 0
    content: List[ContentBlock] = Field(default_factory=list)
    run_id: Optional[str] = None

    def text(self) -> str:
        """Text segments joined in order; other segment types are skipped."""
        return "\n".join(
            block.text.value if block.text else ""
            for block in self.content
            if block.type == "text"
        )


class MessageList(_ProviderModel):
    data: List[RemoteMessage] = Field(default_factory=list)
    has_more: bool = False


class CompletionMessage(_ProviderModel):
    role: str = "assistant"
    content: Optional[str] = None


class CompletionChoice(_ProviderModel):
    index: int = 0
    message: CompletionMessage = Field(default_factory=CompletionMessage)
    finish_reason: Optional[str] = None


class CompletionResponse(_ProviderModel):
    id: Optional[str] = None
    model: Optional[str] = None
    choices: List[CompletionChoice] = Field(default_factory=list)

    def first_content(self) -> str:
        if not self.choices:
            return ""
        return self.choices[0].message.content or ""


class RemoteModel(_ProviderModel):
    id: str


class ModelList(_ProviderModel):
    data: List[RemoteModel] = Field(default_factory=list)


class AssistantTool(BaseModel):
    """One tool on an assistant; definitions beyond ``type`` are kept for write-back."""

    model_config = ConfigDict(extra="allow")

    type: str


class FileSearchResources(_ProviderModel):
    vector_store_ids: List[str] = Field(default_factory=list)


class ToolResources(_ProviderModel):
    file_search: Optional[FileSearchResources] = None


class RemoteAssistant(_ProviderModel):
    id: str
    name: Optional[str] = None
    model: Optional[str] = None
    tools: List[AssistantTool] = Field(default_factory=list)
    tool_resources: Optional[ToolResources] = None

    @property
    def has_file_search(self) -> bool:
        return any(tool.type == "file_search" for tool in self.tools)

    @property
    def vector_store_ids(self) -> List[str]:
        if self.tool_resources and self.tool_resources.file_search:
            return list(self.tool_resources.file_search.vector_store_ids)
        return []

    def tools_payload(self) -> List[Dict[str, Any]]:
        return [tool.model_dump() for tool in self.tools]


class AssistantList(_ProviderModel):
    data: List[RemoteAssistant] = Field(default_factory=list)


class RemoteVectorStore(_ProviderModel):
    id: str
    name: Optional[str] = None
