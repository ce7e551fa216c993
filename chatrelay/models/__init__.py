"""Pydantic models for API request/response."""

from .configuration import (
    CreateConfigurationRequest,
    UpdateConfigurationRequest,
    ConfigurationResponse,
    ConfigurationListResponse,
    DiagnosticsResponse,
    ModelListResponse,
    FileSearchResponse,
)
from .thread import (
    ThreadResponse,
    ThreadListResponse,
    CreateThreadRequest,
    RenameThreadRequest,
)
from .message import (
    AttachmentModel,
    MessageResponse,
    ThreadMessagesResponse,
    SendMessageRequest,
    TurnResponse,
)

__all__ = [
    "CreateConfigurationRequest",
    "UpdateConfigurationRequest",
    "ConfigurationResponse",
    "ConfigurationListResponse",
    "DiagnosticsResponse",
    "ModelListResponse",
    "FileSearchResponse",
    "ThreadResponse",
    "ThreadListResponse",
    "CreateThreadRequest",
    "RenameThreadRequest",
    "AttachmentModel",
    "MessageResponse",
    "ThreadMessagesResponse",
    "SendMessageRequest",
    "TurnResponse",
]
