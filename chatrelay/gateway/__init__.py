"""Remote chat gateway package."""

from .client import ChatGateway
from .errors import (
    ErrorKind,
    ChatRelayError,
    GatewayError,
    AuthError,
    RateLimited,
    NotFound,
    BadRequest,
    NetworkError,
    UpstreamError,
    TurnError,
    RunFailed,
    RunCancelled,
    RunTimedOut,
    NoReplyFound,
    EmptyCompletion,
)
from .schemas import RunStatus, RemoteRun, RemoteMessage, RemoteAssistant

__all__ = [
    "ChatGateway",
    "ErrorKind",
    "ChatRelayError",
    "GatewayError",
    "AuthError",
    "RateLimited",
    "NotFound",
    "BadRequest",
    "NetworkError",
    "UpstreamError",
    "TurnError",
    "RunFailed",
    "RunCancelled",
    "RunTimedOut",
    "NoReplyFound",
    "EmptyCompletion",
    "RunStatus",
    "RemoteRun",
    "RemoteMessage",
    "RemoteAssistant",
]
