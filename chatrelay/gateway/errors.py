"""Error taxonomy shared by the gateway and the orchestrator."""

from enum import Enum
from typing import Optional

import httpx


class ErrorKind(str, Enum):
    """Classified failure reasons surfaced to callers."""
    AUTH_ERROR = "auth_error"
    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    BAD_REQUEST = "bad_request"
    RUN_FAILED = "run_failed"
    RUN_CANCELLED = "run_cancelled"
    RUN_TIMED_OUT = "run_timed_out"
    NO_REPLY_FOUND = "no_reply_found"
    EMPTY_COMPLETION = "empty_completion"
    NETWORK_ERROR = "network_error"
    UPSTREAM_ERROR = "upstream_error"


class ChatRelayError(Exception):
    """Base class for every classified failure."""

    kind: ErrorKind = ErrorKind.UPSTREAM_ERROR
    default_message = "Request failed. Please try again."

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message or self.default_message)
        self.status_code = status_code


# === Gateway errors ===

class GatewayError(ChatRelayError):
    """A provider call failed."""


class AuthError(GatewayError):
    kind = ErrorKind.AUTH_ERROR
    default_message = "Authentication failed. Please check your API key."


class RateLimited(GatewayError):
    kind = ErrorKind.RATE_LIMITED
    default_message = "Rate limit exceeded. Please try again later."


class NotFound(GatewayError):
    kind = ErrorKind.NOT_FOUND
    default_message = "The requested resource was not found."


class BadRequest(GatewayError):
    kind = ErrorKind.BAD_REQUEST
    default_message = "Bad request: Invalid request format"


class NetworkError(GatewayError):
    kind = ErrorKind.NETWORK_ERROR
    default_message = "Could not reach the provider. Check your network connection."


class UpstreamError(GatewayError):
    kind = ErrorKind.UPSTREAM_ERROR
    default_message = "Provider server error. Please try again later."


# === Turn errors ===

class TurnError(ChatRelayError):
    """A turn could not produce a reply even though every call succeeded."""


class RunFailed(TurnError):
    kind = ErrorKind.RUN_FAILED
    default_message = "Assistant run failed. Please try again."


class RunCancelled(TurnError):
    kind = ErrorKind.RUN_CANCELLED
    default_message = "Assistant run was cancelled."


class RunTimedOut(TurnError):
    kind = ErrorKind.RUN_TIMED_OUT
    default_message = "Assistant run timed out. Please try again."


class NoReplyFound(TurnError):
    kind = ErrorKind.NO_REPLY_FOUND
    default_message = "No assistant response found in the thread."


class EmptyCompletion(TurnError):
    kind = ErrorKind.EMPTY_COMPLETION
    default_message = "No response received from the model."


def _provider_detail(response: httpx.Response) -> Optional[str]:
    """Pull ``error.message`` out of a provider error body, if present."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return None


def classify_response(response: httpx.Response, not_found: Optional[str] = None) -> GatewayError:
    """
    Map a non-success provider response to a gateway error.

    Args:
        response: The failed response
        not_found: Message to use for 404s, naming the missing resource

    Returns:
        GatewayError instance (not raised)
    """
    status = response.status_code

    if status in (401, 403):
        return AuthError(status_code=status)
    if status == 429:
        return RateLimited(status_code=status)
    if status == 404:
        return NotFound(not_found, status_code=status)
    if status in (400, 422):
        detail = _provider_detail(response) or "Invalid request format"
        return BadRequest(f"Bad request: {detail}", status_code=status)
    if status >= 500:
        return UpstreamError(status_code=status)
    detail = _provider_detail(response)
    return UpstreamError(
        f"Unexpected provider response {status}" + (f": {detail}" if detail else ""),
        status_code=status
    )
