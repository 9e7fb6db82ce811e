"""
Error taxonomy for agent runs.

Adapter failures are classified here before they reach the agent loop:
the retry policy only looks at ``retryable`` and ``kind``. Tool failures
share the same kinds but are converted to error tool results by the
coordinator and never escape as exceptions.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Classified failure kinds"""

    TRANSIENT_NETWORK = "transient_network"
    RATE_LIMIT = "rate_limit"
    INVALID_REQUEST = "invalid_request"
    STREAM_DECODE = "stream_decode"
    PROVIDER = "provider"
    TOOL_EXECUTION = "tool_execution"
    TOOL_NOT_FOUND = "tool_not_found"
    TOOL_INPUT_INVALID = "tool_input_invalid"
    TOOL_EXECUTION_DENIED = "tool_execution_denied"
    MAX_TOOL_CALLS_EXCEEDED = "max_tool_calls_exceeded"
    ABORTED = "aborted"


class AgentRunError(Exception):
    """Base exception for all classified run failures."""

    kind: ErrorKind = ErrorKind.PROVIDER
    retryable: bool = False

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class TransientNetworkError(AgentRunError):
    """Connection reset, timeout, 5xx and similar."""

    kind = ErrorKind.TRANSIENT_NETWORK
    retryable = True


class RateLimitError(AgentRunError):
    """Provider throttled the request.

    ``retry_after`` is the server-supplied delay hint in seconds, if any.
    """

    kind = ErrorKind.RATE_LIMIT
    retryable = True

    def __init__(self, message: str = "", retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class InvalidRequestError(AgentRunError):
    """Request rejected by the provider. Never retried."""

    kind = ErrorKind.INVALID_REQUEST


class StreamDecodeError(AgentRunError):
    """Malformed or out-of-protocol event sequence."""

    kind = ErrorKind.STREAM_DECODE


class ProviderError(AgentRunError):
    """Adapter failure that could not be classified."""

    kind = ErrorKind.PROVIDER


class ToolExecutionError(AgentRunError):
    """Raised by tools to report their own failure."""

    kind = ErrorKind.TOOL_EXECUTION


class ToolNotFoundError(AgentRunError):
    kind = ErrorKind.TOOL_NOT_FOUND


class ToolInputInvalidError(AgentRunError):
    kind = ErrorKind.TOOL_INPUT_INVALID


class ToolExecutionDeniedError(AgentRunError):
    kind = ErrorKind.TOOL_EXECUTION_DENIED


class MaxToolCallsExceededError(AgentRunError):
    kind = ErrorKind.MAX_TOOL_CALLS_EXCEEDED


class AbortedError(AgentRunError):
    """Cancellation signal observed."""

    kind = ErrorKind.ABORTED


_ERRORS_BY_KIND: dict[ErrorKind, type[AgentRunError]] = {
    cls.kind: cls
    for cls in (
        TransientNetworkError,
        RateLimitError,
        InvalidRequestError,
        StreamDecodeError,
        ProviderError,
        ToolExecutionError,
        ToolNotFoundError,
        ToolInputInvalidError,
        ToolExecutionDeniedError,
        MaxToolCallsExceededError,
        AbortedError,
    )
}


def error_from_kind(kind: str, message: str) -> AgentRunError:
    """Build the exception matching an error kind reported by an adapter."""
    try:
        error_cls = _ERRORS_BY_KIND[ErrorKind(kind)]
    except ValueError:
        return ProviderError(f"{kind}: {message}")
    return error_cls(message)


def classify(exc: BaseException) -> ErrorKind:
    """Map any exception to an ErrorKind."""
    if isinstance(exc, AgentRunError):
        return exc.kind
    return ErrorKind.PROVIDER


__all__ = [
    "ErrorKind",
    "AgentRunError",
    "TransientNetworkError",
    "RateLimitError",
    "InvalidRequestError",
    "StreamDecodeError",
    "ProviderError",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolInputInvalidError",
    "ToolExecutionDeniedError",
    "MaxToolCallsExceededError",
    "AbortedError",
    "error_from_kind",
    "classify",
]
