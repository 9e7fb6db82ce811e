"""
Core domain models for agent runs.

This module contains:
- Usage / FinishReason: per-call accounting and termination classification
- ModelResponse / Completion: atomic adapter output and finalized accumulator output
- StepResult: one completed round
- AgentRunState: the run's ownership root (append-only history)
"""

from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from agentrun.errors import ErrorKind

from .messages import ContentPart, Message, MessageRole, ToolCallPart, ToolResultPart


# ============================================================================
# Enums
# ============================================================================


class FinishReason(str, Enum):
    """Why a single adapter call ended"""

    STOP = "stop"
    LENGTH = "length"
    CONTENT_FILTER = "content_filter"
    TOOL_CALLS = "tool_calls"
    ERROR = "error"
    OTHER = "other"
    UNKNOWN = "unknown"


class RunStatus(str, Enum):
    """Agent loop states"""

    RUNNING = "running"
    AWAITING_TOOLS = "awaiting_tools"
    STOPPED = "stopped"
    FAILED = "failed"


# ============================================================================
# Usage
# ============================================================================


class Usage(BaseModel):
    """
    Token usage counters.

    ``total_tokens`` is derived from prompt + completion when the adapter
    does not report it.
    """

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cached_tokens: int = 0

    @model_validator(mode="before")
    @classmethod
    def _derive_total(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("total_tokens"):
            data = {
                **data,
                "total_tokens": (data.get("prompt_tokens") or 0)
                + (data.get("completion_tokens") or 0),
            }
        return data

    def __add__(self, other: "Usage") -> "Usage":
        return Usage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
            cached_tokens=self.cached_tokens + other.cached_tokens,
        )


# ============================================================================
# Adapter / accumulator output
# ============================================================================


class ModelResponse(BaseModel):
    """Atomic (non-streaming) reply from a model adapter."""

    content: list[ContentPart] = Field(default_factory=list)
    finish_reason: FinishReason = FinishReason.STOP
    usage: Usage = Field(default_factory=Usage)
    provider_metadata: dict[str, Any] = Field(default_factory=dict)


class Completion(BaseModel):
    """Finalized output of one adapter call."""

    message: Message
    usage: Usage = Field(default_factory=Usage)
    finish_reason: FinishReason = FinishReason.UNKNOWN
    provider_metadata: dict[str, Any] = Field(default_factory=dict)


class StepResult(BaseModel):
    """
    One completed round: the assistant turn plus, if it requested tools,
    the tool turn that answered it.
    """

    step: int
    message: Message
    tool_message: Message | None = None
    finish_reason: FinishReason = FinishReason.UNKNOWN
    usage: Usage = Field(default_factory=Usage)

    @property
    def tool_calls(self) -> list[ToolCallPart]:
        return self.message.tool_calls

    @property
    def tool_results(self) -> list[ToolResultPart]:
        return self.tool_message.tool_results if self.tool_message else []

    @property
    def text(self) -> str:
        return self.message.text


# ============================================================================
# Run state
# ============================================================================


class AgentRunState(BaseModel):
    """
    The run's ownership root.

    Only the agent loop mutates it, and only by appending. Tools see a
    read-only ToolContext instead.
    """

    run_id: str = Field(default_factory=lambda: str(uuid4()))
    messages: list[Message] = Field(default_factory=list)
    steps: list[StepResult] = Field(default_factory=list)
    step: int = 0
    usage: Usage = Field(default_factory=Usage)
    tool_calls_count: int = 0
    finish_reason: FinishReason | None = None
    terminal: bool = False

    def append(self, message: Message) -> None:
        self.messages.append(message)

    def add_usage(self, usage: Usage) -> None:
        self.usage = self.usage + usage

    def record_step(self, result: StepResult) -> None:
        """Close a round: bump the step counter and keep its result."""
        self.steps.append(result)
        self.step += 1

    @property
    def last_assistant_message(self) -> Message | None:
        for message in reversed(self.messages):
            if message.role == MessageRole.ASSISTANT:
                return message
        return None

    def checkpoint(self, message_count: int) -> "AgentRunState":
        """
        Return a new state holding only the first ``message_count`` messages.

        Used when a round is interrupted: the returned history is what had
        been committed before that round began. Counters and usage are kept
        as they are.
        """
        return self.model_copy(
            update={
                "messages": [m.model_copy(deep=True) for m in self.messages[:message_count]],
                "steps": list(self.steps),
            }
        )


class RunError(BaseModel):
    """Classified failure carried by a failed run."""

    kind: ErrorKind
    message: str


__all__ = [
    "FinishReason",
    "RunStatus",
    "Usage",
    "ModelResponse",
    "Completion",
    "StepResult",
    "AgentRunState",
    "RunError",
]
