"""
Domain module - Pure data models with no runtime dependencies.

This module contains messages, stream events and run state.
"""

from .events import (
    ErrorEvent,
    Finish,
    ProviderMetadata,
    ReasoningDelta,
    SourceEvent,
    StreamEvent,
    TextDelta,
    ToolCallComplete,
    ToolCallDelta,
)
from .messages import (
    ContentPart,
    Message,
    MessageRole,
    ReasoningPart,
    SourcePart,
    TextPart,
    ToolCallPart,
    ToolResultPart,
)
from .models import (
    AgentRunState,
    Completion,
    FinishReason,
    ModelResponse,
    RunError,
    RunStatus,
    StepResult,
    Usage,
)
from .tools import ToolSpec

__all__ = [
    # Messages
    "MessageRole",
    "Message",
    "ContentPart",
    "TextPart",
    "ToolCallPart",
    "ToolResultPart",
    "ReasoningPart",
    "SourcePart",
    # Events
    "StreamEvent",
    "TextDelta",
    "ToolCallDelta",
    "ToolCallComplete",
    "ReasoningDelta",
    "SourceEvent",
    "Finish",
    "ErrorEvent",
    "ProviderMetadata",
    # Models
    "FinishReason",
    "RunStatus",
    "Usage",
    "ModelResponse",
    "Completion",
    "StepResult",
    "AgentRunState",
    "RunError",
    # Tools
    "ToolSpec",
]
