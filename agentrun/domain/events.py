"""
Stream events emitted by model adapters during incremental delivery.

All adapters must standardize their vendor-specific streaming output to
these events. Order within one adapter call is significant: events for the
same tool-call id are applied in arrival order.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

from .models import FinishReason, Usage


class TextDelta(BaseModel):
    """Text to append to the buffer at ``index``"""

    type: Literal["text_delta"] = "text_delta"
    index: int = 0
    text: str


class ToolCallDelta(BaseModel):
    """Fragment of a tool call that is still being streamed"""

    type: Literal["tool_call_delta"] = "tool_call_delta"
    id: str
    name_fragment: str | None = None
    arguments_fragment: str | None = None


class ToolCallComplete(BaseModel):
    """Final values for a tool call; no more deltas may follow for this id"""

    type: Literal["tool_call_complete"] = "tool_call_complete"
    id: str
    name: str
    arguments_json: str = "{}"


class ReasoningDelta(BaseModel):
    type: Literal["reasoning_delta"] = "reasoning_delta"
    text: str


class SourceEvent(BaseModel):
    """Citation or source reference attached to the response"""

    type: Literal["source"] = "source"
    reference: str


class Finish(BaseModel):
    type: Literal["finish"] = "finish"
    reason: FinishReason = FinishReason.STOP
    usage: Usage = Field(default_factory=Usage)


class ErrorEvent(BaseModel):
    """In-band failure reported by the provider mid-stream"""

    type: Literal["error"] = "error"
    kind: str
    message: str = ""


class ProviderMetadata(BaseModel):
    type: Literal["provider_metadata"] = "provider_metadata"
    payload: dict[str, Any] = Field(default_factory=dict)


StreamEvent = Annotated[
    Union[
        TextDelta,
        ToolCallDelta,
        ToolCallComplete,
        ReasoningDelta,
        SourceEvent,
        Finish,
        ErrorEvent,
        ProviderMetadata,
    ],
    Field(discriminator="type"),
]


__all__ = [
    "TextDelta",
    "ToolCallDelta",
    "ToolCallComplete",
    "ReasoningDelta",
    "SourceEvent",
    "Finish",
    "ErrorEvent",
    "ProviderMetadata",
    "StreamEvent",
]
