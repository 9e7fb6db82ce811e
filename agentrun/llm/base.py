"""
Model abstraction layer - Pure LLM Interface

Responsibilities:
- Define the adapter contract: one atomic call, one streaming call
- Standardize output to ModelResponse / StreamEvent

Does NOT handle:
- Tool loop logic
- Retries
- State management
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Iterator, Literal

from pydantic import BaseModel, ConfigDict, Field

from agentrun.domain import (
    Finish,
    Message,
    ModelResponse,
    ProviderMetadata,
    ReasoningDelta,
    ReasoningPart,
    SourceEvent,
    SourcePart,
    StreamEvent,
    TextDelta,
    TextPart,
    ToolCallComplete,
    ToolCallPart,
    ToolSpec,
)


class CallOptions(BaseModel):
    """
    Everything an adapter needs for one call.

    ``abort_signal`` is the run's cancellation signal; adapters that can
    cancel in-flight requests should watch it.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    messages: list[Message]
    tools: list[ToolSpec] | None = None
    tool_choice: Literal["auto", "none", "required"] = "auto"

    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None
    stop_sequences: list[str] | None = None
    seed: int | None = None

    abort_signal: Any = Field(default=None, exclude=True)


class Model(BaseModel, ABC):
    """
    Unified Model abstract base class.

    Adapters implement ``arun``. Adapters with native streaming also override
    ``arun_stream``; otherwise the atomic reply is replayed as events.
    """

    id: str = Field(description="Model identifier, format: provider/model-name")
    name: str = Field(description="Model name")

    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="allow")

    @abstractmethod
    async def arun(self, options: CallOptions) -> ModelResponse:
        """
        Atomic interface.

        Args:
            options: Messages, tool definitions and generation parameters

        Returns:
            ModelResponse: complete reply
        """
        pass

    async def arun_stream(self, options: CallOptions) -> AsyncIterator[StreamEvent]:
        """
        Streaming interface.

        Yields:
            StreamEvent: events in arrival order, ending with Finish
        """
        response = await self.arun(options)
        for event in response_to_events(response):
            yield event


def response_to_events(response: ModelResponse) -> Iterator[StreamEvent]:
    """
    Expand an atomic reply into the equivalent event sequence.

    Each text part becomes one TextDelta at its own index, each tool call one
    ToolCallComplete; a single Finish closes the sequence.
    """
    text_index = 0
    for part in response.content:
        if isinstance(part, TextPart):
            yield TextDelta(index=text_index, text=part.text)
            text_index += 1
        elif isinstance(part, ToolCallPart):
            yield ToolCallComplete(
                id=part.id, name=part.name, arguments_json=part.arguments_json
            )
        elif isinstance(part, ReasoningPart):
            yield ReasoningDelta(text=part.text)
        elif isinstance(part, SourcePart):
            yield SourceEvent(reference=part.reference)

    if response.provider_metadata:
        yield ProviderMetadata(payload=response.provider_metadata)

    yield Finish(reason=response.finish_reason, usage=response.usage)


__all__ = ["CallOptions", "Model", "response_to_events"]
