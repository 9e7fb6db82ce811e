"""
Stream accumulation.

Reduces the ordered events of one adapter call into a finalized assistant
Message plus usage and finish reason. Atomic replies go through the same
reduction after being expanded with ``response_to_events``, so streaming
and non-streaming calls finalize identically.
"""

import json
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Iterable

from agentrun.domain import (
    Completion,
    ContentPart,
    ErrorEvent,
    Finish,
    FinishReason,
    Message,
    MessageRole,
    ProviderMetadata,
    ReasoningDelta,
    ReasoningPart,
    SourceEvent,
    SourcePart,
    StreamEvent,
    TextDelta,
    TextPart,
    ToolCallComplete,
    ToolCallDelta,
    ToolCallPart,
    Usage,
)
from agentrun.errors import StreamDecodeError, error_from_kind
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)

EventCallback = Callable[[StreamEvent], Awaitable[None]]

_TEXT = "text"
_TOOL_CALL = "tool_call"
_REASONING = "reasoning"
_SOURCE = "source"


@dataclass
class _ToolCallBuilder:
    id: str
    name: str | None = None
    arguments: str = ""
    complete: bool = False

    def add_name(self, fragment: str) -> None:
        # A fragment carrying the name so far is a full resend and replaces it
        if self.name is None or fragment.startswith(self.name):
            self.name = fragment
        else:
            self.name += fragment

    def build(self) -> ToolCallPart:
        if self.complete:
            return ToolCallPart(id=self.id, name=self.name or "", arguments_json=self.arguments)

        arguments = self.arguments.strip() or "{}"
        if not self.name:
            return ToolCallPart(
                id=self.id,
                name="",
                arguments_json=arguments,
                parse_error="Tool call has no name",
            )
        try:
            json.loads(arguments)
        except json.JSONDecodeError as e:
            return ToolCallPart(
                id=self.id,
                name=self.name,
                arguments_json=arguments,
                parse_error=f"Invalid JSON arguments: {e}",
            )
        return ToolCallPart(id=self.id, name=self.name, arguments_json=arguments)


class StreamAccumulator:
    """
    Accumulate the events of a single adapter call.

    Owned by exactly one in-flight call: created when the call starts,
    fed every event in arrival order, finalized once. Content parts come
    out in first-seen order; text slots take the text buffers in ascending
    index order.
    """

    def __init__(self):
        self._texts: dict[int, list[str]] = {}
        self._tool_calls: dict[str, _ToolCallBuilder] = {}
        self._reasoning: list[str] = []
        self._slots: list[tuple[str, Any]] = []
        self._finish_reason: FinishReason | None = None
        self._usage = Usage()
        self._metadata: dict[str, Any] = {}
        self._finished = False
        self._finalized = False

    @property
    def finished(self) -> bool:
        """Whether a Finish event has been applied."""
        return self._finished

    def apply(self, event: StreamEvent) -> "StreamAccumulator":
        """
        Apply one event.

        Raises:
            StreamDecodeError: the event violates the stream protocol
            AgentRunError: the event is an in-band provider error
        """
        if self._finalized:
            raise RuntimeError("StreamAccumulator has already been finalized")

        if isinstance(event, ErrorEvent):
            raise error_from_kind(event.kind, event.message)

        if self._finished:
            raise StreamDecodeError(f"'{event.type}' event received after finish")

        if isinstance(event, TextDelta):
            if event.index not in self._texts:
                self._texts[event.index] = []
                self._slots.append((_TEXT, event.index))
            self._texts[event.index].append(event.text)

        elif isinstance(event, ToolCallDelta):
            builder = self._builder(event.id)
            if builder.complete:
                raise StreamDecodeError(f"Delta for tool call {event.id} after it was completed")
            if event.name_fragment:
                builder.add_name(event.name_fragment)
            if event.arguments_fragment:
                builder.arguments += event.arguments_fragment

        elif isinstance(event, ToolCallComplete):
            builder = self._builder(event.id)
            if builder.complete:
                raise StreamDecodeError(f"Tool call {event.id} completed twice")
            builder.name = event.name
            builder.arguments = event.arguments_json
            builder.complete = True

        elif isinstance(event, ReasoningDelta):
            if not self._reasoning:
                self._slots.append((_REASONING, None))
            self._reasoning.append(event.text)

        elif isinstance(event, SourceEvent):
            self._slots.append((_SOURCE, SourcePart(reference=event.reference)))

        elif isinstance(event, ProviderMetadata):
            self._metadata.update(event.payload)

        elif isinstance(event, Finish):
            self._finish_reason = event.reason
            self._usage = event.usage
            self._finished = True

        else:
            raise StreamDecodeError(f"Unknown stream event: {event!r}")

        return self

    def accumulate(self, events: Iterable[StreamEvent]) -> "StreamAccumulator":
        for event in events:
            self.apply(event)
        return self

    def finalize(self) -> Completion:
        """Produce the finalized message. May be called once."""
        if self._finalized:
            raise RuntimeError("StreamAccumulator has already been finalized")
        self._finalized = True

        if not self._finished:
            logger.warning("stream_ended_without_finish", parts=len(self._slots))

        text_indices = iter(sorted(self._texts))
        content: list[ContentPart] = []
        for kind, key in self._slots:
            if kind == _TEXT:
                text = "".join(self._texts[next(text_indices)])
                if text:
                    content.append(TextPart(text=text))
            elif kind == _TOOL_CALL:
                content.append(self._tool_calls[key].build())
            elif kind == _REASONING:
                content.append(ReasoningPart(text="".join(self._reasoning)))
            else:
                content.append(key)

        return Completion(
            message=Message(role=MessageRole.ASSISTANT, content=content),
            usage=self._usage,
            finish_reason=self._finish_reason or FinishReason.UNKNOWN,
            provider_metadata=dict(self._metadata),
        )

    def _builder(self, call_id: str) -> _ToolCallBuilder:
        builder = self._tool_calls.get(call_id)
        if builder is None:
            builder = _ToolCallBuilder(id=call_id)
            self._tool_calls[call_id] = builder
            self._slots.append((_TOOL_CALL, call_id))
        return builder


async def accumulate_stream(
    events: AsyncIterator[StreamEvent],
    on_event: EventCallback | None = None,
) -> Completion:
    """
    Drain one adapter stream into a Completion.

    A fresh accumulator is used per call, so a failed attempt leaves
    nothing behind for the next one.
    """
    accumulator = StreamAccumulator()
    async for event in events:
        accumulator.apply(event)
        if on_event is not None:
            await on_event(event)
    return accumulator.finalize()


__all__ = ["StreamAccumulator", "accumulate_stream"]
