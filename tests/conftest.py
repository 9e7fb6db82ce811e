"""
Shared test fixtures: a scripted model and a few simple tools.
"""

from typing import Any, AsyncIterator

import pytest
from pydantic import Field

from agentrun.domain import (
    Finish,
    FinishReason,
    Message,
    ModelResponse,
    StreamEvent,
    TextDelta,
    ToolCallComplete,
    Usage,
)
from agentrun.llm.base import CallOptions, Model, response_to_events
from agentrun.tools import FunctionTool


class ScriptedModel(Model):
    """
    Model that replays scripted replies, one per call.

    Each script item is a list of stream events, a ModelResponse, or an
    exception to raise for that call.
    """

    script: list[Any] = Field(default_factory=list)
    calls: list[CallOptions] = Field(default_factory=list)

    def _next(self, options: CallOptions) -> Any:
        self.calls.append(options)
        if not self.script:
            raise AssertionError("ScriptedModel has no reply left")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def arun(self, options: CallOptions) -> ModelResponse:
        item = self._next(options)
        if not isinstance(item, ModelResponse):
            raise TypeError(f"Scripted item {item!r} is not a ModelResponse")
        return item

    async def arun_stream(self, options: CallOptions) -> AsyncIterator[StreamEvent]:
        item = self._next(options)
        events = response_to_events(item) if isinstance(item, ModelResponse) else item
        for event in events:
            yield event


def text_reply(text: str, usage: Usage | None = None) -> list[StreamEvent]:
    """One character per TextDelta, then Finish(stop)."""
    events: list[StreamEvent] = [TextDelta(index=0, text=ch) for ch in text]
    events.append(Finish(reason=FinishReason.STOP, usage=usage or Usage()))
    return events


def tool_call_reply(*calls: tuple[str, str, str], usage: Usage | None = None) -> list[StreamEvent]:
    """One ToolCallComplete per (id, name, arguments_json), then Finish(tool_calls)."""
    events: list[StreamEvent] = [
        ToolCallComplete(id=call_id, name=name, arguments_json=arguments)
        for call_id, name, arguments in calls
    ]
    events.append(Finish(reason=FinishReason.TOOL_CALLS, usage=usage or Usage()))
    return events


def get_weather(location: str) -> dict:
    """Get the current weather for a location."""
    return {"temp": 72}


@pytest.fixture
def scripted_model():
    def factory(*script: Any) -> ScriptedModel:
        return ScriptedModel(id="test/scripted", name="scripted", script=list(script))

    return factory


@pytest.fixture
def weather_tool() -> FunctionTool:
    return FunctionTool(get_weather)


@pytest.fixture
def user_message() -> Message:
    return Message.user("2+2?")
