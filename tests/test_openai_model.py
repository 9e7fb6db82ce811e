"""
Tests for the OpenAI adapter.

The SDK client is real; only ``chat.completions.create`` is replaced, with
responses built from the SDK's own types.
"""

from unittest.mock import AsyncMock, patch

import httpx
import openai
import pytest
from openai.types.chat import ChatCompletion, ChatCompletionChunk

from agentrun.config import AgentRunSettings
from agentrun.config.exceptions import InvalidConfigError
from agentrun.domain import (
    FinishReason,
    Message,
    MessageRole,
    ToolCallPart,
    ToolResultPart,
    ToolSpec,
)
from agentrun.errors import (
    AbortedError,
    InvalidRequestError,
    ProviderError,
    RateLimitError,
    StreamDecodeError,
    TransientNetworkError,
)
from agentrun.llm import CallOptions, OpenAIModel
from agentrun.llm.openai import classify_openai_error, map_finish_reason, to_openai_messages
from agentrun.runtime import AbortSignal, accumulate_stream

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def make_model() -> OpenAIModel:
    return OpenAIModel(
        id="openai/gpt-4o-mini",
        name="gpt-4o-mini",
        model_name="gpt-4o-mini",
        api_key="test-key",
    )


def chunk(delta=None, finish_reason=None, usage=None) -> ChatCompletionChunk:
    choices = []
    if delta is not None or finish_reason is not None:
        choices = [{"index": 0, "delta": delta or {}, "finish_reason": finish_reason}]
    return ChatCompletionChunk.model_validate(
        {
            "id": "chatcmpl-1",
            "object": "chat.completion.chunk",
            "created": 0,
            "model": "gpt-4o-mini",
            "choices": choices,
            "usage": usage,
        }
    )


class FakeStream:
    """Async iterator over chunks with the SDK stream's ``close``."""

    def __init__(self, chunks):
        self.chunks = list(chunks)
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for c in self.chunks:
            yield c

    async def close(self):
        self.closed = True


def stream_of(*chunks) -> FakeStream:
    return FakeStream(chunks)


def status_error(cls, status, headers=None):
    response = httpx.Response(status, request=REQUEST, headers=headers or {})
    return cls(f"HTTP {status}", response=response, body=None)


def options(**kwargs) -> CallOptions:
    return CallOptions(messages=[Message.user("hi")], **kwargs)


@pytest.mark.asyncio
async def test_stream_maps_text_tool_calls_and_usage():
    model = make_model()
    model.client.chat.completions.create = AsyncMock(
        return_value=stream_of(
            chunk({"role": "assistant", "content": "Let me "}),
            chunk({"content": "check."}),
            chunk(
                {
                    "tool_calls": [
                        {
                            "index": 0,
                            "id": "call_1",
                            "type": "function",
                            "function": {"name": "get_weather", "arguments": ""},
                        }
                    ]
                }
            ),
            chunk({"tool_calls": [{"index": 0, "function": {"arguments": '{"location":'}}]}),
            chunk({"tool_calls": [{"index": 0, "function": {"arguments": '"SF"}'}}]}),
            chunk(finish_reason="tool_calls"),
            chunk(
                usage={
                    "prompt_tokens": 20,
                    "completion_tokens": 9,
                    "total_tokens": 29,
                    "prompt_tokens_details": {"cached_tokens": 4},
                }
            ),
        )
    )

    completion = await accumulate_stream(model.arun_stream(options()))

    assert completion.message.text == "Let me check."
    assert completion.message.tool_calls == [
        ToolCallPart(id="call_1", name="get_weather", arguments_json='{"location":"SF"}')
    ]
    assert completion.finish_reason == FinishReason.TOOL_CALLS
    assert completion.usage.total_tokens == 29
    assert completion.usage.cached_tokens == 4

    params = model.client.chat.completions.create.await_args.kwargs
    assert params["stream"] is True
    assert params["stream_options"] == {"include_usage": True}


@pytest.mark.asyncio
async def test_stream_fragment_without_id_is_decode_error():
    model = make_model()
    stream = stream_of(
        chunk({"tool_calls": [{"index": 0, "function": {"arguments": "{}"}}]}),
    )
    model.client.chat.completions.create = AsyncMock(return_value=stream)

    with pytest.raises(StreamDecodeError):
        async for _ in model.arun_stream(options()):
            pass
    assert stream.closed


@pytest.mark.asyncio
async def test_stream_is_closed_when_aborted():
    model = make_model()
    stream = stream_of(chunk({"content": "a"}), chunk({"content": "b"}), chunk(finish_reason="stop"))
    model.client.chat.completions.create = AsyncMock(return_value=stream)
    signal = AbortSignal()
    received = []

    with pytest.raises(AbortedError):
        async for event in model.arun_stream(options(abort_signal=signal)):
            received.append(event)
            signal.abort("stop")

    assert len(received) == 1
    assert stream.closed


@pytest.mark.asyncio
async def test_atomic_call():
    model = make_model()
    model.client.chat.completions.create = AsyncMock(
        return_value=ChatCompletion.model_validate(
            {
                "id": "chatcmpl-2",
                "object": "chat.completion",
                "created": 0,
                "model": "gpt-4o-mini",
                "choices": [
                    {
                        "index": 0,
                        "finish_reason": "stop",
                        "message": {"role": "assistant", "content": "4"},
                    }
                ],
                "usage": {"prompt_tokens": 5, "completion_tokens": 1, "total_tokens": 6},
            }
        )
    )

    response = await model.arun(options(temperature=0.1, max_tokens=16))

    assert response.content[0].text == "4"
    assert response.finish_reason == FinishReason.STOP
    assert response.usage.prompt_tokens == 5
    assert response.provider_metadata["id"] == "chatcmpl-2"

    params = model.client.chat.completions.create.await_args.kwargs
    assert params["model"] == "gpt-4o-mini"
    assert params["temperature"] == 0.1
    assert params["max_tokens"] == 16
    assert "stream" not in params
    assert "tools" not in params


@pytest.mark.asyncio
async def test_tools_are_sent_in_function_format():
    model = make_model()
    model.client.chat.completions.create = AsyncMock(return_value=stream_of(chunk(finish_reason="stop")))
    spec = ToolSpec(
        name="get_weather",
        description="Weather lookup",
        input_schema={"type": "object", "properties": {"location": {"type": "string"}}},
    )

    async for _ in model.arun_stream(options(tools=[spec], tool_choice="required")):
        pass

    params = model.client.chat.completions.create.await_args.kwargs
    assert params["tools"][0]["function"]["name"] == "get_weather"
    assert params["tools"][0]["function"]["parameters"] == spec.input_schema
    assert params["tool_choice"] == "required"


@pytest.mark.asyncio
async def test_request_failure_is_logged_and_classified():
    model = make_model()
    model.client.chat.completions.create = AsyncMock(
        side_effect=status_error(openai.RateLimitError, 429, {"retry-after": "2"})
    )

    with patch("agentrun.llm.openai.logger") as mock_logger:
        with pytest.raises(RateLimitError) as exc_info:
            await model.arun(options())

    assert exc_info.value.retry_after == 2.0
    assert isinstance(exc_info.value.__cause__, openai.RateLimitError)

    call_args = mock_logger.error.call_args
    assert call_args[0][0] == "llm_request_failed"
    assert call_args[1]["error_type"] == "RateLimitError"
    assert call_args[1]["messages_count"] == 1
    assert call_args[1]["exc_info"] is True


@pytest.mark.parametrize(
    "exc, expected",
    [
        (status_error(openai.RateLimitError, 429), RateLimitError),
        (status_error(openai.InternalServerError, 503), TransientNetworkError),
        (status_error(openai.BadRequestError, 400), InvalidRequestError),
        (status_error(openai.AuthenticationError, 401), InvalidRequestError),
        (status_error(openai.ConflictError, 409), TransientNetworkError),
        (openai.APIConnectionError(request=REQUEST), TransientNetworkError),
        (openai.APITimeoutError(request=REQUEST), TransientNetworkError),
        (openai.OpenAIError("odd"), ProviderError),
    ],
)
def test_classify_openai_error(exc, expected):
    assert type(classify_openai_error(exc)) is expected


def test_retry_after_ms_header_takes_precedence():
    exc = status_error(openai.RateLimitError, 429, {"retry-after-ms": "1500", "retry-after": "9"})

    assert classify_openai_error(exc).retry_after == 1.5


def test_map_finish_reason():
    assert map_finish_reason("stop") == FinishReason.STOP
    assert map_finish_reason("length") == FinishReason.LENGTH
    assert map_finish_reason("tool_calls") == FinishReason.TOOL_CALLS
    assert map_finish_reason("something_new") == FinishReason.OTHER
    assert map_finish_reason(None) == FinishReason.UNKNOWN


def test_tool_message_is_split_per_result():
    messages = [
        Message.system("Be brief."),
        Message(
            role=MessageRole.ASSISTANT,
            content=[
                ToolCallPart(id="1", name="a", arguments_json="{}"),
                ToolCallPart(id="2", name="b", arguments_json='{"x":1}'),
            ],
        ),
        Message(
            role=MessageRole.TOOL,
            content=[
                ToolResultPart(call_id="1", output_json='"A"'),
                ToolResultPart(call_id="2", output_json='"B"'),
            ],
        ),
    ]

    converted = to_openai_messages(messages)

    assert converted[0] == {"role": "system", "content": "Be brief."}
    assert converted[1]["content"] is None
    assert [c["id"] for c in converted[1]["tool_calls"]] == ["1", "2"]
    assert converted[2:] == [
        {"role": "tool", "tool_call_id": "1", "content": '"A"'},
        {"role": "tool", "tool_call_id": "2", "content": '"B"'},
    ]


def test_model_requires_credentials():
    with pytest.raises(InvalidConfigError):
        OpenAIModel(id="openai/gpt-4o", name="gpt-4o")


def test_from_settings(monkeypatch):
    monkeypatch.setenv("AGENTRUN_OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("AGENTRUN_OPENAI_MODEL", "gpt-4o")
    settings = AgentRunSettings(_env_file=None)

    model = OpenAIModel.from_settings(settings, temperature=0.3)

    assert model.id == "openai/gpt-4o"
    assert model.model_name == "gpt-4o"
    assert model.temperature == 0.3
    assert model.api_key.get_secret_value() == "sk-test"
