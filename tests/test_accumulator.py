import pytest

from agentrun.domain import (
    ErrorEvent,
    Finish,
    FinishReason,
    ModelResponse,
    ProviderMetadata,
    ReasoningDelta,
    ReasoningPart,
    SourceEvent,
    SourcePart,
    TextDelta,
    TextPart,
    ToolCallComplete,
    ToolCallDelta,
    ToolCallPart,
    Usage,
)
from agentrun.errors import ProviderError, RateLimitError, StreamDecodeError
from agentrun.llm.base import response_to_events
from agentrun.runtime import StreamAccumulator, accumulate_stream

TEXT = "The answer is 4, as always."


def finalize(events):
    return StreamAccumulator().accumulate(events).finalize()


@pytest.mark.parametrize("chunk_size", [1, 3, 7, len(TEXT)])
def test_text_is_independent_of_chunking(chunk_size):
    chunks = [TEXT[i : i + chunk_size] for i in range(0, len(TEXT), chunk_size)]
    events = [TextDelta(text=chunk) for chunk in chunks] + [Finish()]

    completion = finalize(events)

    assert completion.message.content == [TextPart(text=TEXT)]


def test_atomic_and_chunked_stream_finalize_identically():
    response = ModelResponse(
        content=[
            TextPart(text="Let me check."),
            ToolCallPart(id="call_1", name="get_weather", arguments_json='{"location":"SF"}'),
            ToolCallPart(id="call_2", name="get_time", arguments_json='{"tz":"PST"}'),
        ],
        finish_reason=FinishReason.TOOL_CALLS,
        usage=Usage(prompt_tokens=12, completion_tokens=8),
    )
    stream = [TextDelta(index=0, text=ch) for ch in "Let me check."]
    stream += [
        ToolCallComplete(id="call_1", name="get_weather", arguments_json='{"location":"SF"}'),
        ToolCallComplete(id="call_2", name="get_time", arguments_json='{"tz":"PST"}'),
        Finish(reason=FinishReason.TOOL_CALLS, usage=Usage(prompt_tokens=12, completion_tokens=8)),
    ]

    atomic = finalize(response_to_events(response))
    streamed = finalize(stream)

    assert atomic.message.model_dump_json() == streamed.message.model_dump_json()
    assert atomic.usage == streamed.usage
    assert atomic.finish_reason == streamed.finish_reason == FinishReason.TOOL_CALLS


def test_tool_call_fragments_are_concatenated():
    events = [
        ToolCallDelta(id="call_1", name_fragment="get_", arguments_fragment='{"loc'),
        ToolCallDelta(id="call_1", name_fragment="weather", arguments_fragment='ation": '),
        ToolCallDelta(id="call_1", arguments_fragment='"SF"}'),
        Finish(reason=FinishReason.TOOL_CALLS),
    ]

    completion = finalize(events)

    assert completion.message.tool_calls == [
        ToolCallPart(id="call_1", name="get_weather", arguments_json='{"location": "SF"}')
    ]


def test_repeated_full_name_is_not_duplicated():
    events = [
        ToolCallDelta(id="call_1", name_fragment="search"),
        ToolCallDelta(id="call_1", name_fragment="search", arguments_fragment="{}"),
        Finish(),
    ]

    call = finalize(events).message.tool_calls[0]

    assert call.name == "search"


def test_cumulative_name_fragment_replaces_partial_name():
    events = [
        ToolCallDelta(id="call_1", name_fragment="get_"),
        ToolCallDelta(id="call_1", name_fragment="get_weather"),
        ToolCallDelta(id="call_1", name_fragment="_v2", arguments_fragment="{}"),
        Finish(),
    ]

    call = finalize(events).message.tool_calls[0]

    assert call.name == "get_weather_v2"


def test_invalid_arguments_become_parse_error_not_stream_error():
    events = [
        ToolCallDelta(id="call_1", name_fragment="search", arguments_fragment='{"q": "unterminated'),
        Finish(),
    ]

    call = finalize(events).message.tool_calls[0]

    assert call.parse_error is not None
    assert call.parse_error.startswith("Invalid JSON arguments")
    assert call.arguments_json == '{"q": "unterminated'


def test_empty_arguments_finalize_as_empty_object():
    events = [ToolCallDelta(id="call_1", name_fragment="now"), Finish()]

    call = finalize(events).message.tool_calls[0]

    assert call.arguments_json == "{}"
    assert call.parse_error is None


def test_tool_call_without_name_gets_parse_error():
    events = [ToolCallDelta(id="call_1", arguments_fragment="{}"), Finish()]

    call = finalize(events).message.tool_calls[0]

    assert call.parse_error == "Tool call has no name"


def test_delta_after_complete_is_decode_error():
    acc = StreamAccumulator()
    acc.apply(ToolCallComplete(id="call_1", name="search", arguments_json="{}"))

    with pytest.raises(StreamDecodeError):
        acc.apply(ToolCallDelta(id="call_1", arguments_fragment="x"))


def test_second_complete_is_decode_error():
    acc = StreamAccumulator()
    acc.apply(ToolCallComplete(id="call_1", name="search"))

    with pytest.raises(StreamDecodeError):
        acc.apply(ToolCallComplete(id="call_1", name="search"))


def test_event_after_finish_is_decode_error():
    acc = StreamAccumulator().accumulate([TextDelta(text="hi"), Finish()])

    with pytest.raises(StreamDecodeError):
        acc.apply(TextDelta(text="more"))


def test_error_event_raises_matching_error():
    acc = StreamAccumulator()

    with pytest.raises(RateLimitError) as exc_info:
        acc.apply(ErrorEvent(kind="rate_limit", message="slow down"))

    assert exc_info.value.message == "slow down"
    assert exc_info.value.retryable


def test_unknown_error_kind_is_provider_error():
    with pytest.raises(ProviderError) as exc_info:
        StreamAccumulator().apply(ErrorEvent(kind="overloaded", message="busy"))

    assert not exc_info.value.retryable
    assert "overloaded" in exc_info.value.message


def test_missing_finish_yields_unknown_reason():
    completion = finalize([TextDelta(text="partial")])

    assert completion.finish_reason == FinishReason.UNKNOWN
    assert completion.message.text == "partial"


def test_parts_keep_first_seen_order():
    events = [
        ReasoningDelta(text="thinking"),
        TextDelta(index=0, text="a"),
        ToolCallComplete(id="call_1", name="search", arguments_json="{}"),
        TextDelta(index=1, text="b"),
        SourceEvent(reference="https://example.com"),
        ReasoningDelta(text=" more"),
        TextDelta(index=0, text="c"),
        Finish(),
    ]

    content = finalize(events).message.content

    assert content == [
        ReasoningPart(text="thinking more"),
        TextPart(text="ac"),
        ToolCallPart(id="call_1", name="search", arguments_json="{}"),
        TextPart(text="b"),
        SourcePart(reference="https://example.com"),
    ]


def test_text_slots_take_buffers_in_index_order():
    events = [TextDelta(index=1, text="second"), TextDelta(index=0, text="first"), Finish()]

    content = finalize(events).message.content

    assert content == [TextPart(text="first"), TextPart(text="second")]


def test_provider_metadata_is_merged_and_kept_off_the_message():
    events = [
        ProviderMetadata(payload={"id": "resp_1"}),
        TextDelta(text="hi"),
        ProviderMetadata(payload={"model": "gpt-4o-mini"}),
        Finish(),
    ]

    completion = finalize(events)

    assert completion.provider_metadata == {"id": "resp_1", "model": "gpt-4o-mini"}
    assert completion.message.content == [TextPart(text="hi")]


def test_finish_records_usage():
    completion = finalize([Finish(usage=Usage(prompt_tokens=5, completion_tokens=1))])

    assert completion.usage.total_tokens == 6


def test_finalize_only_once():
    acc = StreamAccumulator().accumulate([Finish()])
    acc.finalize()

    with pytest.raises(RuntimeError):
        acc.finalize()


@pytest.mark.asyncio
async def test_accumulate_stream_reports_each_event():
    seen = []

    async def events():
        yield TextDelta(text="4")
        yield Finish()

    async def on_event(event):
        seen.append(event.type)

    completion = await accumulate_stream(events(), on_event)

    assert completion.message.text == "4"
    assert seen == ["text_delta", "finish"]
