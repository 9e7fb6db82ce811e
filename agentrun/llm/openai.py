"""
OpenAI Model implementation - Chat Completions adapter
"""

from typing import Any, AsyncIterator

from pydantic import ConfigDict, Field, SecretStr

try:
    import openai
    from openai import AsyncOpenAI
except ImportError:
    raise ImportError("Please install openai package: pip install openai")

from agentrun.config.exceptions import InvalidConfigError
from agentrun.domain import (
    ContentPart,
    Finish,
    FinishReason,
    Message,
    MessageRole,
    ModelResponse,
    ReasoningDelta,
    ReasoningPart,
    StreamEvent,
    TextDelta,
    TextPart,
    ToolCallDelta,
    ToolCallPart,
    Usage,
)
from agentrun.errors import (
    AbortedError,
    AgentRunError,
    InvalidRequestError,
    ProviderError,
    RateLimitError,
    StreamDecodeError,
    TransientNetworkError,
)
from agentrun.llm.base import CallOptions, Model
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)

_FINISH_REASONS = {
    "stop": FinishReason.STOP,
    "length": FinishReason.LENGTH,
    "tool_calls": FinishReason.TOOL_CALLS,
    "function_call": FinishReason.TOOL_CALLS,
    "content_filter": FinishReason.CONTENT_FILTER,
}

# Status codes worth another attempt besides 429 and 5xx
_RETRYABLE_STATUS = {408, 409}


def map_finish_reason(reason: str | None) -> FinishReason:
    if reason is None:
        return FinishReason.UNKNOWN
    return _FINISH_REASONS.get(reason, FinishReason.OTHER)


def _retry_after(response: Any) -> float | None:
    """Read the server's delay hint (seconds) from response headers."""
    headers = getattr(response, "headers", None)
    if not headers:
        return None
    try:
        if headers.get("retry-after-ms"):
            return float(headers["retry-after-ms"]) / 1000.0
        if headers.get("retry-after"):
            return float(headers["retry-after"])
    except ValueError:
        return None
    return None


def classify_openai_error(exc: Exception) -> AgentRunError:
    """Translate an OpenAI SDK exception into the run error taxonomy."""
    if isinstance(exc, openai.RateLimitError):
        return RateLimitError(str(exc), retry_after=_retry_after(exc.response))
    if isinstance(exc, openai.APIConnectionError):
        # Includes APITimeoutError
        return TransientNetworkError(str(exc))
    if isinstance(exc, openai.APIStatusError):
        if exc.status_code >= 500 or exc.status_code in _RETRYABLE_STATUS:
            return TransientNetworkError(str(exc))
        return InvalidRequestError(str(exc))
    return ProviderError(str(exc))


def to_openai_messages(messages: list[Message]) -> list[dict]:
    """Convert messages to the Chat Completions format."""
    result: list[dict] = []
    for message in messages:
        if message.role == MessageRole.TOOL:
            for part in message.tool_results:
                result.append(
                    {
                        "role": "tool",
                        "tool_call_id": part.call_id,
                        "content": part.output_json,
                    }
                )
            continue

        msg: dict[str, Any] = {"role": message.role.value, "content": message.text}
        if message.role == MessageRole.ASSISTANT:
            tool_calls = message.tool_calls
            if tool_calls:
                msg["content"] = message.text or None
                msg["tool_calls"] = [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.name, "arguments": call.arguments_json},
                    }
                    for call in tool_calls
                ]
        result.append(msg)
    return result


def _to_usage(usage: Any) -> Usage:
    cached = 0
    details = getattr(usage, "prompt_tokens_details", None)
    if details is not None and getattr(details, "cached_tokens", None):
        cached = details.cached_tokens
    return Usage(
        prompt_tokens=usage.prompt_tokens or 0,
        completion_tokens=usage.completion_tokens or 0,
        total_tokens=usage.total_tokens or 0,
        cached_tokens=cached,
    )


class OpenAIModel(Model):
    """
    OpenAI Model implementation.

    Supports GPT-4o and all OpenAI API compatible models. Credentials are
    passed in explicitly (see ``from_settings``).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, protected_namespaces=())

    model_name: str | None = Field(
        default=None,
        description="Actual model name for API calls (e.g., gpt-4o-mini)",
    )
    api_key: SecretStr | None = Field(default=None, exclude=True)
    base_url: str | None = Field(default=None)
    client: AsyncOpenAI | None = Field(default=None, exclude=True)

    frequency_penalty: float | None = Field(default=None, ge=-2.0, le=2.0)
    presence_penalty: float | None = Field(default=None, ge=-2.0, le=2.0)

    def model_post_init(self, __context) -> None:
        """Create the AsyncOpenAI client unless one was supplied."""
        if self.client is None:
            if self.api_key is None:
                raise InvalidConfigError(
                    f"OpenAIModel {self.id} needs an api_key or a client"
                )
            self.client = AsyncOpenAI(
                api_key=self.api_key.get_secret_value(),
                base_url=self.base_url,
            )
        super().model_post_init(__context)

    @classmethod
    def from_settings(cls, settings, **overrides) -> "OpenAIModel":
        model_name = overrides.pop("model_name", None) or settings.openai_model
        values = {
            "id": f"openai/{model_name}",
            "name": model_name,
            "model_name": model_name,
            "api_key": settings.openai_api_key,
            "base_url": settings.openai_base_url,
        }
        values.update(overrides)
        return cls(**values)

    def _build_params(self, options: CallOptions, stream: bool) -> dict[str, Any]:
        params: dict[str, Any] = {
            "model": self.model_name or self.name,
            "messages": to_openai_messages(options.messages),
        }
        optional = {
            "temperature": options.temperature if options.temperature is not None else self.temperature,
            "max_tokens": options.max_tokens or self.max_tokens,
            "top_p": options.top_p if options.top_p is not None else self.top_p,
            "stop": options.stop_sequences,
            "seed": options.seed,
            "frequency_penalty": self.frequency_penalty,
            "presence_penalty": self.presence_penalty,
        }
        params.update({k: v for k, v in optional.items() if v is not None})

        if options.tools:
            params["tools"] = [t.to_openai_schema() for t in options.tools]
            params["tool_choice"] = options.tool_choice

        if stream:
            params["stream"] = True
            params["stream_options"] = {"include_usage": True}
        return params

    async def _create(self, params: dict[str, Any], options: CallOptions):
        logger.info(
            "llm_request",
            model=params["model"],
            messages_count=len(options.messages),
            tools_count=len(options.tools) if options.tools else 0,
            stream=params.get("stream", False),
        )
        try:
            return await self.client.chat.completions.create(**params)
        except openai.OpenAIError as e:
            logger.error(
                "llm_request_failed",
                model=params["model"],
                error=str(e),
                error_type=type(e).__name__,
                messages_count=len(options.messages),
                exc_info=True,
            )
            raise classify_openai_error(e) from e

    async def arun(self, options: CallOptions) -> ModelResponse:
        response = await self._create(self._build_params(options, stream=False), options)
        if not response.choices:
            raise ProviderError("OpenAI response has no choices")

        choice = response.choices[0]
        message = choice.message
        content: list[ContentPart] = []

        reasoning = getattr(message, "reasoning_content", None)
        if isinstance(reasoning, str) and reasoning:
            content.append(ReasoningPart(text=reasoning))
        if message.content:
            content.append(TextPart(text=message.content))
        for call in message.tool_calls or []:
            content.append(
                ToolCallPart(
                    id=call.id,
                    name=call.function.name,
                    arguments_json=call.function.arguments or "{}",
                )
            )

        return ModelResponse(
            content=content,
            finish_reason=map_finish_reason(choice.finish_reason),
            usage=_to_usage(response.usage) if response.usage else Usage(),
            provider_metadata={"id": response.id, "model": response.model},
        )

    async def arun_stream(self, options: CallOptions) -> AsyncIterator[StreamEvent]:
        """
        Call OpenAI API and return standardized stream events.

        OpenAI identifies tool-call fragments by position after the first
        chunk, so ids are tracked per index. Usage arrives in a trailing
        chunk; it is reported with the Finish event.
        """
        stream = await self._create(self._build_params(options, stream=True), options)

        tool_ids: dict[int, str] = {}
        finish_reason: str | None = None
        usage = Usage()

        try:
            async for chunk in stream:
                if options.abort_signal is not None and options.abort_signal.is_aborted():
                    raise AbortedError(options.abort_signal.reason or "aborted")

                if chunk.usage:
                    usage = _to_usage(chunk.usage)

                if not chunk.choices:
                    continue

                choice = chunk.choices[0]
                delta = choice.delta

                if delta.content:
                    yield TextDelta(index=0, text=delta.content)

                reasoning = getattr(delta, "reasoning_content", None)
                if isinstance(reasoning, str) and reasoning:
                    yield ReasoningDelta(text=reasoning)

                for tc in delta.tool_calls or []:
                    if tc.id:
                        tool_ids[tc.index] = tc.id
                    call_id = tool_ids.get(tc.index)
                    if call_id is None:
                        raise StreamDecodeError(
                            f"Tool call fragment at index {tc.index} arrived before its id"
                        )
                    fn = tc.function
                    yield ToolCallDelta(
                        id=call_id,
                        name_fragment=fn.name if fn else None,
                        arguments_fragment=fn.arguments if fn else None,
                    )

                if choice.finish_reason:
                    finish_reason = choice.finish_reason
        except openai.OpenAIError as e:
            logger.error("llm_stream_failed", error=str(e), error_type=type(e).__name__)
            raise classify_openai_error(e) from e
        finally:
            await stream.close()

        logger.debug(
            "llm_stream_completed",
            finish_reason=finish_reason,
            usage=usage.model_dump(),
        )
        yield Finish(reason=map_finish_reason(finish_reason), usage=usage)


__all__ = ["OpenAIModel", "classify_openai_error", "map_finish_reason", "to_openai_messages"]
