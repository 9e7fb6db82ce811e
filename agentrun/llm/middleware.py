"""
Model wrappers.

Each wrapper is itself a Model, so wrappers compose and the agent loop
never knows it is talking to one.
"""

from typing import Any, AsyncIterator

from pydantic import field_validator

from agentrun.domain import ModelResponse, StreamEvent
from agentrun.llm.base import CallOptions, Model

_DEFAULTABLE = frozenset({"temperature", "max_tokens", "top_p", "stop_sequences", "seed"})


class _WrappedModel(Model):
    inner: Model

    def __init__(self, inner: Model, **data: Any):
        data.setdefault("id", inner.id)
        data.setdefault("name", inner.name)
        super().__init__(inner=inner, **data)


class SimulateStreamingModel(_WrappedModel):
    """
    Serve streaming calls from the atomic call.

    Useful for adapters whose native stream is unreliable: the loop still
    receives a normal event sequence.
    """

    async def arun(self, options: CallOptions) -> ModelResponse:
        return await self.inner.arun(options)


class DefaultSettingsModel(_WrappedModel):
    """Fill generation parameters the caller left unset."""

    defaults: dict[str, Any]

    @field_validator("defaults")
    @classmethod
    def _known_keys(cls, value: dict[str, Any]) -> dict[str, Any]:
        unknown = set(value) - _DEFAULTABLE
        if unknown:
            raise ValueError(f"Unsupported default settings: {sorted(unknown)}")
        return value

    def apply_defaults(self, options: CallOptions) -> CallOptions:
        updates = {
            key: value
            for key, value in self.defaults.items()
            if getattr(options, key) is None
        }
        return options.model_copy(update=updates) if updates else options

    async def arun(self, options: CallOptions) -> ModelResponse:
        return await self.inner.arun(self.apply_defaults(options))

    async def arun_stream(self, options: CallOptions) -> AsyncIterator[StreamEvent]:
        async for event in self.inner.arun_stream(self.apply_defaults(options)):
            yield event


__all__ = ["SimulateStreamingModel", "DefaultSettingsModel"]
