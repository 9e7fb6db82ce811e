"""
Run lifecycle hooks.

Hooks observe a run; they are awaited in registration order at each
lifecycle point and receive the run state read-only.
"""

from abc import ABC
from typing import TYPE_CHECKING

from agentrun.domain import (
    AgentRunState,
    Completion,
    Message,
    StepResult,
    StreamEvent,
    ToolCallPart,
    ToolResultPart,
)
from agentrun.utils.logging import get_logger

if TYPE_CHECKING:
    from agentrun.runtime.protocol import RunOutput


class RunHook(ABC):
    """
    Base class for run hooks.

    All methods are no-ops; override the ones you need.
    """

    async def on_run_start(self, state: AgentRunState) -> None:
        pass

    async def on_model_start(self, state: AgentRunState, messages: list[Message]) -> None:
        pass

    async def on_stream_event(self, state: AgentRunState, event: StreamEvent) -> None:
        pass

    async def on_model_end(self, state: AgentRunState, completion: Completion) -> None:
        pass

    async def on_tool_start(self, state: AgentRunState, call: ToolCallPart) -> None:
        pass

    async def on_tool_end(self, state: AgentRunState, result: ToolResultPart) -> None:
        pass

    async def on_step_end(self, state: AgentRunState, step: StepResult) -> None:
        pass

    async def on_run_end(self, state: AgentRunState, output: "RunOutput") -> None:
        pass

    async def on_error(self, state: AgentRunState, error: Exception) -> None:
        pass


class LoggingHook(RunHook):
    """Log run lifecycle events as structured events."""

    def __init__(self, logger_name: str = "agentrun.hooks"):
        self.logger = get_logger(logger_name)

    async def on_run_start(self, state: AgentRunState) -> None:
        self.logger.info("run_started", run_id=state.run_id, messages=len(state.messages))

    async def on_model_end(self, state: AgentRunState, completion: Completion) -> None:
        self.logger.debug(
            "model_call_completed",
            run_id=state.run_id,
            step=state.step,
            finish_reason=completion.finish_reason.value,
            tool_calls=len(completion.message.tool_calls),
            total_tokens=completion.usage.total_tokens,
        )

    async def on_tool_start(self, state: AgentRunState, call: ToolCallPart) -> None:
        self.logger.debug("tool_started", run_id=state.run_id, tool_name=call.name, tool_call_id=call.id)

    async def on_tool_end(self, state: AgentRunState, result: ToolResultPart) -> None:
        self.logger.debug(
            "tool_finished",
            run_id=state.run_id,
            tool_name=result.tool_name,
            tool_call_id=result.call_id,
            is_error=result.is_error,
        )

    async def on_step_end(self, state: AgentRunState, step: StepResult) -> None:
        self.logger.info("step_completed", run_id=state.run_id, step=step.step)

    async def on_run_end(self, state: AgentRunState, output: "RunOutput") -> None:
        self.logger.info(
            "run_finished",
            run_id=state.run_id,
            status=output.status.value,
            stop_reason=output.stop_reason,
            steps=state.step,
            total_tokens=state.usage.total_tokens,
        )

    async def on_error(self, state: AgentRunState, error: Exception) -> None:
        self.logger.error("run_error", run_id=state.run_id, error=str(error), error_type=type(error).__name__)


__all__ = ["RunHook", "LoggingHook"]
