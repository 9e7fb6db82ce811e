"""
RunOutput - terminal result of an agent run.
"""

from dataclasses import dataclass

from agentrun.domain import AgentRunState, FinishReason, Message, RunError, RunStatus, Usage


@dataclass
class RunOutput:
    """
    Execution result from AgentExecutor.execute().

    A run never raises for a classified failure: ``status`` is STOPPED or
    FAILED, and ``state`` always carries the history accumulated up to the
    point the run ended.
    """

    run_id: str
    status: RunStatus
    state: AgentRunState
    finish_reason: FinishReason | None = None
    stop_reason: str | None = None  # "no_tool_calls", "max_steps(20)", ...
    error: RunError | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.STOPPED

    @property
    def response(self) -> str | None:
        """Text of the last assistant message, if any."""
        message = self.state.last_assistant_message
        return message.text if message is not None else None

    @property
    def usage(self) -> Usage:
        return self.state.usage

    @property
    def messages(self) -> list[Message]:
        return self.state.messages


__all__ = ["RunOutput"]
