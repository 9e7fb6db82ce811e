"""
Stop conditions for the agent loop.

Conditions are pure predicates over the run state and the round that just
completed. A set of conditions stops the run when any one of them holds.
A round without tool calls stops the run regardless of the configured
conditions; that check lives in the executor.
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterable

from agentrun.domain import AgentRunState, FinishReason, StepResult


class StopCondition(ABC):
    """Base class for stop conditions."""

    @abstractmethod
    def should_stop(self, state: AgentRunState, step: StepResult) -> bool:
        pass

    def describe(self) -> str:
        return type(self).__name__


class MaxSteps(StopCondition):
    """Stop once ``n`` full rounds have completed."""

    def __init__(self, n: int):
        if n < 1:
            raise ValueError("MaxSteps requires n >= 1")
        self.n = n

    def should_stop(self, state: AgentRunState, step: StepResult) -> bool:
        return state.step >= self.n

    def describe(self) -> str:
        return f"max_steps({self.n})"


class MaxTokens(StopCondition):
    """Stop once cumulative usage reaches ``n`` total tokens."""

    def __init__(self, n: int):
        if n < 1:
            raise ValueError("MaxTokens requires n >= 1")
        self.n = n

    def should_stop(self, state: AgentRunState, step: StepResult) -> bool:
        return state.usage.total_tokens >= self.n

    def describe(self) -> str:
        return f"max_tokens({self.n})"


class ToolCalled(StopCondition):
    """Stop after a round in which the model called ``name``."""

    def __init__(self, name: str):
        self.name = name

    def should_stop(self, state: AgentRunState, step: StepResult) -> bool:
        return any(call.name == self.name for call in step.tool_calls)

    def describe(self) -> str:
        return f"tool_called({self.name})"


class FinishReasonIs(StopCondition):
    """Stop when the adapter call ended with one of ``reasons``."""

    def __init__(self, *reasons: FinishReason):
        if not reasons:
            raise ValueError("FinishReasonIs requires at least one reason")
        self.reasons = frozenset(reasons)

    def should_stop(self, state: AgentRunState, step: StepResult) -> bool:
        return step.finish_reason in self.reasons

    def describe(self) -> str:
        names = ",".join(sorted(r.value for r in self.reasons))
        return f"finish_reason_is({names})"


class Custom(StopCondition):
    """
    Wrap a user predicate.

    The predicate receives the run state and the completed round. It must
    not modify either.
    """

    def __init__(
        self,
        predicate: Callable[[AgentRunState, StepResult], bool],
        name: str | None = None,
    ):
        self.predicate = predicate
        self.name = name or getattr(predicate, "__name__", "custom")

    def should_stop(self, state: AgentRunState, step: StepResult) -> bool:
        return bool(self.predicate(state, step))

    def describe(self) -> str:
        return f"custom({self.name})"


def first_satisfied(
    conditions: Iterable[StopCondition],
    state: AgentRunState,
    step: StepResult,
) -> StopCondition | None:
    """Return the first condition that holds, in configured order."""
    for condition in conditions:
        if condition.should_stop(state, step):
            return condition
    return None


def should_stop(
    conditions: Iterable[StopCondition],
    state: AgentRunState,
    step: StepResult,
) -> bool:
    return first_satisfied(conditions, state, step) is not None


__all__ = [
    "StopCondition",
    "MaxSteps",
    "MaxTokens",
    "ToolCalled",
    "FinishReasonIs",
    "Custom",
    "first_satisfied",
    "should_stop",
]
