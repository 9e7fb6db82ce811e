"""
Runtime module - the agent loop and the components it composes.

- AgentExecutor: round-by-round loop over a model and tools
- StreamAccumulator: reduces one adapter call into a finalized message
- ToolExecutor: concurrent tool rounds, failures as data
- with_retry: backoff around adapter calls
- Stop conditions, hooks and cancellation
"""

from .control import AbortSignal, run_until_aborted
from .accumulator import StreamAccumulator, accumulate_stream
from .retry import backoff_delay, is_retryable, wait_backoff, with_retry
from .stop_conditions import (
    Custom,
    FinishReasonIs,
    MaxSteps,
    MaxTokens,
    StopCondition,
    ToolCalled,
    first_satisfied,
    should_stop,
)
from .hooks import LoggingHook, RunHook
from .protocol import RunOutput
from .tool_executor import ToolExecutor, ToolRound, validate_arguments
from .executor import AgentExecutor

__all__ = [
    "AbortSignal",
    "run_until_aborted",
    "StreamAccumulator",
    "accumulate_stream",
    "with_retry",
    "is_retryable",
    "backoff_delay",
    "wait_backoff",
    "StopCondition",
    "MaxSteps",
    "MaxTokens",
    "ToolCalled",
    "FinishReasonIs",
    "Custom",
    "first_satisfied",
    "should_stop",
    "RunHook",
    "LoggingHook",
    "RunOutput",
    "ToolExecutor",
    "ToolRound",
    "validate_arguments",
    "AgentExecutor",
]
