"""
AgentExecutor - the agent loop.

Each round:
1. Call the model (through the retry policy) with the full history
2. Accumulate the reply into one assistant message and append it
3. Execute the requested tools, if any, and append the tool message
4. Evaluate stop conditions

Rounds are strictly sequential. The executor is the only writer of the
run state; a run always ends with a RunOutput, never with an exception.
"""

from typing import Iterable, Sequence

from agentrun.config import RunConfig
from agentrun.domain import (
    AgentRunState,
    Completion,
    Message,
    RunError,
    RunStatus,
    StepResult,
    StreamEvent,
)
from agentrun.errors import AbortedError, AgentRunError, ToolExecutionError, classify
from agentrun.llm.base import CallOptions, Model, response_to_events
from agentrun.runtime.accumulator import StreamAccumulator, accumulate_stream
from agentrun.runtime.control import AbortSignal, run_until_aborted
from agentrun.runtime.hooks import RunHook
from agentrun.runtime.protocol import RunOutput
from agentrun.runtime.retry import with_retry
from agentrun.runtime.stop_conditions import MaxSteps, StopCondition, first_satisfied
from agentrun.runtime.tool_executor import Approver, ToolExecutor
from agentrun.tools import BaseTool, ToolRegistry
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)

NO_TOOL_CALLS = "no_tool_calls"


class AgentExecutor:
    """
    Drive one model through tool rounds until a stop condition holds.

    Args:
        model: Model adapter
        tools: Tools available to the run, or a prepared registry
        config: Loop, tool and retry settings
        stop_conditions: Any one of them stops the run; defaults to
            ``MaxSteps(config.max_steps)``
        hooks: Lifecycle observers
        approve: Decides on tool calls that need approval
    """

    def __init__(
        self,
        model: Model,
        tools: Iterable[BaseTool] | ToolRegistry | None = None,
        config: RunConfig | None = None,
        stop_conditions: Sequence[StopCondition] | None = None,
        hooks: Sequence[RunHook] | None = None,
        approve: Approver | None = None,
    ):
        self.model = model
        self.config = config or RunConfig()
        self.registry = tools if isinstance(tools, ToolRegistry) else ToolRegistry(tools)
        self.stop_conditions: list[StopCondition] = (
            list(stop_conditions) if stop_conditions else [MaxSteps(self.config.max_steps)]
        )
        self.hooks: list[RunHook] = list(hooks or [])
        self.tool_executor = ToolExecutor(
            self.registry,
            max_concurrency=self.config.max_parallel_tools,
            approve=approve,
            tool_timeout=self.config.tool_timeout,
            hooks=self.hooks,
        )

    async def execute(
        self,
        messages: list[Message],
        abort_signal: AbortSignal | None = None,
    ) -> RunOutput:
        """
        Run the loop over ``messages``.

        The caller's messages are copied; the returned state owns its
        history.
        """
        state = AgentRunState(messages=[m.model_copy(deep=True) for m in messages])
        logger.info(
            "run_started",
            run_id=state.run_id,
            model=self.model.id,
            messages=len(state.messages),
            tools=self.registry.list_available(),
        )
        for hook in self.hooks:
            await hook.on_run_start(state)

        output = await self._run_loop(state, abort_signal)

        logger.info(
            "run_completed",
            run_id=output.run_id,
            status=output.status.value,
            stop_reason=output.stop_reason,
            steps=output.state.step,
            total_tokens=output.usage.total_tokens,
        )
        for hook in self.hooks:
            await hook.on_run_end(output.state, output)
        return output

    async def _run_loop(self, state: AgentRunState, abort_signal: AbortSignal | None) -> RunOutput:
        while True:
            if abort_signal is not None and abort_signal.is_aborted():
                return await self._failed(state, AbortedError(abort_signal.reason or "Operation cancelled"))

            round_start = len(state.messages)
            try:
                output = await self._run_round(state, abort_signal)
            except AbortedError as e:
                # Nothing from the interrupted round is kept
                return await self._failed(state.checkpoint(round_start), e)
            except Exception as e:
                if not isinstance(e, AgentRunError):
                    logger.error("round_failed_unexpectedly", run_id=state.run_id, exc_info=True)
                return await self._failed(state, e)

            if output is not None:
                return output

    async def _run_round(
        self, state: AgentRunState, abort_signal: AbortSignal | None
    ) -> RunOutput | None:
        """Run one round; return the output if the run is over."""
        options = self._call_options(state, abort_signal)
        for hook in self.hooks:
            await hook.on_model_start(state, options.messages)

        completion = await with_retry(
            self.config.retry,
            lambda: run_until_aborted(self._call_model(options, state), abort_signal),
            abort_signal=abort_signal,
        )
        for hook in self.hooks:
            await hook.on_model_end(state, completion)

        message = completion.message
        state.append(message)
        state.add_usage(completion.usage)
        state.finish_reason = completion.finish_reason

        calls = message.tool_calls
        tool_message = None
        fatal_error: RunError | None = None
        if calls:
            logger.debug(
                "run_state_transition",
                run_id=state.run_id,
                status=RunStatus.AWAITING_TOOLS.value,
                tool_calls=len(calls),
            )
            remaining = None
            if self.config.max_tool_calls is not None:
                remaining = self.config.max_tool_calls - state.tool_calls_count
            tool_round = await self.tool_executor.execute_round(
                calls, state, abort_signal=abort_signal, remaining_budget=remaining
            )
            tool_message = tool_round.message
            state.append(tool_message)
            state.tool_calls_count += tool_round.dispatched
            fatal_error = tool_round.fatal_error

        step = StepResult(
            step=state.step + 1,
            message=message,
            tool_message=tool_message,
            finish_reason=completion.finish_reason,
            usage=completion.usage,
        )
        state.record_step(step)
        for hook in self.hooks:
            await hook.on_step_end(state, step)

        if fatal_error is not None:
            return await self._failed(state, ToolExecutionError(fatal_error.message))

        condition = first_satisfied(self.stop_conditions, state, step)
        if condition is not None:
            return self._stopped(state, condition.describe())
        if not calls:
            return self._stopped(state, NO_TOOL_CALLS)
        return None

    def _call_options(self, state: AgentRunState, abort_signal: AbortSignal | None) -> CallOptions:
        return CallOptions(
            messages=list(state.messages),
            tools=self.registry.specs() or None,
            tool_choice=self.config.tool_choice,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            top_p=self.config.top_p,
            abort_signal=abort_signal,
        )

    async def _call_model(self, options: CallOptions, state: AgentRunState) -> Completion:
        """One attempt: a fresh accumulator over one adapter call."""
        if not self.config.stream:
            response = await self.model.arun(options)
            return StreamAccumulator().accumulate(response_to_events(response)).finalize()

        async def on_event(event: StreamEvent) -> None:
            for hook in self.hooks:
                await hook.on_stream_event(state, event)

        return await accumulate_stream(
            self.model.arun_stream(options), on_event if self.hooks else None
        )

    def _stopped(self, state: AgentRunState, reason: str) -> RunOutput:
        state.terminal = True
        return RunOutput(
            run_id=state.run_id,
            status=RunStatus.STOPPED,
            state=state,
            finish_reason=state.finish_reason,
            stop_reason=reason,
        )

    async def _failed(self, state: AgentRunState, exc: Exception) -> RunOutput:
        kind = classify(exc)
        message = exc.message if isinstance(exc, AgentRunError) else (str(exc) or type(exc).__name__)
        state.terminal = True
        logger.error("run_failed", run_id=state.run_id, kind=kind.value, error=message, step=state.step)
        for hook in self.hooks:
            await hook.on_error(state, exc)
        return RunOutput(
            run_id=state.run_id,
            status=RunStatus.FAILED,
            state=state,
            finish_reason=state.finish_reason,
            error=RunError(kind=kind, message=message),
        )


__all__ = ["AgentExecutor", "NO_TOOL_CALLS"]
