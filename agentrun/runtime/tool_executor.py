"""
Tool execution coordinator.

Executes the tool calls of one assistant turn and turns every outcome,
success or failure, into a ToolResultPart. Failures never leave this
module as exceptions; only cancellation and hook failures do.
"""

import asyncio
import inspect
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Sequence, TypeVar

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError
from referencing.exceptions import Unresolvable

from agentrun.domain import (
    AgentRunState,
    Message,
    MessageRole,
    RunError,
    ToolCallPart,
    ToolResultPart,
)
from agentrun.errors import AgentRunError, ErrorKind
from agentrun.runtime.control import AbortSignal, run_until_aborted
from agentrun.runtime.hooks import RunHook
from agentrun.tools import BaseTool, ToolContext, ToolRegistry
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)

Approver = Callable[[ToolCallPart, dict[str, Any]], "Awaitable[bool] | bool"]

_T = TypeVar("_T")

# Kinds a tool may report about itself by raising
_TOOL_ERROR_KINDS = frozenset(
    {
        ErrorKind.TOOL_EXECUTION,
        ErrorKind.TOOL_INPUT_INVALID,
        ErrorKind.TOOL_EXECUTION_DENIED,
    }
)


def error_payload(kind: ErrorKind, message: str) -> str:
    return json.dumps({"error": kind.value, "message": message}, separators=(",", ":"))


def _json_default(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize_output(output: Any) -> str:
    return json.dumps(output, separators=(",", ":"), default=_json_default)


async def _join_all(coros: list[Awaitable[_T]]) -> list[_T]:
    """
    Gather ``coros`` as tasks; on any failure or cancellation the remaining
    tasks are cancelled and awaited before the error propagates.
    """
    tasks = [asyncio.ensure_future(c) for c in coros]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


@dataclass
class _CallOutcome:
    result: ToolResultPart
    # Set when a fatal-on-error tool failed
    fatal_message: str | None = None


@dataclass
class ToolRound:
    """
    Outcome of one tool round.

    ``message`` holds one result per call, in call order. ``dispatched`` is
    the number of calls counted against the run's tool-call ceiling.
    ``fatal_error`` is set when a tool marked fatal-on-error failed.
    """

    message: Message
    dispatched: int
    fatal_error: RunError | None = None

    @property
    def results(self) -> list[ToolResultPart]:
        return self.message.tool_results


class ToolExecutor:
    """
    Execute tool calls concurrently, bounded by ``max_concurrency``.

    Args:
        registry: Tools available to the run
        max_concurrency: Concurrent executions per round (None = unbounded)
        approve: Callback deciding on calls whose tool needs approval;
            without one such calls are denied
        tool_timeout: Per-call execution timeout in seconds
        hooks: Notified before and after each executed call
    """

    def __init__(
        self,
        registry: ToolRegistry,
        max_concurrency: int | None = None,
        approve: Approver | None = None,
        tool_timeout: float | None = None,
        hooks: Sequence[RunHook] = (),
    ):
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.registry = registry
        self.max_concurrency = max_concurrency
        self.approve = approve
        self.tool_timeout = tool_timeout
        self.hooks = list(hooks)

    async def execute_round(
        self,
        calls: list[ToolCallPart],
        state: AgentRunState,
        abort_signal: AbortSignal | None = None,
        remaining_budget: int | None = None,
    ) -> ToolRound:
        """
        Execute all calls of one assistant turn.

        Calls beyond ``remaining_budget`` are not dispatched; they get a
        max-tool-calls-exceeded error result.

        Raises:
            AbortedError: the abort signal fired before every call finished
        """
        admitted = len(calls)
        if remaining_budget is not None:
            admitted = max(0, min(admitted, remaining_budget))

        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        coros = []
        for i, call in enumerate(calls):
            if i < admitted:
                coros.append(self._execute_call(call, state, abort_signal, semaphore))
            else:
                coros.append(self._exceeded(call))

        logger.debug(
            "tool_round_started",
            run_id=state.run_id,
            step=state.step,
            calls=len(calls),
            admitted=admitted,
        )
        outcomes: list[_CallOutcome] = await run_until_aborted(_join_all(coros), abort_signal)

        fatal_error = None
        for outcome in outcomes:
            if outcome.fatal_message is not None:
                fatal_error = RunError(kind=ErrorKind.TOOL_EXECUTION, message=outcome.fatal_message)
                break

        return ToolRound(
            message=Message(
                role=MessageRole.TOOL,
                content=[outcome.result for outcome in outcomes],
            ),
            dispatched=admitted,
            fatal_error=fatal_error,
        )

    async def _exceeded(self, call: ToolCallPart) -> _CallOutcome:
        logger.warning("tool_call_rejected_by_ceiling", tool_name=call.name, tool_call_id=call.id)
        return _CallOutcome(
            self._error_result(
                call, ErrorKind.MAX_TOOL_CALLS_EXCEEDED, "Maximum number of tool calls exceeded"
            )
        )

    async def _execute_call(
        self,
        call: ToolCallPart,
        state: AgentRunState,
        abort_signal: AbortSignal | None,
        semaphore: asyncio.Semaphore | None,
    ) -> _CallOutcome:
        if call.parse_error:
            return _CallOutcome(self._error_result(call, ErrorKind.TOOL_INPUT_INVALID, call.parse_error))

        tool = self.registry.get(call.name)
        if tool is None:
            return _CallOutcome(
                self._error_result(call, ErrorKind.TOOL_NOT_FOUND, f"Tool {call.name} not found")
            )

        try:
            args = json.loads(call.arguments_json)
        except json.JSONDecodeError as e:
            return _CallOutcome(
                self._error_result(call, ErrorKind.TOOL_INPUT_INVALID, f"Invalid JSON arguments: {e}")
            )
        if not isinstance(args, dict):
            return _CallOutcome(
                self._error_result(
                    call, ErrorKind.TOOL_INPUT_INVALID, "Tool arguments must be a JSON object"
                )
            )

        problem = validate_arguments(tool.input_schema, args)
        if problem is not None:
            return _CallOutcome(self._error_result(call, ErrorKind.TOOL_INPUT_INVALID, problem))

        try:
            approved = not tool.needs_approval(args) or await self._approved(call, args)
        except Exception as e:
            logger.error("tool_approval_failed", tool_name=call.name, error=str(e), exc_info=True)
            return _CallOutcome(
                self._error_result(
                    call, ErrorKind.TOOL_EXECUTION_DENIED, f"Approval of {call.name} failed: {e}"
                )
            )
        if not approved:
            logger.info("tool_execution_denied", tool_name=call.name, tool_call_id=call.id)
            return _CallOutcome(
                self._error_result(
                    call, ErrorKind.TOOL_EXECUTION_DENIED, f"Execution of {call.name} was not approved"
                )
            )

        context = ToolContext(
            run_id=state.run_id,
            step=state.step,
            usage=state.usage,
            tool_call_id=call.id,
            abort_signal=abort_signal,
        )

        if semaphore is None:
            return await self._invoke(tool, call, args, context, state)
        async with semaphore:
            return await self._invoke(tool, call, args, context, state)

    async def _invoke(
        self,
        tool: BaseTool,
        call: ToolCallPart,
        args: dict[str, Any],
        context: ToolContext,
        state: AgentRunState,
    ) -> _CallOutcome:
        for hook in self.hooks:
            await hook.on_tool_start(state, call)

        logger.debug("executing_tool", tool_name=call.name, tool_call_id=call.id)
        try:
            if self.tool_timeout is not None:
                output = await asyncio.wait_for(tool.execute(args, context), self.tool_timeout)
            else:
                output = await tool.execute(args, context)
            outcome = _CallOutcome(
                ToolResultPart(call_id=call.id, tool_name=call.name, output_json=serialize_output(output))
            )
        except asyncio.CancelledError:
            logger.info("tool_execution_cancelled", tool_name=call.name, tool_call_id=call.id)
            raise
        except asyncio.TimeoutError:
            logger.warning("tool_execution_timeout", tool_name=call.name, timeout=self.tool_timeout)
            outcome = self._failure(
                tool, call, ErrorKind.TOOL_EXECUTION, f"Tool {call.name} timed out after {self.tool_timeout}s"
            )
        except Exception as e:
            # Includes outputs json.dumps cannot serialize
            logger.error("tool_execution_failed", tool_name=call.name, error=str(e), exc_info=True)
            kind = ErrorKind.TOOL_EXECUTION
            if isinstance(e, AgentRunError) and e.kind in _TOOL_ERROR_KINDS:
                kind = e.kind
            message = e.message if isinstance(e, AgentRunError) else str(e)
            outcome = self._failure(tool, call, kind, f"Tool execution failed: {message}")
        else:
            logger.debug("tool_execution_completed", tool_name=call.name, tool_call_id=call.id)

        for hook in self.hooks:
            await hook.on_tool_end(state, outcome.result)
        return outcome

    async def _approved(self, call: ToolCallPart, args: dict[str, Any]) -> bool:
        if self.approve is None:
            return False
        decision = self.approve(call, args)
        if inspect.isawaitable(decision):
            decision = await decision
        return bool(decision)

    def _failure(self, tool: BaseTool, call: ToolCallPart, kind: ErrorKind, message: str) -> _CallOutcome:
        fatal_message = f"Tool {call.name} failed: {message}" if tool.fatal_on_error else None
        return _CallOutcome(self._error_result(call, kind, message), fatal_message)

    @staticmethod
    def _error_result(call: ToolCallPart, kind: ErrorKind, message: str) -> ToolResultPart:
        return ToolResultPart(
            call_id=call.id,
            tool_name=call.name or None,
            output_json=error_payload(kind, message),
            is_error=True,
        )


def validate_arguments(schema: dict[str, Any], arguments: dict[str, Any]) -> str | None:
    """
    Validate arguments against a JSON schema.

    Returns a description of the first few violations, or None when the
    arguments are valid.
    """
    if not schema:
        return None

    try:
        Draft7Validator.check_schema(schema)
        errors = list(Draft7Validator(schema).iter_errors(arguments))
    except SchemaError as e:
        return f"Invalid argument schema: {e.message}"
    except Unresolvable as e:
        return f"Invalid argument schema: unresolvable reference: {e}"

    if not errors:
        return None

    error_messages = []
    for error in errors[:5]:
        path = ".".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
        error_messages.append(f"{path}: {error.message}")
    return f"Argument validation failed: {'; '.join(error_messages)}"


__all__ = ["ToolExecutor", "ToolRound", "validate_arguments", "error_payload", "serialize_output"]
