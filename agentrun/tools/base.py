"""
Tool contract.

A tool is a name-addressable capability: given validated JSON input and a
read-only ToolContext it produces a JSON-serializable value, or raises.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from agentrun.domain import ToolSpec, Usage

if TYPE_CHECKING:
    from agentrun.runtime.control import AbortSignal


@dataclass(frozen=True)
class ToolContext:
    """
    Read-only view handed to a tool invocation.

    Tools never see the run state itself; they return data and the tool
    executor appends it.
    """

    run_id: str
    step: int
    usage: Usage
    tool_call_id: str
    abort_signal: "AbortSignal | None" = None

    def is_aborted(self) -> bool:
        return self.abort_signal is not None and self.abort_signal.is_aborted()


class BaseTool(ABC):
    """
    Base class for tools.

    Subclasses set ``name``, ``description`` and ``input_schema`` (a JSON
    schema object) and implement ``execute``. ``fatal_on_error`` makes a
    failure of this tool fail the whole run instead of being reported back
    to the model.
    """

    name: str
    description: str = ""
    input_schema: dict[str, Any] = {"type": "object", "properties": {}}
    fatal_on_error: bool = False

    @abstractmethod
    async def execute(self, input: dict[str, Any], context: ToolContext) -> Any:
        """Run the tool and return a JSON-serializable value."""
        pass

    def needs_approval(self, input: dict[str, Any]) -> bool:
        """Whether this call must be approved before it runs."""
        return False

    def to_spec(self) -> ToolSpec:
        return ToolSpec(
            name=self.name,
            description=self.description,
            input_schema=self.input_schema,
        )

    def to_openai_schema(self) -> dict:
        return self.to_spec().to_openai_schema()


__all__ = ["BaseTool", "ToolContext"]
