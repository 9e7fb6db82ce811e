"""
Tool Registry - name-keyed set of tools for one run.

Built once when a run starts; names must be unique.
"""

from __future__ import annotations

from typing import Iterable, Iterator

from agentrun.config.exceptions import InvalidConfigError
from agentrun.domain import ToolSpec
from agentrun.tools.base import BaseTool
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)


class ToolRegistry:
    """
    Central registry for the tools available to a run.
    """

    def __init__(self, tools: Iterable[BaseTool] | None = None) -> None:
        self._tools: dict[str, BaseTool] = {}
        for t in tools or []:
            self.register(t)

    def register(self, tool: BaseTool) -> None:
        """Register a tool. Duplicate names are rejected."""
        if not getattr(tool, "name", None):
            raise InvalidConfigError(f"Tool {tool!r} has no name")
        if tool.name in self._tools:
            raise InvalidConfigError(f"Duplicate tool name: {tool.name}")
        self._tools[tool.name] = tool
        logger.debug("tool_registered", tool_name=tool.name)

    def unregister(self, name: str) -> bool:
        """Unregister a tool."""
        if name in self._tools:
            del self._tools[name]
            return True
        return False

    def get(self, name: str) -> BaseTool | None:
        return self._tools.get(name)

    def list_available(self) -> list[str]:
        return list(self._tools)

    def specs(self) -> list[ToolSpec]:
        """Definitions handed to the model adapter."""
        return [t.to_spec() for t in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[BaseTool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)


__all__ = ["ToolRegistry"]
