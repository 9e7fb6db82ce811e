from .base import BaseTool, ToolContext
from .decorator import tool
from .local import FunctionTool
from .registry import ToolRegistry

__all__ = ["BaseTool", "ToolContext", "FunctionTool", "ToolRegistry", "tool"]
