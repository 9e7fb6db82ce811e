"""
Tool decorator
"""

from typing import Callable

from .local import FunctionTool


def tool(
    func: Callable | None = None,
    *,
    name: str | None = None,
    description: str | None = None,
    fatal_on_error: bool = False,
):
    """
    Decorator to convert a function into a FunctionTool.

    Usable bare (``@tool``) or with options (``@tool(name="search")``).

    Args:
        func: The function to decorate

    Returns:
        FunctionTool instance
    """

    def wrap(f: Callable) -> FunctionTool:
        return FunctionTool(
            f, name=name, description=description, fatal_on_error=fatal_on_error
        )

    if func is not None:
        return wrap(func)
    return wrap
