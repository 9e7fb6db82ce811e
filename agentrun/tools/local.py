import inspect
from typing import Any, Callable, get_type_hints

from pydantic import BaseModel, create_model

from agentrun.tools.base import BaseTool, ToolContext

_CONTEXT_PARAM = "context"


class FunctionTool(BaseTool):
    """Wrap a plain (sync or async) function as a tool.

    The input schema is derived from the function signature. A parameter
    named ``context`` is not part of the schema; it receives the ToolContext.
    """

    def __init__(
        self,
        func: Callable,
        name: str | None = None,
        description: str | None = None,
        fatal_on_error: bool = False,
    ):
        self.func = func
        self.name = name or func.__name__
        self.description = description or inspect.getdoc(func) or ""
        self.fatal_on_error = fatal_on_error
        self._wants_context = _CONTEXT_PARAM in inspect.signature(func).parameters
        self.args_schema = self._create_args_schema(func)
        self.input_schema = self._json_schema()

    def _create_args_schema(self, func: Callable) -> type[BaseModel]:
        """Dynamically create a Pydantic model from function signature."""
        sig = inspect.signature(func)
        type_hints = get_type_hints(func)

        fields = {}
        for param_name, param in sig.parameters.items():
            if param_name in ("self", "cls", _CONTEXT_PARAM):
                continue

            annotation = type_hints.get(param_name, Any)
            default = param.default

            if default == inspect.Parameter.empty:
                fields[param_name] = (annotation, ...)
            else:
                fields[param_name] = (annotation, default)

        return create_model(f"{self.name}Args", **fields)

    def _json_schema(self) -> dict[str, Any]:
        schema = self.args_schema.model_json_schema()
        schema.pop("title", None)
        # $defs stay: nested models reference them
        return schema

    async def execute(self, input: dict[str, Any], context: ToolContext) -> Any:
        # Coerce through the args model so nested models arrive as instances
        validated = self.args_schema.model_validate(input)
        kwargs = {name: getattr(validated, name) for name in type(validated).model_fields}
        if self._wants_context:
            kwargs[_CONTEXT_PARAM] = context
        if inspect.iscoroutinefunction(self.func):
            return await self.func(**kwargs)
        return self.func(**kwargs)


__all__ = ["FunctionTool"]
