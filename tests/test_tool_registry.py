import pytest

from agentrun.config.exceptions import InvalidConfigError
from agentrun.tools import FunctionTool, ToolRegistry


def alpha(x: int):
    return x


def beta(y: str):
    return y


def test_register_and_lookup():
    registry = ToolRegistry([FunctionTool(alpha)])
    registry.register(FunctionTool(beta))

    assert registry.list_available() == ["alpha", "beta"]
    assert "alpha" in registry
    assert registry.get("beta").name == "beta"
    assert registry.get("gamma") is None
    assert len(registry) == 2


def test_duplicate_names_are_rejected():
    registry = ToolRegistry([FunctionTool(alpha)])

    with pytest.raises(InvalidConfigError):
        registry.register(FunctionTool(beta, name="alpha"))


def test_unregister():
    registry = ToolRegistry([FunctionTool(alpha)])

    assert registry.unregister("alpha") is True
    assert registry.unregister("alpha") is False
    assert len(registry) == 0


def test_specs_carry_schema_only():
    registry = ToolRegistry([FunctionTool(alpha, description="Echo a number")])

    (spec,) = registry.specs()

    assert spec.name == "alpha"
    assert spec.description == "Echo a number"
    assert spec.input_schema["properties"]["x"]["type"] == "integer"
