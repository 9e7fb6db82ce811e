"""
Agentrun - Agent execution engine

Top-level exports for easy access to core functionality.
"""

# Top-level Agent class
from agentrun.agent import Agent

# Domain models
from agentrun.domain import (
    AgentRunState,
    FinishReason,
    Message,
    MessageRole,
    RunError,
    RunStatus,
    StepResult,
    Usage,
)
from agentrun.errors import AgentRunError, ErrorKind

# Providers
from agentrun.llm import Model, OpenAIModel
from agentrun.tools import BaseTool, FunctionTool, ToolRegistry, tool

# Runtime
from agentrun.runtime import (
    AbortSignal,
    AgentExecutor,
    Custom,
    FinishReasonIs,
    MaxSteps,
    MaxTokens,
    RunHook,
    RunOutput,
    ToolCalled,
)

# Config
from agentrun.config import AgentRunSettings, RetryConfig, RunConfig

__version__ = "0.1.0"

__all__ = [
    # Agent
    "Agent",
    "AgentExecutor",
    "RunOutput",
    # Domain
    "AgentRunState",
    "FinishReason",
    "Message",
    "MessageRole",
    "RunError",
    "RunStatus",
    "StepResult",
    "Usage",
    # Errors
    "AgentRunError",
    "ErrorKind",
    # Providers
    "Model",
    "OpenAIModel",
    "BaseTool",
    "FunctionTool",
    "ToolRegistry",
    "tool",
    # Runtime
    "AbortSignal",
    "RunHook",
    "MaxSteps",
    "MaxTokens",
    "ToolCalled",
    "FinishReasonIs",
    "Custom",
    # Config
    "AgentRunSettings",
    "RetryConfig",
    "RunConfig",
]
