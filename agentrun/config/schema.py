"""
Per-run configuration values.

Both models are supplied once when a run starts and are not changed while
it executes.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class RetryConfig(BaseModel):
    """
    Backoff settings for adapter calls.

    The delay before retry ``n`` (0-based) is
    ``min(initial_delay * backoff_multiplier ** n, max_delay)``, optionally
    jittered.
    """

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=2, ge=0, description="Retries after the first attempt")
    initial_delay: float = Field(default=0.5, ge=0.0, description="First backoff delay (seconds)")
    max_delay: float = Field(default=32.0, ge=0.0, description="Backoff ceiling (seconds)")
    backoff_multiplier: float = Field(default=2.0, ge=1.0)
    jitter: bool = Field(default=True, description="Randomize delays by +/-25%")
    retry_on_decode_error: bool = Field(
        default=False,
        description="Treat StreamDecodeError as transient",
    )


class RunConfig(BaseModel):
    """
    Runtime execution configuration for one agent run.
    """

    model_config = ConfigDict(frozen=True)

    # Loop configuration
    max_steps: int = Field(
        default=20,
        ge=1,
        description="Step ceiling applied when no stop condition is configured",
    )
    stream: bool = Field(default=True, description="Use the adapter's streaming call")

    # Tool configuration
    max_tool_calls: int | None = Field(
        default=None, ge=0, description="Run-wide ceiling on dispatched tool calls"
    )
    max_parallel_tools: int | None = Field(
        default=None, ge=1, description="Concurrent tool executions per round (None = all)"
    )
    tool_timeout: float | None = Field(
        default=None, gt=0.0, description="Tool execution timeout (seconds)"
    )

    # Generation parameters forwarded to the adapter
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    tool_choice: Literal["auto", "none", "required"] = "auto"

    retry: RetryConfig = Field(default_factory=RetryConfig)


__all__ = ["RetryConfig", "RunConfig"]
