"""
Global settings from environment variables.

Only entry-point code reads these; the agent loop and the adapters receive
explicit values built from them.
"""

from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .schema import RetryConfig, RunConfig


class AgentRunSettings(BaseSettings):
    """
    Configuration loaded from environment variables.

    Environment variables should be prefixed with AGENTRUN_
    Example: AGENTRUN_LOG_LEVEL=DEBUG, AGENTRUN_MAX_RETRIES=5
    """

    model_config = SettingsConfigDict(
        env_prefix="AGENTRUN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    # Core settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_json: bool = False

    # Loop defaults
    max_steps: int = Field(default=20, ge=1)
    stream: bool = True
    max_tool_calls: int | None = None
    max_parallel_tools: int | None = None
    tool_timeout: float | None = None

    # Retry defaults
    max_retries: int = Field(default=2, ge=0)
    initial_delay: float = 0.5
    max_delay: float = 32.0
    backoff_multiplier: float = 2.0
    jitter: bool = True
    retry_on_decode_error: bool = False

    # OpenAI
    openai_api_key: SecretStr | None = None
    openai_base_url: str | None = None
    openai_model: str = "gpt-4o-mini"

    def build_retry_config(self) -> RetryConfig:
        return RetryConfig(
            max_retries=self.max_retries,
            initial_delay=self.initial_delay,
            max_delay=self.max_delay,
            backoff_multiplier=self.backoff_multiplier,
            jitter=self.jitter,
            retry_on_decode_error=self.retry_on_decode_error,
        )

    def build_run_config(self, **overrides) -> RunConfig:
        values = {
            "max_steps": self.max_steps,
            "stream": self.stream,
            "max_tool_calls": self.max_tool_calls,
            "max_parallel_tools": self.max_parallel_tools,
            "tool_timeout": self.tool_timeout,
            "retry": self.build_retry_config(),
        }
        values.update(overrides)
        return RunConfig(**values)


__all__ = ["AgentRunSettings"]
