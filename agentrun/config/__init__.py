"""Configuration: per-run values and environment settings."""

from .exceptions import ConfigError, InvalidConfigError
from .schema import RetryConfig, RunConfig
from .settings import AgentRunSettings

__all__ = [
    "AgentRunSettings",
    "RetryConfig",
    "RunConfig",
    "ConfigError",
    "InvalidConfigError",
]
