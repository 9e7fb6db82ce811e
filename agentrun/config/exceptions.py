"""Configuration system exceptions."""


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class InvalidConfigError(ConfigError):
    """Configuration values are inconsistent."""

    pass
