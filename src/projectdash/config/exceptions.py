"""Configuration errors."""


class ConfigError(Exception):
    """Raised when projectdash configuration cannot be loaded or validated."""
