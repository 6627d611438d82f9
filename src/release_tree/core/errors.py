"""Exception types shared by the engine and adapters."""


class ConfigError(ValueError):
    """Invalid configuration value (matcher, setting or category)."""


class ReleaseSourceError(RuntimeError):
    """Releases could not be loaded from a source."""
