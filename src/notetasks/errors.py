"""Exception types raised by notetasks."""


class ConfigurationError(ValueError):
    """Keyword or language configuration that cannot be turned into patterns."""


class TaskNotFoundError(LookupError):
    """No task exists at the given reference."""


class StaleTaskError(RuntimeError):
    """The task line on disk no longer matches the scanned task."""
