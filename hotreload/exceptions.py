"""Exception hierarchy for hot-reload resolution.

Ordinary misses on resource lookups are not errors: they return ``None`` or an
empty list. Only the conditions below are raised.
"""


class HotReloadError(Exception):
    """Base class for all hot-reload errors."""


class InvalidArgumentError(HotReloadError, ValueError):
    """Raised when a required name or path is missing or empty."""


class ModuleNotResolvedError(HotReloadError, ModuleNotFoundError):
    """Raised when neither the local chain nor the parent can supply a module."""

    def __init__(self, name: str, detail: str | None = None):
        message = f"Module '{name}' not found"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, name=name)


class MaterializationError(HotReloadError):
    """Raised when module source is rejected or the name is already defined."""

    def __init__(self, name: str, reason: str):
        super().__init__(f"Cannot materialize module '{name}': {reason}")
        self.module_name = name
        self.reason = reason


class BackendError(HotReloadError, OSError):
    """Raised by backing stores and locators on I/O failure.

    Delegate chains treat this (like any ``OSError``) as "no answer".
    """


class SettingsError(HotReloadError):
    """Raised when resolver settings are missing or malformed."""
