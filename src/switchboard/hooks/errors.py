"""Errors raised by the hook system.

Every failure on the hook path reaches the caller of ``HookInvoker.invoke``
as one of these; there are no partial results.
"""


class HookError(Exception):
    """Base class for hook errors."""

    def __init__(self, message: str, hook: str | None = None):
        super().__init__(message)
        self.message = message
        self.hook = hook


class ConfigError(HookError):
    """Invalid options passed to ``HookRegistry.init``."""


class HookNotFound(HookError):
    """No hook is registered under the requested name."""


class HookExecutionError(HookError):
    """A local hook handler raised."""


class HookTransportError(HookError):
    """A remote hook could not be reached or timed out."""


class HookRemoteError(HookError):
    """A remote hook answered with a non-success status or an unreadable body."""

    def __init__(self, message: str, hook: str | None = None, status_code: int | None = None):
        super().__init__(message, hook)
        self.status_code = status_code


class HookValidationError(HookError):
    """A post-processor rejected the hook result."""
