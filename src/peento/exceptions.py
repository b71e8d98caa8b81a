"""Exception hierarchy for peento.

All exceptions inherit from :class:`PeentoError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`peento.exit_codes`.
The CLI entry point in :func:`peento.app.main` catches ``PeentoError`` and
exits with the appropriate code.

Startup errors (:class:`PluginError` and its subclasses, :class:`ConfigError`)
are fatal. Call errors are per-invocation: they are reported to whoever
invoked the call and never reach unrelated requests.

Subclass hierarchy::

    PeentoError              (exit 1)
    +-- ConfigError          (exit 1)
    +-- PluginError          (exit 10)
    |   +-- PluginNotFoundError
    |   +-- PluginAttachError
    +-- CallError            (exit 11)
        +-- CallNotFoundError
        +-- HookError
        +-- OperationError
"""

from __future__ import annotations

from typing import Any

from peento.exit_codes import EXIT_CALL_ERROR, EXIT_GENERIC_FAILURE, EXIT_PLUGIN_ERROR


class PeentoError(Exception):
    """Base exception for all peento errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(PeentoError):
    """Raised for configuration problems (unreadable file, invalid YAML/JSON, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE


class PluginError(PeentoError):
    """Raised when a plugin cannot be registered, looked up, or initialised."""

    exit_code = EXIT_PLUGIN_ERROR


class PluginNotFoundError(PluginError):
    """Raised when none of the load strategies resolves a plugin spec."""


class PluginAttachError(PluginError):
    """Raised when a plugin's ``setup`` function raises during attach."""

    def __init__(self, name: str, error: BaseException):
        super().__init__(f"Plugin '{name}' failed to attach: {error}")
        self.plugin_name = name
        self.error = error


class CallError(PeentoError):
    """Base class for failures of a single call invocation.

    Attributes:
        call_name: The name the call was invoked with.
        payload: The payload as it was when the failure happened.
    """

    exit_code = EXIT_CALL_ERROR

    def __init__(self, message: str, call_name: str, payload: Any = None):
        super().__init__(message)
        self.call_name = call_name
        self.payload = payload


class CallNotFoundError(CallError):
    """Raised when no handler is registered for the requested call name."""

    def __init__(self, call_name: str, payload: Any = None):
        super().__init__(f"Cannot call '{call_name}': no handler registered", call_name, payload)


class HookError(CallError):
    """Raised when a before/after hook fails.

    The original exception is chained as ``__cause__`` and kept on
    :attr:`error`. :attr:`stage` is ``"before"`` or ``"after"``.
    """

    def __init__(self, call_name: str, stage: str, error: BaseException, payload: Any = None):
        super().__init__(f"{stage}.{call_name} hook failed: {error}", call_name, payload)
        self.stage = stage
        self.error = error


class OperationError(CallError):
    """Raised when the call handler itself fails."""

    def __init__(self, call_name: str, error: BaseException, payload: Any = None):
        super().__init__(f"Call '{call_name}' failed: {error}", call_name, payload)
        self.stage = "call"
        self.error = error
