"""Shared error taxonomy for etrace.

Errors fall into two families. Fatal setup errors abort the whole run and are
raised to the caller. Trial errors are recorded into the trial's error list and
never unwind the trial.
"""

from __future__ import annotations

from typing import Any, Mapping


def _normalize_context_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return normalize_context(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_context_value(item) for item in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def normalize_context(context: Mapping[str, Any]) -> dict[str, Any]:
    """Return a JSON-friendly copy of an error context mapping."""
    return {key: _normalize_context_value(val) for key, val in context.items()}


class ETraceError(Exception):
    """Base error type for typed failure handling."""

    fatal: bool = False

    def __init__(
        self,
        message: str,
        *,
        context: Mapping[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.context = normalize_context(context or {})
        if cause is not None:
            self.__cause__ = cause

    @property
    def error_type(self) -> str:
        return self.__class__.__name__

    def __str__(self) -> str:
        message = super().__str__()
        if self.__cause__ is not None:
            return f"{message}: {self.__cause__}"
        return message

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.error_type,
            "error": str(self),
            "error_context": self.context,
        }


# --- fatal setup errors ---


class ConfigurationError(ETraceError):
    """Invalid combination of run options."""

    fatal = True


class TraceSetupError(ETraceError):
    """The trace directory or pipe could not be created."""

    fatal = True


class CacheFlushError(ETraceError):
    """System caches could not be dropped before the timed region."""

    fatal = True


class NamespaceDiscardError(ETraceError):
    """The snap mount namespace could not be discarded."""

    fatal = True


class LaunchError(ETraceError):
    """The target process (or its tracer) could not be started."""

    fatal = True


# --- trial errors ---


class ScriptError(ETraceError):
    """A prepare or restore script failed."""


class WindowWaitError(ETraceError):
    """The target window never appeared or could not be looked up."""


class WindowPidError(ETraceError):
    """A window handle could not be resolved to its owning pid."""


class WindowCloseError(ETraceError):
    """A window refused a graceful close."""


class SignalError(ETraceError):
    """A window process could not be signalled."""


class FallbackCloseError(ETraceError):
    """The window-manager close-by-name fallback failed."""


class TraceParseError(ETraceError):
    """The syscall trace stream could not be turned into timings."""


class ProcessExitError(ETraceError):
    """The launched process did not exit after teardown."""


def wrap_error(
    error_cls: type[ETraceError],
    message: str,
    cause: BaseException,
    *,
    context: Mapping[str, Any] | None = None,
) -> ETraceError:
    """Type ``cause`` as ``error_cls`` unless it already is an ETraceError."""
    if isinstance(cause, ETraceError):
        return cause
    error = error_cls(message, context=context)
    error.__cause__ = cause
    return error


def error_to_payload(error: BaseException) -> dict[str, Any]:
    """Convert an error to the payload embedded in JSON results."""
    if isinstance(error, ETraceError):
        return error.to_dict()
    return {
        "error_type": error.__class__.__name__,
        "error": str(error),
        "error_context": {},
    }
