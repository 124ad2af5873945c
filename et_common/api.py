"""Public API surface for et_common."""

from et_common.errors import (
    CacheFlushError,
    ConfigurationError,
    ETraceError,
    FallbackCloseError,
    LaunchError,
    NamespaceDiscardError,
    ProcessExitError,
    ScriptError,
    SignalError,
    TraceParseError,
    TraceSetupError,
    WindowCloseError,
    WindowPidError,
    WindowWaitError,
    error_to_payload,
    wrap_error,
)
from et_common.files import ensure_exists_and_open
from et_common.logging import LogSettings, bind_trial, configure_logging, get_logger

__all__ = [
    "CacheFlushError",
    "ConfigurationError",
    "ETraceError",
    "FallbackCloseError",
    "LaunchError",
    "NamespaceDiscardError",
    "ProcessExitError",
    "ScriptError",
    "SignalError",
    "TraceParseError",
    "TraceSetupError",
    "WindowCloseError",
    "WindowPidError",
    "LogSettings",
    "WindowWaitError",
    "bind_trial",
    "configure_logging",
    "ensure_exists_and_open",
    "error_to_payload",
    "get_logger",
    "wrap_error",
]
