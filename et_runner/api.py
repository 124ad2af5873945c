"""Public API surface for et_runner."""

from et_runner.engine.aggregator import ResultAggregator, TrialRenderer
from et_runner.engine.cascade import CascadeOutcome, CascadeState, TerminationCascade
from et_runner.engine.collaborators import Collaborators, default_collaborators
from et_runner.engine.context import TrialErrors
from et_runner.engine.launcher import ProcessLauncher, check_snap_options
from et_runner.engine.runner import RunOrchestrator
from et_runner.engine.trace_channel import TraceSession
from et_runner.engine.trial import TrialRunner
from et_runner.engine.window_spec import WindowSpec, resolve_window_spec
from et_runner.models.config import RunConfiguration
from et_runner.models.results import (
    ExecveTiming,
    Execution,
    ExeRuntime,
    OutputResult,
    format_duration,
)

__all__ = [
    "CascadeOutcome",
    "CascadeState",
    "Collaborators",
    "ExeRuntime",
    "ExecveTiming",
    "Execution",
    "OutputResult",
    "ProcessLauncher",
    "ResultAggregator",
    "RunConfiguration",
    "RunOrchestrator",
    "TerminationCascade",
    "TraceSession",
    "TrialErrors",
    "TrialRenderer",
    "TrialRunner",
    "WindowSpec",
    "check_snap_options",
    "default_collaborators",
    "format_duration",
    "resolve_window_spec",
]
