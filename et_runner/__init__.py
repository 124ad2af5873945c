"""Runner facade for etrace components.

Re-exports the orchestrator entry points used by the CLI.
"""

from et_runner.api import (
    Execution,
    ExecveTiming,
    OutputResult,
    RunConfiguration,
    RunOrchestrator,
)

__all__ = [
    "Execution",
    "ExecveTiming",
    "OutputResult",
    "RunConfiguration",
    "RunOrchestrator",
]
