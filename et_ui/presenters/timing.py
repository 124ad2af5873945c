"""Presenter for per-trial timing output."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from et_runner.api import ExecveTiming, Execution, format_duration


def build_timing_table(timing: ExecveTiming) -> Table | None:
    """Tabulate the exec calls of a trace, or None when there are none."""
    if not timing.exe_runtimes:
        return None
    table = Table(
        title=f"{len(timing.exe_runtimes)} exec calls during run",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Time (s)", justify="right", style="cyan")
    table.add_column("Exec")
    for runtime in timing.exe_runtimes:
        table.add_row(f"{runtime.total_sec:2.3f}", runtime.exe)
    return table


class RichTrialRenderer:
    """Prints the syscall breakdown and startup time of each trial."""

    def __init__(self, console: Console) -> None:
        self.console = console

    def render_trial(self, index: int, execution: Execution) -> None:
        timing = execution.execve_timing
        if timing is not None:
            table = build_timing_table(timing)
            if table is not None:
                self.console.print(table)
            self.console.print(f"Total time: {timing.total_time:2.3f}s")
        self.console.print(
            f"Total startup time: {format_duration(execution.time_to_display)}"
        )
