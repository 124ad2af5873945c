"""Result models serialized at the end of a run.

Trial durations are integer nanoseconds; the execve breakdown keeps float
seconds as reported by the tracer timestamps.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

NANOSECONDS = 1_000_000_000


def seconds_to_ns(seconds: float) -> int:
    return int(round(seconds * NANOSECONDS))


def format_duration(ns: int) -> str:
    """Human readable duration, e.g. ``1.234567s`` or ``850ms``."""
    if ns >= NANOSECONDS:
        return f"{ns / NANOSECONDS:.6f}".rstrip("0").rstrip(".") + "s"
    if ns >= 1_000_000:
        return f"{ns / 1_000_000:.3f}".rstrip("0").rstrip(".") + "ms"
    if ns >= 1_000:
        return f"{ns / 1_000:.3f}".rstrip("0").rstrip(".") + "µs"
    return f"{ns}ns"


class ExeRuntime(BaseModel):
    """Time spent by one executable between its execve and its exit or re-exec."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    exe: str = Field(alias="Exe")
    total_sec: float = Field(alias="TotalSec")


class ExecveTiming(BaseModel):
    """Execve breakdown extracted from a syscall trace."""

    model_config = ConfigDict(populate_by_name=True)

    total_time: float = Field(default=0.0, alias="TotalTime")
    exe_runtimes: List[ExeRuntime] = Field(default_factory=list, alias="ExeRuntimes")

    def add_exe_runtime(self, exe: str, seconds: float) -> None:
        self.exe_runtimes.append(ExeRuntime(exe=exe, total_sec=seconds))

    @property
    def total_time_ns(self) -> int:
        return seconds_to_ns(self.total_time)


class Execution(BaseModel):
    """Outcome of a single trial."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    execve_timing: Optional[ExecveTiming] = Field(default=None, alias="ExecveTiming")
    time_to_display: int = Field(alias="TimeToDisplay", description="Nanoseconds from start to window or exit")
    time_to_run: int = Field(alias="TimeToRun", description="Authoritative trial duration in nanoseconds")
    errors: List[Dict[str, Any]] = Field(default_factory=list, alias="Errors")


class OutputResult(BaseModel):
    """Ordered trial results for one invocation."""

    model_config = ConfigDict(populate_by_name=True)

    runs: List[Execution] = Field(default_factory=list, alias="Runs")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
