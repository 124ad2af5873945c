"""Run configuration (read-only for the whole invocation)."""

from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from et_common.config.env import parse_float_env

DEFAULT_WINDOW_TIMEOUT = 60.0
DEFAULT_EXIT_TIMEOUT = 30.0


def default_window_timeout() -> float:
    return parse_float_env(os.environ.get("ETRACE_WINDOW_TIMEOUT")) or DEFAULT_WINDOW_TIMEOUT


def default_exit_timeout() -> float:
    return parse_float_env(os.environ.get("ETRACE_EXIT_TIMEOUT")) or DEFAULT_EXIT_TIMEOUT


class RunConfiguration(BaseModel):
    """Options for one `etrace run` invocation, shared by every trial."""

    model_config = ConfigDict(frozen=True)

    command: List[str] = Field(description="Target command tokens")
    prepare_script: Optional[Path] = Field(default=None, description="Script to run to prepare a trial")
    prepare_script_args: List[str] = Field(default_factory=list, description="Args for the prepare script")
    restore_script: Optional[Path] = Field(default=None, description="Script to run to restore after a trial")
    restore_script_args: List[str] = Field(default_factory=list, description="Args for the restore script")
    window_class: Optional[str] = Field(default=None, description="Window class to wait for instead of the command name")
    window_name: Optional[str] = Field(default=None, description="Window name to wait for")
    no_trace: bool = Field(default=False, description="Time the process without tracing it")
    use_snap_run: bool = Field(default=False, description="Run the command through `snap run`")
    discard_snap_ns: bool = Field(default=False, description="Discard the snap namespace before each trial")
    cmd_stdout_log: Optional[Path] = Field(default=None, description="Log file for the command's stdout")
    cmd_stderr_log: Optional[Path] = Field(default=None, description="Log file for the command's stderr")
    append_cmd_logs: bool = Field(default=True, description="Append to command log files instead of recreating them")
    json_output: bool = Field(default=False, description="Render results as JSON")
    output_file: Optional[Path] = Field(default=None, description="Result destination; stdout when unset")
    no_window_wait: bool = Field(default=False, description="Wait for process exit instead of a window")
    additional_iterations: int = Field(default=0, ge=0, description="Trials to run after the first one")
    show_errors: bool = Field(default=False, description="Log trial errors as they happen")
    window_timeout: float = Field(default_factory=default_window_timeout, gt=0, description="Seconds to wait for the window")
    exit_timeout: float = Field(default_factory=default_exit_timeout, gt=0, description="Seconds to wait for a traced process to exit after teardown")

    @field_validator("command")
    @classmethod
    def validate_command_not_empty(cls, value: List[str]) -> List[str]:
        if not value or not value[0].strip():
            raise ValueError("command must contain at least one token")
        return value

    @property
    def trial_count(self) -> int:
        return 1 + self.additional_iterations

    @property
    def target_command(self) -> List[str]:
        """Command tokens actually launched, including the `snap run` prefix."""
        if self.use_snap_run:
            return ["snap", "run", *self.command]
        return list(self.command)
