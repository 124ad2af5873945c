"""Process launcher: starts the target either directly or under the tracer."""

from __future__ import annotations

import logging
import os
import subprocess
from contextlib import ExitStack
from pathlib import Path
from typing import IO, Any, Callable, Protocol, Sequence

from et_common.errors import ConfigurationError, LaunchError
from et_common.files import ensure_exists_and_open
from et_runner.models.config import RunConfiguration

logger = logging.getLogger(__name__)


class Tracer(Protocol):
    """Tracer-wrapped process creation."""

    def launch(
        self,
        pipe_path: str | Path,
        command: Sequence[str],
        *,
        stdin: Any = None,
        stdout: IO[Any] | None = None,
        stderr: IO[Any] | None = None,
    ) -> subprocess.Popen:
        ...


def check_snap_options(config: RunConfiguration) -> None:
    """Reject option combinations that cannot work together."""
    if config.discard_snap_ns and not config.use_snap_run:
        raise ConfigurationError(
            "cannot use --discard-snap-ns without --use-snap-run",
            context={"command": config.command},
        )


class ProcessLauncher:
    """Create the child process for one trial with its stdio wired up."""

    def __init__(
        self,
        config: RunConfiguration,
        *,
        tracer: Tracer | None = None,
        discard_namespace: Callable[[str], None] | None = None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ) -> None:
        self.config = config
        self.tracer = tracer
        self._discard_namespace = discard_namespace
        self._popen = popen

    def prepare(self) -> None:
        """Validate snap options and discard the namespace before launch."""
        check_snap_options(self.config)
        if self.config.discard_snap_ns and self._discard_namespace is not None:
            # keyed on the snap name, not on the rewritten `snap run` command
            self._discard_namespace(self.config.command[0])

    def open_streams(self, stack: ExitStack) -> tuple[Any, Any]:
        """Open the command log files on ``stack`` or fall back to our streams."""
        truncate = not self.config.append_cmd_logs
        # None inherits our own stdout/stderr
        stdout: Any = None
        stderr: Any = None
        if self.config.cmd_stdout_log is not None:
            stdout = stack.enter_context(
                ensure_exists_and_open(self.config.cmd_stdout_log, truncate)
            )
        if self.config.cmd_stderr_log is not None:
            stderr = stack.enter_context(
                ensure_exists_and_open(self.config.cmd_stderr_log, truncate)
            )
        return stdout, stderr

    def launch(
        self,
        stdout: Any,
        stderr: Any,
        pipe_path: Path | None = None,
    ) -> subprocess.Popen:
        """Start the target; traced when ``pipe_path`` is given."""
        command = self.config.target_command
        if pipe_path is not None:
            if self.tracer is None:
                raise LaunchError("tracing requested without a tracer")
            return self.tracer.launch(
                pipe_path, command, stdin=None, stdout=stdout, stderr=stderr
            )
        logger.debug("Launching %s", " ".join(command))
        try:
            return self._popen(
                command,
                stdin=None,
                stdout=stdout,
                stderr=stderr,
                start_new_session=True,
            )
        except OSError as exc:
            raise LaunchError(
                f"cannot start {command[0]}",
                context={"command": command},
                cause=exc,
            ) from exc


def signal_process_group(proc: subprocess.Popen, sig: int) -> None:
    """Signal the session led by ``proc`` so wrapper children are reached too.

    Processes launched here lead their own session. Signals a wrapper like
    ``sudo`` cannot forward (SIGKILL) still reach everything it started.
    """
    if proc.poll() is not None:
        return
    try:
        pgid = os.getpgid(proc.pid)
    except ProcessLookupError:
        return
    if pgid != os.getpgrp():
        try:
            os.killpg(pgid, sig)
            return
        except ProcessLookupError:
            return
        except PermissionError:
            logger.debug("Cannot signal process group %s, signalling pid %s", pgid, proc.pid)
    proc.send_signal(sig)
