"""strace integration: launching a traced command and parsing execve timings."""

from __future__ import annotations

import getpass
import logging
import os
import re
import shutil
import subprocess
from pathlib import Path
from typing import IO, Any, Iterable, Sequence

from et_common.errors import LaunchError, TraceParseError
from et_runner.models.results import ExecveTiming

logger = logging.getLogger(__name__)

STRACE_STATIC = Path("/snap/strace-static/current/bin/strace")

# 17363 1542815326.700248 execve("/snap/brave/44/usr/bin/update-mime-database", [...], 0x1566008 /* 69 vars */) = 0
EXECVE_RE = re.compile(r'([0-9]+)\ +([0-9.]+) execve\("([^"]+)"')
# 17363 1542815326.700248 execveat(3, "", ["snap-update-ns", "--from-snap-confine", "test-snapd-tools"], 0x7ffce7dd6160 /* 0 vars */, AT_EMPTY_PATH) = 0
EXECVEAT_RE = re.compile(r'([0-9]+)\ +([0-9.]+) execveat\(.*\["([^"]+)"')
# 17559 1542815330.242750 --- SIGCHLD {si_signo=SIGCHLD, si_code=CLD_EXITED, si_pid=17643, ...} ---
SIGCHLD_RE = re.compile(r"[0-9]+\ +([0-9.]+).*SIGCHLD {.*si_pid=([0-9]+),")
# first two columns of any line
PREFIX_RE = re.compile(r"^\s*([0-9]+)\s+([0-9]+(?:\.[0-9]+)?)")

TRACED_SYSCALLS = "trace=execve,execveat"


def find_strace() -> str:
    """Locate the strace binary, preferring an explicit override then strace-static."""
    override = os.environ.get("ETRACE_STRACE")
    if override:
        return override
    if STRACE_STATIC.exists():
        return str(STRACE_STATIC)
    path = shutil.which("strace")
    if path is None:
        raise LaunchError("cannot find an installed strace")
    return path


def _current_user() -> str:
    return os.environ.get("SUDO_USER") or getpass.getuser()


def build_trace_command(pipe_path: str | Path, command: Sequence[str]) -> list[str]:
    """Return the argv running ``command`` under strace as the invoking user."""
    return [
        "sudo",
        "-E",
        find_strace(),
        "-u",
        _current_user(),
        "-f",
        "-ttt",
        "-e",
        TRACED_SYSCALLS,
        "-o",
        str(pipe_path),
        "--",
        *command,
    ]


class StraceTracer:
    """Launches commands wrapped in strace, writing the trace to a pipe."""

    def launch(
        self,
        pipe_path: str | Path,
        command: Sequence[str],
        *,
        stdin: Any = None,
        stdout: IO[Any] | None = None,
        stderr: IO[Any] | None = None,
    ) -> subprocess.Popen:
        argv = build_trace_command(pipe_path, command)
        logger.debug("Launching traced command: %s", " ".join(argv))
        try:
            # own session, so teardown can signal strace and the tracee together
            return subprocess.Popen(
                argv,
                stdin=stdin,
                stdout=stdout,
                stderr=stderr,
                start_new_session=True,
            )
        except OSError as exc:
            raise LaunchError(
                "cannot start traced command",
                context={"command": list(command)},
                cause=exc,
            ) from exc

    def parse(self, stream: IO[str]) -> ExecveTiming:
        return parse_execve_lines(stream)


class _PidTracker:
    """Maps a pid to the executable it exec'd and when."""

    def __init__(self) -> None:
        self._pids: dict[str, tuple[float, str]] = {}

    def get(self, pid: str) -> tuple[float, str] | None:
        return self._pids.get(pid)

    def add(self, pid: str, start: float, exe: str) -> None:
        self._pids[pid] = (start, exe)

    def remove(self, pid: str) -> None:
        self._pids.pop(pid, None)


def _handle_exec(timing: ExecveTiming, tracker: _PidTracker, match: re.Match) -> None:
    pid, raw_start, exe = match.group(1), match.group(2), match.group(3)
    exec_start = float(raw_start)
    previous = tracker.get(pid)
    # a subsequent execve() ends the runtime of the previous executable
    if previous is not None:
        start, prev_exe = previous
        timing.add_exe_runtime(prev_exe, exec_start - start)
    tracker.add(pid, exec_start, exe)


def _handle_sigchld(timing: ExecveTiming, tracker: _PidTracker, match: re.Match) -> None:
    sig_time = float(match.group(1))
    pid = match.group(2)
    previous = tracker.get(pid)
    if previous is not None:
        start, exe = previous
        timing.add_exe_runtime(exe, sig_time - start)
        tracker.remove(pid)


def parse_execve_lines(lines: Iterable[str]) -> ExecveTiming:
    """Build an ExecveTiming from ``strace -f -ttt`` output lines.

    The total time spans the first and last timestamped lines.
    """
    timing = ExecveTiming()
    tracker = _PidTracker()
    start: float | None = None
    last_line = ""

    for raw in lines:
        line = raw.rstrip("\n")
        if not line.strip():
            continue
        last_line = line
        if start is None:
            prefix = PREFIX_RE.match(line)
            if prefix is None:
                raise TraceParseError(
                    "cannot parse start of exec profile", context={"line": line}
                )
            start = float(prefix.group(2))

        match = EXECVE_RE.search(line)
        if match:
            _handle_exec(timing, tracker, match)
            continue
        match = EXECVEAT_RE.search(line)
        if match:
            _handle_exec(timing, tracker, match)
            continue
        match = SIGCHLD_RE.search(line)
        if match:
            _handle_sigchld(timing, tracker, match)

    if start is None:
        raise TraceParseError("cannot parse end of exec profile: empty trace")
    prefix = PREFIX_RE.match(last_line)
    if prefix is None:
        raise TraceParseError(
            "cannot parse end of exec profile", context={"line": last_line}
        )
    timing.total_time = float(prefix.group(2)) - start
    return timing

