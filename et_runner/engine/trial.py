"""Trial runner: one launch-measure-teardown cycle."""

from __future__ import annotations

import logging
import signal
import subprocess
from contextlib import ExitStack
from pathlib import Path
from types import TracebackType
from typing import Callable, Sequence

from et_common.errors import ProcessExitError, ScriptError, wrap_error
from et_common.logging import bind_trial
from et_runner.engine.cascade import TerminationCascade
from et_runner.engine.collaborators import Collaborators
from et_runner.engine.context import TrialErrors
from et_runner.engine.launcher import ProcessLauncher
from et_runner.engine.trace_channel import TraceSession
from et_runner.engine.window_spec import WindowSpec, resolve_window_spec
from et_runner.models.config import RunConfiguration
from et_runner.models.results import ExecveTiming, Execution

logger = logging.getLogger(__name__)


class TrialRunner:
    """Drives a single trial end-to-end and returns its Execution."""

    def __init__(self, config: RunConfiguration, collaborators: Collaborators) -> None:
        self.config = config
        self.collaborators = collaborators
        self.launcher = ProcessLauncher(
            config,
            tracer=collaborators.tracer,
            discard_namespace=collaborators.discard_namespace,
            popen=collaborators.popen,
        )
        self.window_spec: WindowSpec = resolve_window_spec(
            config.window_class, config.window_name, config.command
        )
        self.cascade = TerminationCascade(
            collaborators.windows,
            collaborators.close_by_name,
            fallback_name=config.window_name or self.window_spec.value,
            kill=collaborators.kill,
        )

    def run(self, trial: int) -> Execution:
        """Run trial number ``trial``; fatal setup errors propagate."""
        with bind_trial(trial, self.config.command):
            return self._run(trial)

    def _run(self, trial: int) -> Execution:
        cfg = self.config
        errors = TrialErrors(show_live=cfg.show_errors)
        logger.info("Starting trial %s/%s", trial + 1, cfg.trial_count)

        self._run_script(cfg.prepare_script, cfg.prepare_script_args, "prepare", errors)

        traced = not cfg.no_trace
        timing: ExecveTiming | None = None
        with ExitStack() as stack:
            session: TraceSession | None = None
            if traced:
                session = stack.enter_context(TraceSession())
                session.start_reader(self.collaborators.tracer.parse)

            stdout, stderr = self.launcher.open_streams(stack)
            self.launcher.prepare()

            # caches are dropped right before the timed region; failure is fatal
            self.collaborators.flush_caches()

            clock = self.collaborators.clock
            start = clock()
            proc = self.launcher.launch(
                stdout, stderr, session.pipe_path if session is not None else None
            )
            stack.push(_ProcessGuard(proc, self.collaborators.signal_group, cfg.exit_timeout))

            if cfg.no_window_wait:
                proc.wait()
                display_time = clock() - start
            else:
                shown: list[int] = []
                self.cascade.run(
                    self.window_spec,
                    errors,
                    on_window_result=lambda: shown.append(clock()),
                )
                display_time = shown[0] - start

            # a traced process that outlives teardown holds the trace pipe open,
            # so only traced runs report it
            self._wait_for_exit(proc, errors if traced else None)
            if session is not None:
                timing, parse_error = session.collect()
                if parse_error is not None:
                    errors.record(parse_error)

        self._run_script(cfg.restore_script, cfg.restore_script_args, "restore", errors)

        if not traced:
            run_time = display_time
        elif timing is not None:
            run_time = timing.total_time_ns
        else:
            run_time = 0

        return Execution(
            execve_timing=timing,
            time_to_display=display_time,
            time_to_run=run_time,
            errors=errors.snapshot(),
        )

    def _run_script(
        self,
        script: Path | None,
        args: Sequence[str],
        kind: str,
        errors: TrialErrors,
    ) -> None:
        if script is None:
            return
        try:
            self.collaborators.run_script(script, args)
        except Exception as exc:
            errors.record(
                wrap_error(ScriptError, f"running {kind} script", exc, context={"script": script})
            )

    def _wait_for_exit(self, proc: subprocess.Popen, errors: TrialErrors | None) -> None:
        """Bounded wait for the launched process, then TERM and KILL its session.

        With ``errors`` an overrun is recorded as a ProcessExitError.
        """
        if proc.poll() is not None:
            return
        timeout = self.config.exit_timeout
        try:
            proc.wait(timeout=timeout)
            return
        except subprocess.TimeoutExpired as exc:
            if errors is not None:
                errors.record(
                    ProcessExitError(
                        "traced process still running after teardown",
                        context={"pid": proc.pid, "timeout": timeout},
                        cause=exc,
                    )
                )
            else:
                logger.debug("Process %s still running after teardown", proc.pid)
        signal_group = self.collaborators.signal_group
        # SIGTERM makes strace detach and exit, releasing its end of the pipe
        signal_group(proc, signal.SIGTERM)
        try:
            proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            signal_group(proc, signal.SIGKILL)
            _wait_quietly(proc, timeout)


def _wait_quietly(proc: subprocess.Popen, timeout: float) -> None:
    try:
        proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.warning("Process %s did not exit after SIGKILL", proc.pid)


class _ProcessGuard:
    """Kills the launched session when the trial unwinds on an exception."""

    def __init__(
        self,
        proc: subprocess.Popen,
        signal_group: Callable[[subprocess.Popen, int], None],
        timeout: float,
    ) -> None:
        self.proc = proc
        self.signal_group = signal_group
        self.timeout = timeout

    def __call__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        if exc_type is not None and self.proc.poll() is None:
            logger.warning("Killing pid %s after trial failure", self.proc.pid)
            self.signal_group(self.proc, signal.SIGKILL)
            _wait_quietly(self.proc, self.timeout)
        return False
