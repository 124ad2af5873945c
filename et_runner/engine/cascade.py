"""Termination cascade: escalating teardown of the launched application.

States::

    WAITING_WINDOW -> WINDOW_FOUND | WINDOW_WAIT_FAILED
    WINDOW_FOUND -> PID_RESOLUTION -> CLOSE_ATTEMPTED -> KILL_ATTEMPTED
    KILL_ATTEMPTED -> FALLBACK_MANAGER_CLOSE (if force_fallback) -> DONE
    WINDOW_WAIT_FAILED -> FALLBACK_MANAGER_CLOSE -> DONE

Every failure is recorded into the trial errors; none of them stops the
cascade before DONE.
"""

from __future__ import annotations

import logging
import os
import signal
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Protocol

from et_common.errors import (
    FallbackCloseError,
    SignalError,
    WindowCloseError,
    WindowPidError,
    WindowWaitError,
    wrap_error,
)
from et_runner.engine.context import TrialErrors
from et_runner.engine.window_spec import WindowSpec

logger = logging.getLogger(__name__)


class CascadeState(str, Enum):
    WAITING_WINDOW = "waiting_window"
    WINDOW_FOUND = "window_found"
    WINDOW_WAIT_FAILED = "window_wait_failed"
    PID_RESOLUTION = "pid_resolution"
    CLOSE_ATTEMPTED = "close_attempted"
    KILL_ATTEMPTED = "kill_attempted"
    FALLBACK_MANAGER_CLOSE = "fallback_manager_close"
    DONE = "done"


class WindowTool(Protocol):
    def wait_for_window(self, spec: WindowSpec) -> list[str]:
        ...

    def pid_for_window(self, wid: str) -> int:
        ...

    def close_window(self, wid: str) -> None:
        ...


@dataclass
class CascadeOutcome:
    """What the cascade did for one trial."""

    states: list[CascadeState] = field(default_factory=list)
    window_ids: list[str] = field(default_factory=list)
    pids: list[int] = field(default_factory=list)
    close_attempted: bool = False
    force_fallback: bool = False
    fallback_invoked: bool = False

    @property
    def final_state(self) -> CascadeState | None:
        return self.states[-1] if self.states else None


class TerminationCascade:
    """Finds the application window and shuts the application down."""

    def __init__(
        self,
        windows: WindowTool,
        close_by_name: Callable[[str], None],
        *,
        fallback_name: str,
        kill: Callable[[int, int], None] = os.kill,
    ) -> None:
        self.windows = windows
        self._close_by_name = close_by_name
        self.fallback_name = fallback_name
        self._kill = kill

    def run(
        self,
        spec: WindowSpec,
        errors: TrialErrors,
        *,
        on_window_result: Callable[[], None] | None = None,
    ) -> CascadeOutcome:
        """Drive the state machine to DONE.

        ``on_window_result`` fires as soon as the window wait returns, whether
        it succeeded or not; the trial runner stamps the display time there.
        """
        outcome = CascadeOutcome()
        state = CascadeState.WAITING_WINDOW
        while True:
            outcome.states.append(state)
            if state is CascadeState.DONE:
                return outcome
            if state is CascadeState.WAITING_WINDOW:
                state = self.wait_for_window(spec, errors, outcome)
                if on_window_result is not None:
                    on_window_result()
            elif state is CascadeState.WINDOW_FOUND:
                state = CascadeState.PID_RESOLUTION
            elif state is CascadeState.WINDOW_WAIT_FAILED:
                outcome.force_fallback = True
                state = CascadeState.FALLBACK_MANAGER_CLOSE
            elif state is CascadeState.PID_RESOLUTION:
                state = self.resolve_pids(errors, outcome)
            elif state is CascadeState.CLOSE_ATTEMPTED:
                state = self.close_windows(errors, outcome)
            elif state is CascadeState.KILL_ATTEMPTED:
                state = self.kill_pids(errors, outcome)
            elif state is CascadeState.FALLBACK_MANAGER_CLOSE:
                state = self.fallback_close(errors, outcome)

    def wait_for_window(
        self, spec: WindowSpec, errors: TrialErrors, outcome: CascadeOutcome
    ) -> CascadeState:
        try:
            outcome.window_ids = list(self.windows.wait_for_window(spec))
        except Exception as exc:
            errors.record(
                wrap_error(
                    WindowWaitError,
                    "waiting for window appearance",
                    exc,
                    context={"spec": str(spec)},
                )
            )
            return CascadeState.WINDOW_WAIT_FAILED
        logger.debug("Found windows %s for %s", outcome.window_ids, spec)
        return CascadeState.WINDOW_FOUND

    def resolve_pids(self, errors: TrialErrors, outcome: CascadeOutcome) -> CascadeState:
        # pids are collected before any close so they can still be killed
        for wid in outcome.window_ids:
            try:
                outcome.pids.append(self.windows.pid_for_window(wid))
            except Exception as exc:
                errors.record(
                    wrap_error(WindowPidError, f"getting pid for wid {wid}", exc, context={"wid": wid})
                )
                outcome.force_fallback = True
        return CascadeState.CLOSE_ATTEMPTED

    def close_windows(self, errors: TrialErrors, outcome: CascadeOutcome) -> CascadeState:
        outcome.close_attempted = True
        for wid in outcome.window_ids:
            try:
                self.windows.close_window(wid)
            except Exception as exc:
                errors.record(
                    wrap_error(WindowCloseError, "closing window", exc, context={"wid": wid})
                )
                outcome.force_fallback = True
        return CascadeState.KILL_ATTEMPTED

    def kill_pids(self, errors: TrialErrors, outcome: CascadeOutcome) -> CascadeState:
        for pid in outcome.pids:
            try:
                self._kill(pid, signal.SIGKILL)
            except ProcessLookupError:
                logger.debug("Window process %s already exited", pid)
            except OSError as exc:
                errors.record(
                    SignalError(
                        f"killing window process pid {pid}",
                        context={"pid": pid},
                        cause=exc,
                    )
                )
                outcome.force_fallback = True
        if outcome.force_fallback:
            return CascadeState.FALLBACK_MANAGER_CLOSE
        return CascadeState.DONE

    def fallback_close(self, errors: TrialErrors, outcome: CascadeOutcome) -> CascadeState:
        outcome.fallback_invoked = True
        try:
            self._close_by_name(self.fallback_name)
        except Exception as exc:
            errors.record(
                wrap_error(
                    FallbackCloseError,
                    "closing window with wmctrl",
                    exc,
                    context={"name": self.fallback_name},
                )
            )
        return CascadeState.DONE
