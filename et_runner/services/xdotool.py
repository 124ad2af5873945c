"""xdotool wrapper used to find, inspect and close windows."""

from __future__ import annotations

import logging
import subprocess
from typing import Callable

from et_common.errors import WindowCloseError, WindowPidError, WindowWaitError
from et_runner.engine.window_spec import WindowSpec

logger = logging.getLogger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]


class XDoTool:
    """Thin adapter over the `xdotool` command line."""

    def __init__(
        self,
        binary: str = "xdotool",
        *,
        timeout: float | None = None,
        runner: Runner = subprocess.run,
    ) -> None:
        self.binary = binary
        self.timeout = timeout
        self._run = runner

    def _invoke(self, *args: str, timeout: float | None = None) -> subprocess.CompletedProcess:
        return self._run(
            [self.binary, *args],
            capture_output=True,
            text=True,
            check=True,
            timeout=timeout,
        )

    def wait_for_window(self, spec: WindowSpec) -> list[str]:
        """Block until a visible window matches ``spec`` and return its ids."""
        flag, value = spec.search_args()
        logger.debug("Waiting for window %s %s", flag, value)
        try:
            proc = self._invoke(
                "search", "--sync", "--onlyvisible", flag, value, timeout=self.timeout
            )
        except subprocess.TimeoutExpired as exc:
            raise WindowWaitError(
                "timed out waiting for window",
                context={"spec": str(spec), "timeout": self.timeout},
                cause=exc,
            ) from exc
        except (subprocess.CalledProcessError, OSError) as exc:
            raise WindowWaitError(
                "window search failed", context={"spec": str(spec)}, cause=exc
            ) from exc
        wids = [line.strip() for line in proc.stdout.splitlines() if line.strip()]
        if not wids:
            raise WindowWaitError("no window matched", context={"spec": str(spec)})
        return wids

    def pid_for_window(self, wid: str) -> int:
        try:
            proc = self._invoke("getwindowpid", wid)
            return int(proc.stdout.strip())
        except (subprocess.CalledProcessError, OSError, ValueError) as exc:
            raise WindowPidError(
                f"getting pid for wid {wid}", context={"wid": wid}, cause=exc
            ) from exc

    def close_window(self, wid: str) -> None:
        try:
            self._invoke("windowclose", wid)
        except (subprocess.CalledProcessError, OSError) as exc:
            raise WindowCloseError(
                "closing window", context={"wid": wid}, cause=exc
            ) from exc
