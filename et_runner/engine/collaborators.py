"""External collaborators used by the orchestrator, bundled for injection."""

from __future__ import annotations

import os
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Callable, Protocol, Sequence

from et_runner.engine.cascade import WindowTool
from et_runner.engine.launcher import Tracer, signal_process_group
from et_runner.models.config import RunConfiguration
from et_runner.models.results import ExecveTiming


class TraceBackend(Tracer, Protocol):
    """A tracer that can also parse the stream it produces."""

    def parse(self, stream: IO[str]) -> ExecveTiming:
        ...


@dataclass
class Collaborators:
    """Everything the trial runner talks to outside of its own process."""

    tracer: TraceBackend
    windows: WindowTool
    close_by_name: Callable[[str], None]
    discard_namespace: Callable[[str], None]
    flush_caches: Callable[[], None]
    run_script: Callable[[Path, Sequence[str]], None]
    popen: Callable[..., subprocess.Popen] = subprocess.Popen
    kill: Callable[[int, int], None] = os.kill
    signal_group: Callable[[subprocess.Popen, int], None] = signal_process_group
    clock: Callable[[], int] = field(default=time.monotonic_ns)


def default_collaborators(config: RunConfiguration) -> Collaborators:
    """Wire the real strace/xdotool/wmctrl/snap helpers."""
    from et_runner.services import profiling, snaps, wmctrl
    from et_runner.services.strace import StraceTracer
    from et_runner.services.xdotool import XDoTool

    return Collaborators(
        tracer=StraceTracer(),
        windows=XDoTool(timeout=config.window_timeout),
        close_by_name=wmctrl.close_by_name,
        discard_namespace=snaps.discard_snap_ns,
        flush_caches=profiling.free_caches,
        run_script=profiling.run_script,
    )
