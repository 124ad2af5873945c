"""Environment health checks for the external tools etrace drives."""

from __future__ import annotations

import os
import platform
import shutil
from dataclasses import dataclass, field
from typing import Callable, List, Tuple

from et_runner.services.snaps import SNAP_DISCARD_NS
from et_runner.services.strace import STRACE_STATIC


@dataclass
class DoctorCheckItem:
    label: str
    ok: bool
    required: bool


@dataclass
class DoctorCheckGroup:
    title: str
    items: List[DoctorCheckItem]
    failures: int


@dataclass
class DoctorReport:
    groups: List[DoctorCheckGroup]
    info_messages: List[str] = field(default_factory=list)
    total_failures: int = 0


class DoctorService:
    """Check the host prerequisites for tracing and window handling."""

    def __init__(self, which: Callable[[str], str | None] = shutil.which) -> None:
        self._which = which

    def _check_command(self, name: str) -> bool:
        return self._which(name) is not None

    def _build_check_group(
        self, title: str, items: List[Tuple[str, bool, bool]]
    ) -> DoctorCheckGroup:
        failures = 0
        check_items = []
        for label, ok, required in items:
            check_items.append(DoctorCheckItem(label, ok, required))
            failures += 0 if ok or not required else 1
        return DoctorCheckGroup(title, check_items, failures)

    def check_all(self) -> DoctorReport:
        strace_ok = self._check_command("strace") or STRACE_STATIC.exists()
        groups = [
            self._build_check_group(
                "Privileges",
                [("sudo", self._check_command("sudo"), True)],
            ),
            self._build_check_group(
                "Tracing",
                [("strace (or strace-static snap)", strace_ok, False)],
            ),
            self._build_check_group(
                "Window Handling",
                [
                    ("xdotool", self._check_command("xdotool"), False),
                    ("wmctrl", self._check_command("wmctrl"), False),
                ],
            ),
            self._build_check_group(
                "Snaps",
                [
                    ("snap", self._check_command("snap"), False),
                    ("snap-discard-ns", os.path.exists(SNAP_DISCARD_NS), False),
                ],
            ),
        ]
        info = [
            f"Python: {platform.python_version()} ({platform.python_implementation()}) on {platform.system()} {platform.release()}"
        ]
        return DoctorReport(
            groups=groups,
            info_messages=info,
            total_failures=sum(group.failures for group in groups),
        )
