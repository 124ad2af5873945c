"""Host preparation helpers: dropping caches and running lifecycle scripts."""

from __future__ import annotations

import logging
import platform
import subprocess
from pathlib import Path
from typing import Sequence

from et_common.errors import CacheFlushError, ScriptError

logger = logging.getLogger(__name__)


def free_caches() -> None:
    """Flush dirty pages and drop the page, dentry and inode caches."""
    if platform.system() != "Linux":
        raise CacheFlushError(
            "dropping caches is only supported on Linux",
            context={"system": platform.system()},
        )
    try:
        subprocess.run(["sync"], check=True)
        subprocess.run(
            ["sudo", "-n", "sh", "-c", "echo 3 > /proc/sys/vm/drop_caches"],
            check=True,
            capture_output=True,
        )
    except (subprocess.CalledProcessError, OSError) as exc:
        raise CacheFlushError("cannot free caches", cause=exc) from exc
    logger.debug("Cleared filesystem caches")


def run_script(script: str | Path, args: Sequence[str] = ()) -> None:
    """Run a lifecycle script, raising ScriptError with its output on failure."""
    cmd = [str(script), *args]
    logger.debug("Running script: %s", " ".join(cmd))
    try:
        subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            check=True,
        )
    except subprocess.CalledProcessError as exc:
        raise ScriptError(
            f"script {script} failed",
            context={"script": str(script), "output": (exc.stdout or "").strip()},
        ) from exc
    except OSError as exc:
        raise ScriptError(
            f"cannot run script {script}", context={"script": str(script)}, cause=exc
        ) from exc
