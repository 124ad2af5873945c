"""wmctrl fallback for closing windows through the window manager."""

from __future__ import annotations

import logging
import subprocess

from et_common.errors import FallbackCloseError

logger = logging.getLogger(__name__)


def close_by_name(name: str, *, binary: str = "wmctrl") -> None:
    """Ask the window manager to gracefully close the window called ``name``."""
    try:
        subprocess.run(
            [binary, "-c", name],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            check=True,
        )
    except subprocess.CalledProcessError as exc:
        logger.info("wmctrl output: %s", (exc.stdout or "").strip())
        raise FallbackCloseError(
            "closing window with wmctrl",
            context={"name": name, "returncode": exc.returncode},
            cause=exc,
        ) from exc
    except OSError as exc:
        raise FallbackCloseError(
            "closing window with wmctrl", context={"name": name}, cause=exc
        ) from exc
