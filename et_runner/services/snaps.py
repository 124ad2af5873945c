"""Snap helpers."""

from __future__ import annotations

import logging
import subprocess

from et_common.errors import NamespaceDiscardError

logger = logging.getLogger(__name__)

SNAP_DISCARD_NS = "/usr/lib/snapd/snap-discard-ns"


def discard_snap_ns(snap_name: str) -> None:
    """Discard the preserved mount namespace of ``snap_name``."""
    logger.info("Discarding mount namespace of snap %s", snap_name)
    try:
        subprocess.run(
            ["sudo", SNAP_DISCARD_NS, snap_name],
            capture_output=True,
            text=True,
            check=True,
        )
    except subprocess.CalledProcessError as exc:
        raise NamespaceDiscardError(
            "cannot discard snap namespace",
            context={"snap": snap_name, "output": (exc.stderr or exc.stdout or "").strip()},
            cause=exc,
        ) from exc
    except OSError as exc:
        raise NamespaceDiscardError(
            "cannot discard snap namespace", context={"snap": snap_name}, cause=exc
        ) from exc
