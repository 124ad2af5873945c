"""File helpers shared by the runner and the CLI."""

from __future__ import annotations

from pathlib import Path
from typing import IO


def ensure_exists_and_open(path: str | Path, truncate: bool) -> IO[bytes]:
    """Open ``path`` for binary writing, creating parent directories.

    With ``truncate`` an existing file is deleted and recreated; otherwise new
    output is appended to it.
    """
    target = Path(path)
    if target.is_dir():
        raise IsADirectoryError(f"{target} is a directory")
    target.parent.mkdir(parents=True, exist_ok=True)
    if truncate and target.exists():
        target.unlink()
    return open(target, "ab")
