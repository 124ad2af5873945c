"""Rich console factory shared by the CLI presenters."""

from __future__ import annotations

import sys
from typing import IO

from rich.console import Console
from rich.theme import Theme

THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "red",
        "success": "green",
        "accent": "#3ea6ff",
    }
)


def make_console(stream: IO[str] | None = None, *, stderr: bool = False) -> Console:
    """Return a themed console writing to ``stream`` (stdout by default)."""
    if stream is None:
        stream = sys.stderr if stderr else sys.stdout
    return Console(theme=THEME, file=stream, highlight=False, soft_wrap=True)
