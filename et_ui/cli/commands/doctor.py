from __future__ import annotations

import typer

from et_ui.cli.context import CLIContext
from et_ui.console import make_console
from et_ui.presenters.doctor import render_doctor_report


def register_doctor_command(app: typer.Typer, ctx: CLIContext) -> None:
    """Register the doctor command on the given Typer app."""

    @app.command("doctor")
    def doctor() -> None:
        """Check that sudo, strace, xdotool and wmctrl are available."""
        report = ctx.doctor_service.check_all()
        ok = render_doctor_report(make_console(), report)
        if not ok:
            raise typer.Exit(1)
