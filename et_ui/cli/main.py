"""
Command-line interface for etrace.

Measures how long a program takes to show its first window, optionally with
an strace-based breakdown of the exec calls made during startup.
"""

from __future__ import annotations

import typer

from et_common.api import configure_logging
from et_ui.cli.commands.doctor import register_doctor_command
from et_ui.cli.commands.run import register_run_command
from et_ui.cli.context import CLIContext

ctx_store = CLIContext()

app = typer.Typer(help="Measure application startup time.", no_args_is_help=True)


@app.callback()
def entry(
    show_errors: bool = typer.Option(
        False, "--errors", "-e", help="Show errors as they happen."
    ),
    additional_iterations: int = typer.Option(
        0,
        "--additional-iterations",
        "-n",
        min=0,
        help="Number of additional iterations to run (1 iteration is always run).",
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable verbose debug logging."),
) -> None:
    """Global options shared by every command."""
    configure_logging(debug=debug, force=True)
    ctx_store.show_errors = show_errors
    ctx_store.additional_iterations = additional_iterations


register_run_command(app, ctx_store)
register_doctor_command(app, ctx_store)


def main() -> None:
    """Console script entrypoint (Typer app)."""
    app()


if __name__ == "__main__":
    main()
