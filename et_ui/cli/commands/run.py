from __future__ import annotations

import io
import shutil
import sys
from contextlib import ExitStack
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError

from et_common.api import ETraceError, ensure_exists_and_open
from et_runner.api import RunConfiguration, RunOrchestrator
from et_ui.cli.context import CLIContext
from et_ui.console import make_console
from et_ui.presenters.timing import RichTrialRenderer


def register_run_command(app: typer.Typer, ctx: CLIContext) -> None:
    """Register the run command on the given Typer app."""

    @app.command(
        "run",
        context_settings={"allow_interspersed_args": False},
    )
    def run(
        cmd: List[str] = typer.Argument(..., help="Command to run."),
        window_name: Optional[str] = typer.Option(
            None, "--window-name", "-w", help="Window name to wait for."
        ),
        prepare_script: Optional[Path] = typer.Option(
            None, "--prepare-script", "-p", help="Script to run to prepare a run."
        ),
        prepare_script_args: List[str] = typer.Option(
            [], "--prepare-script-args", help="Args to provide to the prepare script."
        ),
        restore_script: Optional[Path] = typer.Option(
            None, "--restore-script", "-r", help="Script to run to restore after a run."
        ),
        restore_script_args: List[str] = typer.Option(
            [], "--restore-script-args", help="Args to provide to the restore script."
        ),
        window_class: Optional[str] = typer.Option(
            None,
            "--class-name",
            "-c",
            help="Window class to use with xdotool instead of the first command token.",
        ),
        no_trace: bool = typer.Option(
            False, "--no-trace", "-t", help="Don't trace the process, just time the total execution."
        ),
        use_snap_run: bool = typer.Option(
            False, "--use-snap-run", "-s", help="Run command through `snap run`."
        ),
        discard_snap_ns: bool = typer.Option(
            False, "--discard-snap-ns", "-d", help="Discard the snap namespace before running the snap."
        ),
        cmd_stdout: Optional[Path] = typer.Option(
            None, "--cmd-stdout", help="Log file for the run command's stdout."
        ),
        cmd_stderr: Optional[Path] = typer.Option(
            None, "--cmd-stderr", help="Log file for the run command's stderr."
        ),
        truncate_cmd_logs: bool = typer.Option(
            False, "--truncate-cmd-logs", help="Recreate the command log files instead of appending."
        ),
        json_output: bool = typer.Option(
            False, "--json", "-j", help="Output results in JSON."
        ),
        output_file: Optional[Path] = typer.Option(
            None, "--output-file", "-o", help="File to write the results to (stdout when omitted)."
        ),
        no_window_wait: bool = typer.Option(
            False,
            "--no-window-wait",
            help="Don't wait for the window to appear, just run until the program exits.",
        ),
        window_timeout: Optional[float] = typer.Option(
            None, "--window-timeout", help="Seconds to wait for the window before giving up."
        ),
    ) -> None:
        """Run a command and measure how long its window takes to appear."""
        console = make_console(stderr=True)

        if shutil.which("sudo") is None:
            console.print("cannot find sudo", style="error")
            raise typer.Exit(1)

        overrides = {}
        if window_timeout is not None:
            overrides["window_timeout"] = window_timeout
        try:
            config = RunConfiguration(
                command=cmd,
                prepare_script=prepare_script,
                prepare_script_args=prepare_script_args,
                restore_script=restore_script,
                restore_script_args=restore_script_args,
                window_class=window_class,
                window_name=window_name,
                no_trace=no_trace,
                use_snap_run=use_snap_run,
                discard_snap_ns=discard_snap_ns,
                cmd_stdout_log=cmd_stdout,
                cmd_stderr_log=cmd_stderr,
                append_cmd_logs=not truncate_cmd_logs,
                json_output=json_output,
                output_file=output_file,
                no_window_wait=no_window_wait,
                additional_iterations=ctx.additional_iterations,
                show_errors=ctx.show_errors,
                **overrides,
            )
        except ValidationError as exc:
            console.print(f"Invalid options: {exc}", style="error", markup=False)
            raise typer.Exit(1)

        with ExitStack() as stack:
            if config.output_file is not None:
                try:
                    raw = ensure_exists_and_open(config.output_file, truncate=True)
                except OSError as exc:
                    console.print(f"cannot open output file: {exc}", style="error", markup=False)
                    raise typer.Exit(1)
                stream = stack.enter_context(io.TextIOWrapper(raw, encoding="utf-8"))
            else:
                stream = sys.stdout

            orchestrator = RunOrchestrator(
                config,
                collaborators=ctx.collaborators_factory(config),
                renderer=RichTrialRenderer(make_console(stream)),
            )
            try:
                orchestrator.run(stream)
            except ETraceError as exc:
                console.print(f"Run failed: {exc}", style="error", markup=False)
                raise typer.Exit(1)
