import logging
from collections import defaultdict

import pytest
from rich.console import Console
from rich.table import Table

KNOWN_MARKERS = {"unit", "unit_common", "unit_runner", "unit_ui"}


def pytest_terminal_summary(terminalreporter, exitstatus, config):
    """Print pass/fail statistics per marker at the end of the session."""
    _ = (exitstatus, config)
    marker_stats = defaultdict(
        lambda: {"passed": 0, "failed": 0, "skipped": 0, "total": 0, "duration": 0.0}
    )

    for outcome in ["passed", "failed", "skipped"]:
        for report in terminalreporter.stats.get(outcome, []):
            if report.when == "call" or (report.when == "setup" and report.outcome == "skipped"):
                for marker in KNOWN_MARKERS:
                    if marker in report.keywords:
                        stats = marker_stats[marker]
                        stats[outcome] += 1
                        stats["total"] += 1
                        stats["duration"] += getattr(report, "duration", 0.0)

    if not marker_stats:
        return

    table = Table(title="Test Statistics by Marker", show_header=True, header_style="bold magenta")
    table.add_column("Marker", style="cyan")
    table.add_column("Total", justify="right")
    table.add_column("Passed", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Skipped", justify="right", style="yellow")
    table.add_column("Duration (s)", justify="right", style="blue")

    for marker in sorted(marker_stats):
        stats = marker_stats[marker]
        table.add_row(
            marker,
            str(stats["total"]),
            str(stats["passed"]),
            str(stats["failed"]),
            str(stats["skipped"]),
            f"{stats['duration']:.2f}",
        )

    console = Console()
    console.print("\n")
    console.print(table)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep user ETRACE_* settings out of the tests."""
    for name in (
        "ETRACE_LOG_LEVEL",
        "ETRACE_LOG_JSON",
        "ETRACE_LOG_FILE",
        "ETRACE_WINDOW_TIMEOUT",
        "ETRACE_EXIT_TIMEOUT",
        "ETRACE_STRACE",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def restore_root_logger():
    """Undo configure_logging side effects on the root logger."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
