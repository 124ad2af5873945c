"""Presenter for Doctor Reports."""

from __future__ import annotations

from typing import List

from rich.console import Console
from rich.table import Table

from et_runner.services.doctor import DoctorReport


def build_doctor_tables(report: DoctorReport) -> List[Table]:
    """Transform a DoctorReport into rich tables, one per group."""
    tables = []
    for group in report.groups:
        table = Table(title=group.title, show_header=True, header_style="bold magenta")
        table.add_column("Item", style="cyan")
        table.add_column("Status")
        for item in group.items:
            table.add_row(item.label, "✓" if item.ok else "✗")
        tables.append(table)
    return tables


def render_doctor_report(console: Console, report: DoctorReport) -> bool:
    """
    Render a doctor report to the console.

    Returns True when all required checks passed.
    """
    for table in build_doctor_tables(report):
        console.print(table)

    for msg in report.info_messages:
        console.print(msg, style="info")

    if report.total_failures > 0:
        console.print(f"Found {report.total_failures} failures.", style="error")
        return False

    console.print("All checks passed.", style="success")
    return True
