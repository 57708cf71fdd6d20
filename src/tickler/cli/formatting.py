"""Rich formatting helpers for the Tickler CLI.

Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape

if TYPE_CHECKING:
    from tickler.runner import RunReport


def get_console(stderr: bool = False) -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=stderr)


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False, soft_wrap=True)


def format_summary(report: RunReport, console: Console) -> None:
    """One-line run summary."""
    status = "[red]failed[/red]" if report.exit_code else "[green]ok[/green]"
    console.print(
        f"{report.files_scanned} files, {report.directives} directives, "
        f"{report.dispatched} dispatched, {len(report.errors)} errors: {status}",
        highlight=False,
        soft_wrap=True,
    )


def format_report_errors(report: RunReport, console: Console) -> None:
    """Print every accumulated error, one per block."""
    for message in report.errors:
        format_error(message, console)
