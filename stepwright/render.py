"""
Human-readable rendering of discovery reports.

Two renderings of the same information:
- format_summary(): plain text, for logs and non-terminal output
- print_report(): rich tables, for the CLI

Both show totals, counts per framework, counts per skip reason and every
skip entry with its detail. When the set of registered keys is supplied,
steps that were loaded but could not be registered are listed separately.
"""

from collections.abc import Iterable
from typing import Optional

from rich.console import Console
from rich.table import Table

from stepwright.schemas import DiscoveryReport


def _unregistered(report: DiscoveryReport, registered: Optional[Iterable[str]]) -> list[str]:
    if registered is None:
        return []
    published = set(registered)
    return [key for key in report.keys() if key not in published]


def format_summary(report: DiscoveryReport, registered: Optional[Iterable[str]] = None) -> str:
    """
    Render a report as plain text.

    Args:
        report: The discovery report
        registered: Keys published into the runtime, if registration ran

    Returns:
        Multi-line summary string
    """
    summary = report.summary()
    lines = [
        f"Frameworks: {summary['frameworks']}  "
        f"Loaded: {summary['loaded']}  Skipped: {summary['skipped']}",
    ]

    if summary["by_framework"]:
        lines.append("")
        lines.append("By framework:")
        for name, counts in summary["by_framework"].items():
            lines.append(f"  {name}: {counts['loaded']} loaded, {counts['skipped']} skipped")

    if summary["by_reason"]:
        lines.append("")
        lines.append("By reason:")
        for reason, count in summary["by_reason"].items():
            lines.append(f"  {reason}: {count}")

    if report.skipped:
        lines.append("")
        lines.append("Skipped:")
        for entry in report.skipped:
            lines.append(f"  {entry.key} [{entry.reason.value}] {entry.detail}")

    unregistered = _unregistered(report, registered)
    if unregistered:
        lines.append("")
        lines.append("Loaded but not registered:")
        for key in unregistered:
            lines.append(f"  {key}")

    return "\n".join(lines)


def print_report(
    report: DiscoveryReport,
    console: Optional[Console] = None,
    registered: Optional[Iterable[str]] = None,
) -> None:
    """Render a report as rich tables."""
    console = console or Console()
    summary = report.summary()

    console.print(
        f"[bold]Frameworks:[/bold] {summary['frameworks']}  "
        f"[green]Loaded:[/green] {summary['loaded']}  "
        f"[yellow]Skipped:[/yellow] {summary['skipped']}"
    )

    if summary["by_framework"]:
        table = Table(title="Frameworks")
        table.add_column("Framework")
        table.add_column("Loaded", justify="right")
        table.add_column("Skipped", justify="right")
        for name, counts in summary["by_framework"].items():
            table.add_row(name, str(counts["loaded"]), str(counts["skipped"]))
        console.print(table)

    if report.skipped:
        table = Table(title="Skipped")
        table.add_column("Key")
        table.add_column("Reason")
        table.add_column("Detail", overflow="fold")
        for entry in report.skipped:
            table.add_row(entry.key, entry.reason.value, entry.detail)
        console.print(table)

        reasons = ", ".join(f"{reason}={count}" for reason, count in summary["by_reason"].items())
        console.print(f"[bold]By reason:[/bold] {reasons}")

    unregistered = _unregistered(report, registered)
    if unregistered:
        console.print("[red]Loaded but not registered:[/red] " + ", ".join(unregistered))
