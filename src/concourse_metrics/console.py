"""Rich console utilities for the collector CLI."""

from __future__ import annotations

from collections.abc import Iterable

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from concourse_metrics.domain.models import CollectionResult, StepMetric

# Shared console instances
console = Console()
error_console = Console(stderr=True)


def print_header(title: str, subtitle: str | None = None) -> None:
    """Print a styled header panel."""
    content = Text(title, style="bold blue")
    if subtitle:
        content.append(f"\n{subtitle}", style="dim")
    console.print(Panel(content, expand=False))


def print_error(message: str, hint: str | None = None) -> None:
    """Print formatted error message to stderr."""
    content = Text(f"ERROR: {message}", style="bold red")
    if hint:
        content.append(f"\n\nHint: {hint}", style="yellow")
    error_console.print(Panel(content, title="Error", border_style="red"))


def print_collection_summary(result: CollectionResult) -> None:
    """Print emitted/skipped/failed counts of a collection pass (stderr)."""
    table = Table(show_header=False, box=None)
    table.add_column("Key", style="cyan")
    table.add_column("Value")

    table.add_row("Emitted", str(len(result.emitted)))
    table.add_row("Skipped (cached)", str(len(result.skipped)))
    failed = str(len(result.failed))
    table.add_row("Failed", Text(failed, style="red") if result.failed else failed)
    if result.failed:
        table.add_row("Failed builds", ", ".join(str(i) for i in result.failed))

    border = "red" if result.failed else "green"
    error_console.print(
        Panel(table, title="Collection", border_style=border, expand=False)
    )


def _fmt_time(value: int | None) -> str:
    return "-" if value is None else str(value)


def print_steps(steps: Iterable[StepMetric], title: str = "Steps") -> None:
    """Print a table of step metrics."""
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Type", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Initialize", justify="right")
    table.add_column("Start", justify="right")
    table.add_column("Finish", justify="right")
    table.add_column("Duration", justify="right")

    for step in sorted(steps, key=lambda s: (s.start_time or 0, s.id)):
        duration = step.duration
        table.add_row(
            step.id,
            step.kind.value,
            step.name,
            _fmt_time(step.initialize_time),
            _fmt_time(step.start_time),
            _fmt_time(step.finish_time),
            "-" if duration is None else f"{duration}s",
        )

    console.print(table)
