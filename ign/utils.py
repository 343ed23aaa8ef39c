"""Console helpers for the ign entry point.

Rich-based reporting of generation results and a couple of small parsing
helpers for command-line variable assignments.  The engine itself never
prints; only the entry point calls into this module.
"""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ign.generator.report import ActionKind, GenerationReport

console = Console()


ACTION_STYLES: dict[ActionKind, str] = {
    ActionKind.CREATE: "bright_green",
    ActionKind.OVERWRITE: "bright_yellow",
    ActionKind.SKIP: "dim",
    ActionKind.BACKUP: "bright_cyan",
}


# ---------------------------------------------------------------------------
# Variable assignment parsing
# ---------------------------------------------------------------------------


def parse_assignments(pairs: list[str]) -> dict[str, Any]:
    """Turn ``["NAME=value", ...]`` into a ``{name: value}`` map.

    Values stay strings; the engine coerces them to the declared types.

    Raises:
        ValueError: If an item has no ``=``.
    """
    values: dict[str, Any] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name.strip():
            raise ValueError(f"expected NAME=VALUE, got {pair!r}")
        values[name.strip()] = value
    return values


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_report(report: GenerationReport, title: str = "Generation") -> None:
    """Print one row per report entry followed by per-action counts."""
    suffix = " (dry run)" if report.dry_run else ""
    table = Table(title=f"{title}{suffix}", show_header=True, header_style="bold cyan")
    table.add_column("Action", no_wrap=True)
    table.add_column("Path")
    table.add_column("Status", style="dim")
    table.add_column("Note")

    for entry in report.entries:
        style = ACTION_STYLES.get(entry.action, "white")
        table.add_row(
            f"[{style}]{entry.action.value}[/{style}]",
            escape(entry.path),
            entry.status.value if entry.status else "",
            escape(entry.error or ""),
        )

    console.print(table)
    counts = ", ".join(f"{kind}: {count}" for kind, count in report.counts().items() if count)
    console.print(f"[dim]{counts or 'nothing to do'}[/dim]")
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
