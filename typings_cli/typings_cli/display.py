"""Rich output formatting for the typings-impact CLI.

All functions write to a :class:`rich.console.Console` instance (typically
bound to *stderr*) so that machine-readable output on *stdout* is never
polluted with human-readable decoration.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from typings_engine.models.changes import AffectedResult
    from typings_engine.search.search_index import SearchRecord


# ---------------------------------------------------------------------------
# Affected packages
# ---------------------------------------------------------------------------


def display_errors(console: Console, errors: Sequence[str]) -> None:
    """Print each structural error as-is, in order."""
    console.print(f"[bold red]Change-set rejected with {len(errors)} error(s):[/bold red]")
    for error in errors:
        console.print(error, style="red", markup=False, highlight=False)


def display_affected(console: Console, result: AffectedResult) -> None:
    """Render changed packages and their dependents.

    Parameters
    ----------
    console:
        Rich console to write to (typically stderr).
    result:
        A successful pipeline result.
    """
    header = [
        f"[bold]Snapshot:[/bold]   {result.snapshot or '(working tree)'}",
        f"[bold]Changed:[/bold]    {len(result.package_names)}",
        f"[bold]Dependents:[/bold] {len(result.dependents)}",
    ]
    console.print(Panel("\n".join(header), title="Affected Packages", border_style="blue"))

    if not result.package_names:
        console.print("[dim]No packages changed.[/dim]")
    else:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Package", style="cyan")
        table.add_column("Reason")
        for name in sorted(result.package_names):
            table.add_row(name, "changed")
        for name in sorted(result.dependents):
            table.add_row(name, "[dim]dependent[/dim]")
        console.print(table)

    for warning in result.warnings:
        console.print(f"[yellow]warning:[/yellow] {warning}")


# ---------------------------------------------------------------------------
# Search index
# ---------------------------------------------------------------------------


def display_search_summary(console: Console, records: Sequence[SearchRecord], limit: int = 10) -> None:
    """Show the top of the download ranking."""
    table = Table(title=f"Search index ({len(records)} packages)", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Package", style="cyan")
    table.add_column("Library")
    table.add_column("Downloads", justify="right")
    for position, record in enumerate(records[:limit], start=1):
        table.add_row(str(position), record.type_package_name, record.library_name, f"{record.downloads:,}")
    console.print(table)
