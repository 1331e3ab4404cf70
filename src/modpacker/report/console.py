"""
Console output for modpacker.

Renders packs, search results and compatibility reports with Rich.
"""

from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from modpacker.pack import Pack
from modpacker.reconcile import CompatibilityReport
from modpacker.schema import SearchHit

ICON_COMPATIBLE = "[green]✓[/green]"
ICON_INCOMPATIBLE = "[red]✗[/red]"

# Search results shown per query
MAX_DISPLAYED_HITS = 15
DESCRIPTION_EXCERPT = 120


def _truncate(s: str, max_len: int) -> str:
    if len(s) <= max_len:
        return s
    return s[: max_len - 3] + "..."


def print_pack(pack: Pack, location: Path | None = None, console: Console | None = None) -> None:
    """Print a pack header and its mods."""
    if console is None:
        console = Console()

    header = Text()
    header.append(" Pack ", style="bold")
    header.append(pack.pack_name, style="bold cyan")
    header.append(" │ ", style="dim")
    header.append(pack.loader.display_name, style="bold")
    header.append(" │ ", style="dim")
    header.append(f"Minecraft {pack.minecraft_version}", style="bold")
    console.print(Panel(header, expand=False))

    console.print(f"  [dim]Created:[/dim]  {pack.created_at.strftime('%Y-%m-%d %H:%M:%S')}")
    if location is not None:
        console.print(f"  [dim]Location:[/dim] {escape(str(location))}")
    console.print()

    if not pack.mods:
        console.print("[dim](no mods)[/dim]")
    else:
        table = Table(show_header=True, header_style="bold")
        table.add_column("#", style="dim", width=3, justify="right")
        table.add_column("Mod", style="cyan")
        table.add_column("Version")
        table.add_column("File", style="dim", overflow="fold")
        for index, entry in enumerate(pack.mods, start=1):
            table.add_row(
                str(index),
                escape(entry.title),
                escape(entry.version_number),
                escape(entry.file_name),
            )
        console.print(table)

    if pack.incompatible:
        console.print()
        console.print("[yellow]Dropped in the last update (incompatible):[/yellow]")
        for title in pack.incompatible.values():
            console.print(f"  - {escape(title)}")


def print_search_hits(
    hits: list[SearchHit],
    console: Console | None = None,
    limit: int = MAX_DISPLAYED_HITS,
) -> list[SearchHit]:
    """
    Print numbered search results.

    Returns:
        The hits that were shown, in display order
    """
    if console is None:
        console = Console()

    shown = hits[:limit]
    if not shown:
        console.print("[dim]No results (or all are already in this pack).[/dim]")
        return shown

    table = Table(show_header=True, header_style="bold", show_lines=True)
    table.add_column("#", style="dim", width=3, justify="right")
    table.add_column("Mod", style="cyan")
    table.add_column("Downloads", justify="right")
    table.add_column("Description", overflow="fold")
    for index, hit in enumerate(shown, start=1):
        table.add_row(
            str(index),
            escape(hit.title),
            f"{hit.downloads:,}",
            escape(_truncate(hit.description or "", DESCRIPTION_EXCERPT)),
        )
    console.print(table)
    return shown


def print_compatibility_report(report: CompatibilityReport, console: Console | None = None) -> None:
    """Print compatible and incompatible mods with a summary line."""
    if console is None:
        console = Console()

    console.print(
        f"[bold]{escape(report.pack_name)}[/bold]: "
        f"{report.source_version} → {report.target_version} ({report.loader.display_name})"
    )
    console.print()

    if report.results:
        table = Table(show_header=True, header_style="bold")
        table.add_column("", width=2, justify="center")
        table.add_column("Mod", style="cyan")
        table.add_column("Current")
        table.add_column("Target")
        for result in report.results:
            if result.compatible:
                table.add_row(
                    ICON_COMPATIBLE,
                    escape(result.entry.title),
                    escape(result.entry.version_number),
                    escape(result.new_version or ""),
                )
            else:
                table.add_row(
                    ICON_INCOMPATIBLE,
                    escape(result.entry.title),
                    escape(result.entry.version_number),
                    "[red]incompatible[/red]",
                )
        console.print(table)
        console.print()

    compatible = len(report.compatible)
    incompatible = len(report.incompatible)
    if report.all_compatible:
        console.print("[green]All mods compatible.[/green]")
    console.print(
        f"Summary: [green]{compatible} compatible[/green], "
        f"[red]{incompatible} incompatible[/red], total {report.total}."
    )
