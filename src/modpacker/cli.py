"""
CLI entry point for modpacker.

This module provides the Typer-based command-line interface for modpacker.

Commands:
    list      List packs under the packs directory
    create    Create a new pack and add mods to it
    add       Add mods to an existing pack
    view      Show the mods in a pack
    check     Check which mods have builds for another Minecraft version
    update    Create an updated copy of a pack for another Minecraft version

Architecture Note:
    The CLI only gathers input and renders output. All pack logic lives in
    Engine, so every command can also run unattended: pass --mod to skip the
    search prompt and --yes to skip confirmation.
"""

import json
import logging
import traceback
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from modpacker import __version__
from modpacker.engine import AddStatus, Engine
from modpacker.errors import InvalidInputError, ModpackerError, NetworkError
from modpacker.pack import Pack, PackStore
from modpacker.reconcile import CompatibilityReport
from modpacker.report import (
    compatibility_report_dict,
    pack_dict,
    print_compatibility_report,
    print_pack,
    print_search_hits,
)
from modpacker.schema import Loader, Settings, load_settings, parse_loader, validate_minecraft_version

DEFAULT_CONFIG_FILENAME = "modpacker.yaml"

app = typer.Typer(
    name="modpacker",
    help="Build and update Minecraft mod packs from Modrinth.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]modpacker[/bold] version {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool, debug: bool) -> None:
    level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    logger = logging.getLogger("modpacker")
    logger.handlers.clear()
    logger.addHandler(RichHandler(console=err_console, show_path=False, show_time=debug))
    logger.setLevel(level)
    logger.propagate = False


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help=f"Path to a YAML config file. Defaults to ./{DEFAULT_CONFIG_FILENAME} if present.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ] = None,
    packs_dir: Annotated[
        Optional[Path],
        typer.Option(
            "--packs-dir",
            help="Directory holding packs. Overrides the config file.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log progress to stderr."),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Log requests and show full error tracebacks."),
    ] = False,
) -> None:
    """
    modpacker - Minecraft mod packs from Modrinth.

    Create packs for a Minecraft version and loader, add mods by search, and
    migrate whole packs to new Minecraft versions.
    """
    _configure_logging(verbose, debug)

    try:
        if config is not None:
            settings = load_settings(config)
        elif Path(DEFAULT_CONFIG_FILENAME).is_file():
            settings = load_settings(DEFAULT_CONFIG_FILENAME)
        else:
            settings = Settings()
    except Exception as e:
        err_console.print(f"[red]Error loading config: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    if packs_dir is not None:
        settings = settings.model_copy(update={"packs_dir": packs_dir})

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["debug"] = debug


# =============================================================================
# Helpers
# =============================================================================


def _engine(ctx: typer.Context) -> Engine:
    """Build an Engine from the callback's settings."""
    return Engine(ctx.obj["settings"])


def _fail(ctx: typer.Context, error: Exception, json_output: bool = False) -> NoReturn:
    """Report an error and exit with code 1."""
    debug = bool(ctx.obj and ctx.obj.get("debug"))
    if json_output:
        payload = error.to_dict() if isinstance(error, ModpackerError) else {
            "error_type": type(error).__name__,
            "message": str(error),
        }
        payload["error"] = True
        if debug:
            payload["traceback"] = traceback.format_exc()
        print(json.dumps(payload, indent=2, default=str))
    else:
        err_console.print(f"[red]{escape(str(error))}[/red]")
        if debug:
            err_console.print(f"[dim]{escape(traceback.format_exc())}[/dim]")
    raise typer.Exit(code=1)


def _resolve_location(engine: Engine, pack: Optional[str]) -> Path:
    """
    Turn the PACK argument into a pack location.

    Accepts a path to a pack directory or manifest, or a directory name under
    the packs directory. With no argument, asks the user to pick a pack.
    """
    if pack:
        candidate = Path(pack)
        if candidate.exists():
            return candidate
        return engine.store.root / pack

    packs = engine.list_packs()
    if not packs:
        raise InvalidInputError(
            message=f"No packs found in {engine.store.root}",
            suggestion="Create one with `modpacker create`, or pass a path to a pack",
        )
    for index, location in enumerate(packs, start=1):
        console.print(f"  [dim]{index:>2}.[/dim] [cyan]{escape(location.name)}[/cyan]")
    choice = typer.prompt("Select a pack (number or path)")
    if choice.strip().isdigit() and 1 <= int(choice) <= len(packs):
        return packs[int(choice) - 1]
    return Path(choice.strip())


def _prompt_version(value: Optional[str], label: str = "Minecraft version (e.g. 1.20.1)") -> str:
    while True:
        raw = value if value is not None else typer.prompt(label)
        try:
            return validate_minecraft_version(raw)
        except InvalidInputError as e:
            if value is not None:
                raise
            console.print(f"[yellow]{escape(e.suggestion or e.message)}[/yellow]")


def _prompt_loader(value: Optional[str]) -> Loader:
    if value is not None:
        return parse_loader(value)
    choices = list(Loader)
    for index, loader in enumerate(choices, start=1):
        console.print(f"  [dim]{index}.[/dim] {loader.display_name}")
    while True:
        raw = typer.prompt("Select mod loader", default="1")
        if raw.strip().isdigit() and 1 <= int(raw) <= len(choices):
            return choices[int(raw) - 1]
        try:
            return parse_loader(raw)
        except InvalidInputError as e:
            console.print(f"[yellow]{escape(e.suggestion or e.message)}[/yellow]")


def _add_mods(
    engine: Engine,
    pack: Pack,
    location: Path,
    mods: list[str],
    interactive: bool,
) -> Pack:
    """Add mods given on the command line, then run the search loop if interactive."""
    progress = lambda line: console.print(f"[dim]{escape(line)}[/dim]")  # noqa: E731

    for key in mods:
        result = engine.add_by_key(pack, location, key, on_progress=progress)
        _print_add_result(result.status, result.message)
        pack = result.pack

    if not interactive:
        return pack

    console.print(
        f"\nAdding mods to [bold]{escape(pack.pack_name)}[/bold] "
        f"({pack.loader.display_name}, {pack.minecraft_version})."
    )
    while True:
        term = typer.prompt("Search mods (blank to finish)", default="", show_default=False)
        if not term.strip():
            break
        try:
            hits = engine.search(pack, term)
        except NetworkError as e:
            err_console.print(f"[red]{escape(str(e))}[/red]")
            continue

        shown = print_search_hits(hits, console)
        if not shown:
            continue
        choice = typer.prompt("Select # (blank to skip)", default="", show_default=False)
        if not choice.strip().isdigit() or not 1 <= int(choice) <= len(shown):
            continue

        result = engine.add_package(pack, location, shown[int(choice) - 1], on_progress=progress)
        _print_add_result(result.status, result.message)
        pack = result.pack

    return pack


def _print_add_result(status: AddStatus, message: str) -> None:
    if status == AddStatus.ADDED:
        console.print(f"[green]✓[/green] {escape(message)}")
    elif status == AddStatus.FAILED:
        err_console.print(f"[red]✗ {escape(message)}[/red]")
    else:
        console.print(f"[yellow]⊘ {escape(message)}[/yellow]")


# =============================================================================
# Commands
# =============================================================================


@app.command("list")
def list_packs(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output in JSON format.")] = False,
) -> None:
    """List packs under the packs directory."""
    with _engine(ctx) as engine:
        rows = []
        for location in engine.list_packs():
            try:
                pack = engine.open_pack(location)
            except ModpackerError as e:
                rows.append((location, None, e))
                continue
            rows.append((location, pack, None))

    if json_output:
        packs = []
        for location, pack, err in rows:
            item: dict = {"location": str(location)}
            if pack is None:
                item["error"] = str(err)
            else:
                item.update({
                    "pack_name": pack.pack_name,
                    "minecraft_version": pack.minecraft_version,
                    "loader": pack.loader.value,
                    "mods": len(pack.mods),
                })
            packs.append(item)
        print(json.dumps({"packs": packs, "count": len(packs)}, indent=2))
        return

    if not rows:
        console.print(f"[dim]No packs found in {escape(str(ctx.obj['settings'].packs_dir))}.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Directory", style="cyan")
    table.add_column("Loader")
    table.add_column("Minecraft")
    table.add_column("Mods", justify="right")
    for location, pack, _err in rows:
        if pack is None:
            table.add_row(escape(location.name), "[red](error loading)[/red]", "", "")
        else:
            table.add_row(
                escape(location.name),
                pack.loader.display_name,
                pack.minecraft_version,
                str(len(pack.mods)),
            )
    console.print(table)


@app.command()
def create(
    ctx: typer.Context,
    name: Annotated[Optional[str], typer.Argument(help="Pack name.")] = None,
    loader: Annotated[
        Optional[str],
        typer.Option("--loader", "-l", help="Mod loader: fabric, forge, neoforge or quilt."),
    ] = None,
    minecraft_version: Annotated[
        Optional[str],
        typer.Option("--version", "-m", help="Minecraft version, e.g. 1.20.1."),
    ] = None,
    mods: Annotated[
        Optional[list[str]],
        typer.Option("--mod", help="Project id or slug to add. Repeatable."),
    ] = None,
    no_input: Annotated[
        bool,
        typer.Option("--no-input", help="Do not prompt; add only the --mod values."),
    ] = False,
) -> None:
    """
    Create a new pack, then add mods to it.

    Example:
        $ modpacker create "My Pack" -l fabric -m 1.20.1 --mod sodium --mod lithium --no-input
    """
    try:
        if no_input and (name is None or loader is None or minecraft_version is None):
            raise InvalidInputError(
                message="--no-input needs a pack name, --loader and --version",
            )
        with _engine(ctx) as engine:
            pack_name = name if name is not None else typer.prompt("Pack name")
            pack_loader = _prompt_loader(loader)
            version = _prompt_version(minecraft_version)

            pack, location = engine.create_pack(pack_name, version, pack_loader)
            pack = _add_mods(engine, pack, location, mods or [], interactive=not no_input)
    except ModpackerError as e:
        _fail(ctx, e)

    console.print(f"\nSaved pack at: [bold]{escape(str(location))}[/bold] ({len(pack.mods)} mods)")


@app.command()
def add(
    ctx: typer.Context,
    pack: Annotated[Optional[str], typer.Argument(help="Pack directory, manifest path, or pack name.")] = None,
    mods: Annotated[
        Optional[list[str]],
        typer.Option("--mod", help="Project id or slug to add. Repeatable."),
    ] = None,
    no_input: Annotated[
        bool,
        typer.Option("--no-input", help="Do not prompt; add only the --mod values."),
    ] = False,
) -> None:
    """Add mods to an existing pack. The pack is saved after each mod."""
    try:
        with _engine(ctx) as engine:
            location = PackStore.pack_dir(_resolve_location(engine, pack))
            current = engine.open_pack(location)
            current = _add_mods(engine, current, location, mods or [], interactive=not no_input)
    except ModpackerError as e:
        _fail(ctx, e)

    console.print(f"\nPack now has {len(current.mods)} mods.")


@app.command()
def view(
    ctx: typer.Context,
    pack: Annotated[Optional[str], typer.Argument(help="Pack directory, manifest path, or pack name.")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output in JSON format.")] = False,
) -> None:
    """Show the mods in a pack."""
    try:
        with _engine(ctx) as engine:
            location = PackStore.pack_dir(_resolve_location(engine, pack))
            current = engine.open_pack(location)
    except ModpackerError as e:
        _fail(ctx, e, json_output)

    if json_output:
        print(json.dumps(pack_dict(current, location), indent=2))
    else:
        print_pack(current, location, console)


@app.command()
def check(
    ctx: typer.Context,
    pack: Annotated[Optional[str], typer.Argument(help="Pack directory, manifest path, or pack name.")] = None,
    minecraft_version: Annotated[
        Optional[str],
        typer.Option("--version", "-m", help="Minecraft version to check against."),
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output in JSON format.")] = False,
) -> None:
    """
    Check which mods have builds for another Minecraft version.

    Nothing is downloaded or written.

    Example:
        $ modpacker check packs/My-Pack-1.20.1-fabric -m 1.21 --json
    """
    try:
        with _engine(ctx) as engine:
            current = engine.open_pack(_resolve_location(engine, pack))
            target = _prompt_version(minecraft_version, "Target Minecraft version")
            report = engine.check(current, target)
    except ModpackerError as e:
        _fail(ctx, e, json_output)

    if json_output:
        print(json.dumps(compatibility_report_dict(report), indent=2))
    else:
        print_compatibility_report(report, console)


@app.command()
def update(
    ctx: typer.Context,
    pack: Annotated[Optional[str], typer.Argument(help="Pack directory, manifest path, or pack name.")] = None,
    minecraft_version: Annotated[
        Optional[str],
        typer.Option("--version", "-m", help="Minecraft version to update to."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Proceed without asking, dropping incompatible mods."),
    ] = False,
) -> None:
    """
    Create an updated copy of a pack for another Minecraft version.

    The original pack is left as it is. Mods without a compatible build are
    dropped and listed in the new manifest.
    """

    def confirm(report: CompatibilityReport) -> bool:
        print_compatibility_report(report, console)
        if yes:
            return True
        message = (
            "Proceed without incompatible mods?"
            if report.incompatible
            else "Proceed to create updated pack?"
        )
        return typer.confirm(message, default=True)

    progress = lambda line: console.print(f"[dim]{escape(line)}[/dim]")  # noqa: E731

    try:
        with _engine(ctx) as engine:
            current = engine.open_pack(_resolve_location(engine, pack))
            target = _prompt_version(minecraft_version, "New Minecraft version")
            result = engine.update_pack(current, target, confirm=confirm, on_progress=progress)
    except ModpackerError as e:
        _fail(ctx, e)

    if result is None:
        console.print("[dim]Cancelled. Nothing was written.[/dim]")
        return
    console.print(f"\nSaved updated pack at: [bold]{escape(str(result.location))}[/bold]")


if __name__ == "__main__":
    app()
