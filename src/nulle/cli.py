"""CLI interface for null-e."""

from pathlib import Path
from typing import NoReturn, Optional

import typer

from nulle import __version__
from nulle.caches import project_items
from nulle.cleaner import clean_items
from nulle.config import Settings, load_settings, save_settings
from nulle.display import (
    configure_logging,
    confirm_action,
    console,
    error_console,
    show_cleanup_preview,
    show_cleanup_result,
    show_cleanup_summary,
    show_items,
    show_kinds,
    show_projects,
    show_scanning_progress,
)
from nulle.environment import Environment
from nulle.errors import ConfigError
from nulle.models import DeleteMethod, ScanConfig, ScanResult
from nulle.orchestrator import ScanComplete, ScanFailed, ScanMode, ScanProgress, start_scan
from nulle.plugins import PluginRegistry
from nulle.safety import assess_project

# Create Typer app
app = typer.Typer(
    name="null-e",
    help="Find and clean development artifacts and caches",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"null-e version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging."),
) -> None:
    """null-e - find and clean development artifacts and caches."""
    configure_logging(verbose)


def _fail(message: str) -> NoReturn:
    error_console.print(f"[red]Error: {message}[/red]")
    raise typer.Exit(1)


def _load(environment: Environment) -> Settings:
    try:
        return load_settings(environment)
    except ConfigError as e:
        _fail(str(e))


def _scan_config(
    settings: Settings,
    environment: Environment,
    paths: Optional[list[Path]],
    **overrides,
) -> ScanConfig:
    roots = paths or settings.roots or [environment.cwd]
    try:
        return settings.scan_config(roots, **overrides)
    except ConfigError as e:
        _fail(str(e))


def _run(
    config: ScanConfig,
    registry: PluginRegistry,
    mode: ScanMode,
    environment: Environment,
) -> ScanComplete:
    """Run a scan job in the background while showing a spinner."""
    receiver = start_scan(config, registry, mode=mode, environment=environment)
    try:
        with show_scanning_progress() as progress:
            task = progress.add_task("Scanning...", total=None)
            for message in receiver:
                if isinstance(message, ScanProgress):
                    progress.update(task, completed=message.dirs_scanned, description=message.message)
                elif isinstance(message, ScanFailed):
                    _fail(message.error)
                elif isinstance(message, ScanComplete):
                    return message
    except KeyboardInterrupt:
        console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(130)
    finally:
        receiver.close()
    _fail("Scan ended without a result")


@app.command()
def scan(
    paths: Optional[list[Path]] = typer.Argument(None, help="Directories to scan (default: current)"),
    depth: Optional[int] = typer.Option(None, "--depth", "-d", help="Maximum directory depth"),
    threads: Optional[int] = typer.Option(None, "--threads", "-t", help="Worker threads"),
    all_: bool = typer.Option(False, "--all", "-a", help="Also scan global caches"),
    hidden: bool = typer.Option(False, "--hidden", help="Descend into hidden directories"),
) -> None:
    """Scan directories for development projects and their artifacts."""
    environment = Environment.detect()
    settings = _load(environment)
    registry = PluginRegistry.with_builtins()
    config = _scan_config(
        settings,
        environment,
        paths,
        max_depth=depth,
        threads=threads,
        skip_hidden=False if hidden else None,
    )

    mode = ScanMode.ALL if all_ else ScanMode.PROJECTS
    complete = _run(config, registry, mode, environment)
    result = complete.result or ScanResult()

    safeties = {p.id: assess_project(p, settings, registry=registry) for p in result.projects}
    show_projects(result, safeties, registry)

    if all_:
        artifact_paths = {a.path for p in result.projects for a in p.artifacts}
        caches = [i for i in complete.items if i.path not in artifact_paths]
        if caches:
            console.print()
            show_items(caches, title="Global Caches")

    if result.projects:
        console.print()
        console.print("[dim]Run [bold]null-e clean[/bold] to clean these projects[/dim]")


@app.command()
def caches() -> None:
    """List global package-manager and tool caches."""
    environment = Environment.detect()
    complete = _run(ScanConfig(), PluginRegistry.with_builtins(), ScanMode.CACHES, environment)
    show_items(complete.items, title="Global Caches")


@app.command()
def clean(
    paths: Optional[list[Path]] = typer.Argument(None, help="Directories to scan (default: current)"),
    depth: Optional[int] = typer.Option(None, "--depth", "-d", help="Maximum directory depth"),
    permanent: bool = typer.Option(False, "--permanent", help="Delete instead of moving to trash"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Simulate without deleting"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompts"),
    force: bool = typer.Option(False, "--force", help="Also clean projects with warnings"),
) -> None:
    """Clean artifacts of the projects found under PATHS."""
    environment = Environment.detect()
    settings = _load(environment)
    registry = PluginRegistry.with_builtins()
    config = _scan_config(settings, environment, paths, max_depth=depth)

    complete = _run(config, registry, ScanMode.PROJECTS, environment)
    result = complete.result or ScanResult()
    if not result.projects:
        console.print("[yellow]No projects with cleanable artifacts found.[/yellow]")
        raise typer.Exit(0)

    safeties = {p.id: assess_project(p, settings, registry=registry) for p in result.projects}
    blocked = [p for p in result.projects if safeties[p.id].is_blocked]
    warned = [p for p in result.projects if not safeties[p.id].is_blocked and not safeties[p.id].is_safe]
    selected = [
        p
        for p in result.projects
        if safeties[p.id].is_safe or (force and not safeties[p.id].is_blocked)
    ]

    for project in blocked:
        console.print(f"[red]Skipping {project.name}: {safeties[project.id].reason}[/red]")
    if warned and not force:
        console.print(
            f"[yellow]Skipping {len(warned)} projects with warnings "
            "(use [bold]--force[/bold] to include them)[/yellow]"
        )

    if not selected:
        console.print("[yellow]Nothing safe to clean.[/yellow]")
        raise typer.Exit(0)

    method = DeleteMethod.PERMANENT if permanent else settings.delete_method
    console.print()
    show_cleanup_preview(selected, safeties, method, dry_run=dry_run)

    if not yes and not dry_run:
        console.print()
        if not confirm_action("Proceed with cleanup?"):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    console.print("\n[bold]Cleaning...[/bold]")
    items = project_items(result.model_copy(update={"projects": selected}))
    summary = clean_items(items, method, environment, dry_run=dry_run)
    for cleanup in summary.results:
        show_cleanup_result(cleanup)
    show_cleanup_summary(summary, dry_run=dry_run)


@app.command()
def kinds() -> None:
    """List project markers and the artifacts cleaned for each kind."""
    show_kinds(PluginRegistry.with_builtins())


def _settings_path(path: Path, environment: Environment) -> Path:
    return environment.expand(str(path)).resolve()


@app.command()
def protect(path: Path = typer.Argument(..., help="Path to protect from cleaning")) -> None:
    """Never clean projects at or below PATH."""
    environment = Environment.detect()
    target = _settings_path(path, environment)
    if not target.exists():
        _fail(f"Path does not exist: {path}")

    settings = load_settings(environment, apply_env=False)
    if settings.protect(target):
        try:
            save_settings(settings, environment)
        except ConfigError as e:
            _fail(str(e))
        console.print(f"[green]Protected {target}[/green]")
    else:
        console.print(f"[dim]{target} is already protected[/dim]")


@app.command()
def unprotect(path: Path = typer.Argument(..., help="Path to remove from the protected list")) -> None:
    """Remove PATH from the protected list."""
    environment = Environment.detect()
    target = _settings_path(path, environment)

    settings = load_settings(environment, apply_env=False)
    if settings.unprotect(target):
        try:
            save_settings(settings, environment)
        except ConfigError as e:
            _fail(str(e))
        console.print(f"[green]Unprotected {target}[/green]")
    else:
        console.print(f"[yellow]{target} was not protected[/yellow]")


@app.command()
def tui(
    paths: Optional[list[Path]] = typer.Argument(None, help="Directories to scan (default: current)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Simulate cleanup without deleting"),
) -> None:
    """Launch interactive TUI interface."""
    environment = Environment.detect()
    settings = _load(environment)
    config = _scan_config(settings, environment, paths)
    try:
        from nulle.tui import run_tui
    except ImportError:
        console.print("[red]TUI not available.[/red]")
        console.print("Install with: [bold]pip install null-e[tui][/bold]")
        raise typer.Exit(1)

    run_tui(config, settings=settings, environment=environment, dry_run=dry_run)


if __name__ == "__main__":
    app()
