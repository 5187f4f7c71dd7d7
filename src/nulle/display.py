"""Rich terminal display for null-e."""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from nulle.models import (
    CleanableItem,
    CleanSafety,
    CleanupResult,
    CleanupSummary,
    DeleteMethod,
    Project,
    ProjectId,
    SafetyLevel,
    SafetyVerdict,
    ScanResult,
    format_size,
)
from nulle.plugins import PluginRegistry

console = Console()
error_console = Console(stderr=True)


def configure_logging(verbose: bool = False) -> None:
    """Send log records through rich; only warnings unless verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=error_console, show_path=verbose, rich_tracebacks=True)],
        force=True,
    )


def safety_label(safety: CleanSafety) -> str:
    """Get styled label for a project safety verdict."""
    if safety.verdict == SafetyVerdict.SAFE:
        return "[green]✓ Safe[/green]"
    if safety.verdict == SafetyVerdict.WARNING:
        return f"[yellow]! {safety.reason}[/yellow]"
    return f"[red]✗ {safety.reason}[/red]"


def safety_level_label(level: SafetyLevel) -> str:
    """Get styled label for a cleanable item's risk."""
    labels = {
        SafetyLevel.SAFE: "[green]Safe[/green]",
        SafetyLevel.SAFE_WITH_COST: "[cyan]Safe (re-download)[/cyan]",
        SafetyLevel.CAUTION: "[yellow]Caution[/yellow]",
        SafetyLevel.DANGEROUS: "[red]Dangerous[/red]",
    }
    return labels.get(level, "Unknown")


def show_projects(
    result: ScanResult,
    safeties: dict[ProjectId, CleanSafety],
    registry: Optional[PluginRegistry] = None,
) -> None:
    """Display the projects found by a scan."""
    if not result.projects:
        console.print("[yellow]No projects with cleanable artifacts found.[/yellow]")
        return

    table = Table(title="Projects", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Project", style="bold")
    table.add_column("Kind")
    table.add_column("Size", justify="right")
    table.add_column("Artifacts")
    table.add_column("Safety")

    for project in result.projects:
        info = registry.kind_info(project.kind) if registry else None
        table.add_row(
            info.icon if info else project.kind.icon,
            project.name,
            info.display_name if info else project.kind.display_name,
            project.size_human,
            ", ".join(a.name for a in project.artifacts),
            safety_label(safeties[project.id]) if project.id in safeties else "",
        )

    console.print(table)
    console.print(
        f"\n[bold]{len(result.projects)} projects, {result.total_human} cleanable[/bold] "
        f"[dim]({result.directories_scanned} directories in "
        f"{result.elapsed.total_seconds():.1f}s)[/dim]"
    )
    if result.issues:
        console.print(f"[dim]{len(result.issues)} directories could not be read[/dim]")


def show_items(items: list[CleanableItem], title: str = "Caches") -> None:
    """Display cleanable items (global caches and flattened artifacts)."""
    if not items:
        console.print("[yellow]Nothing found.[/yellow]")
        return

    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Name", style="bold")
    table.add_column("Category")
    table.add_column("Size", justify="right")
    table.add_column("Risk")
    table.add_column("Path")

    for item in items:
        table.add_row(
            item.icon,
            item.name,
            item.category,
            item.size_human,
            safety_level_label(item.safety),
            str(item.path),
        )

    console.print(table)
    console.print(f"\n[bold]Total: {format_size(sum(i.size for i in items))}[/bold]")

    commands = [i for i in items if i.clean_command]
    if commands:
        console.print("\n[dim]Native cleanup commands:[/dim]")
        for item in commands:
            console.print(f"  [dim]{item.name}:[/dim] [bold]{item.clean_command}[/bold]")


def show_kinds(registry: PluginRegistry) -> None:
    """Display the marker catalog."""
    table = Table(title="Project Markers", show_header=True, header_style="bold")
    table.add_column("Kind")
    table.add_column("Marker")
    table.add_column("Priority", justify="right")
    table.add_column("Artifacts")

    for marker in registry.markers:
        info = registry.kind_info(marker.kind)
        table.add_row(
            f"{info.icon} {info.display_name}",
            str(marker.indicator),
            str(marker.priority),
            ", ".join(registry.cleanable_paths(marker.kind)) or "[dim]-[/dim]",
        )

    console.print(table)


def show_cleanup_preview(
    projects: list[Project],
    safeties: dict[ProjectId, CleanSafety],
    method: DeleteMethod,
    dry_run: bool = False,
) -> None:
    """Display cleanup preview."""
    if dry_run:
        console.print("[yellow]DRY RUN - No files will be deleted[/yellow]\n")

    table = Table(title="Cleanup Preview", show_header=True, header_style="bold")
    table.add_column("Project")
    table.add_column("Artifacts")
    table.add_column("Size", justify="right")
    table.add_column("Safety")

    for project in projects:
        table.add_row(
            project.name,
            ", ".join(a.name for a in project.artifacts),
            project.size_human,
            safety_label(safeties[project.id]),
        )

    console.print(table)
    total = sum(p.cleanable_size for p in projects)
    where = "moved to trash" if method == DeleteMethod.TRASH else "permanently deleted"
    console.print(f"\n[bold]Total to clean: {format_size(total)}[/bold] [dim]({where})[/dim]")


def show_scanning_progress() -> Progress:
    """Create a spinner for scans of unknown size."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TextColumn("[dim]{task.completed} dirs[/dim]"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


def show_cleanup_result(result: CleanupResult) -> None:
    """Display result of a single cleanup operation."""
    if result.success:
        console.print(f"  [green]✓[/green] {result.path}: {format_size(result.bytes_freed)}")
    else:
        console.print(f"  [red]✗[/red] {result.path}: {result.error}")


def show_cleanup_summary(summary: CleanupSummary, dry_run: bool = False) -> None:
    """Display cleanup summary."""
    console.print()
    title = "Dry Run Complete" if dry_run else "Cleanup Complete"

    table = Table(show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Would free" if dry_run else "Space freed", format_size(summary.bytes_freed))
    table.add_row("Items cleaned", str(summary.success_count))
    if summary.failure_count > 0:
        table.add_row("[red]Failed[/red]", str(summary.failure_count))

    console.print(Panel(table, title=title, border_style="green" if not summary.failure_count else "yellow"))


def confirm_action(message: str) -> bool:
    """Ask for confirmation."""
    from rich.prompt import Confirm

    return Confirm.ask(message)
