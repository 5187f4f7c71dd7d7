"""Custom widgets for the null-e TUI."""

from typing import Optional

from textual.app import ComposeResult
from textual.containers import VerticalScroll
from textual.reactive import reactive
from textual.widgets import Static

from nulle.display import safety_label
from nulle.models import CleanSafety, Project, ScanResult
from nulle.plugins import PluginRegistry


class ScanStatusBar(Static):
    """Scan progress while running, totals once complete."""

    dirs_scanned: reactive[int] = reactive(0)
    message: reactive[str] = reactive("Starting scan...")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.result: Optional[ScanResult] = None
        self.error: Optional[str] = None

    def show_progress(self, dirs_scanned: int, message: str) -> None:
        self.result = None
        self.error = None
        self.dirs_scanned = dirs_scanned
        self.message = message

    def show_result(self, result: ScanResult) -> None:
        self.result = result
        self.refresh()

    def show_error(self, error: str) -> None:
        self.error = error
        self.refresh()

    def render(self) -> str:
        """Render the status line."""
        if self.error:
            return f"[bold red]Scan failed:[/bold red] {self.error}"
        if self.result is None:
            return f"[cyan]⠿ {self.message}[/cyan]\n[dim]{self.dirs_scanned} directories scanned[/dim]"
        r = self.result
        return (
            f"[bold]{len(r.projects)} projects[/bold], "
            f"[cyan]{r.total_human}[/cyan] cleanable\n"
            f"[dim]{r.directories_scanned} directories in {r.elapsed.total_seconds():.1f}s[/dim]"
        )


class ProjectDetail(VerticalScroll):
    """Panel showing one project's artifacts, git state and safety."""

    def compose(self) -> ComposeResult:
        yield Static("Select a project to see details", id="detail-content")

    def show_project(self, project: Project, safety: CleanSafety, registry: PluginRegistry) -> None:
        info = registry.kind_info(project.kind)
        parts = [
            f"[bold]{info.icon} {project.name}[/bold]",
            f"{info.display_name}",
            f"[dim]{project.root}[/dim]",
            "",
            f"Safety: {safety_label(safety)}",
            "",
            "[bold cyan]Artifacts[/bold cyan]",
        ]
        for artifact in project.artifacts:
            partial = " [yellow](partial)[/yellow]" if artifact.partial else ""
            parts.append(f"  {artifact.name}: {artifact.size_human}{partial}")

        status = project.git_status
        if status is not None:
            parts.append("")
            parts.append("[bold cyan]Git[/bold cyan]")
            parts.append(f"  Branch: {status.branch or '-'}")
            if status.remote:
                parts.append(f"  Remote: {status.remote}")
            if status.has_uncommitted:
                parts.append(f"  [yellow]{len(status.dirty_paths)} uncommitted paths[/yellow]")
            if status.has_untracked:
                parts.append("  [yellow]Untracked files[/yellow]")
            if status.has_stashed:
                parts.append("  [dim]Stash entries present[/dim]")

        if project.last_modified is not None:
            parts.append("")
            parts.append(f"[dim]Last modified: {project.last_modified:%Y-%m-%d %H:%M}[/dim]")

        self.query_one("#detail-content", Static).update("\n".join(parts))
