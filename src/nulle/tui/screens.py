"""TUI screens for null-e."""

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical
from textual.screen import Screen
from textual.widgets import Button, DataTable, Footer, Header, Static

from nulle.caches import project_items
from nulle.cleaner import clean_items
from nulle.display import safety_label
from nulle.models import CleanupSummary, DeleteMethod, format_size
from nulle.orchestrator import ScanComplete, ScanFailed, ScanProgress, start_scan
from nulle.safety import assess_project
from nulle.tui.widgets import ProjectDetail, ScanStatusBar

POLL_INTERVAL = 0.1


class MainScreen(Screen):
    """Project browser fed by a background scan."""

    BINDINGS = [
        Binding("space", "toggle_select", "Select"),
        Binding("a", "select_all_safe", "Select Safe"),
        Binding("u", "deselect_all", "Deselect All"),
        Binding("c", "cleanup", "Clean Selected"),
        Binding("p", "toggle_permanent", "Trash/Permanent"),
        Binding("r", "refresh", "Rescan"),
    ]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.receiver = None
        self.poll_timer = None

    def compose(self) -> ComposeResult:
        yield Header()

        with Container(id="main-container"):
            yield ScanStatusBar(id="status-bar")

            with Horizontal(id="content"):
                with Vertical(id="left-panel"):
                    yield DataTable(id="project-table")
                    yield Static("", id="selection-info")

                with Vertical(id="right-panel"):
                    yield ProjectDetail(id="project-detail")

        yield Footer()

    def on_mount(self) -> None:
        """Initialize the screen."""
        table = self.query_one("#project-table", DataTable)
        table.cursor_type = "row"
        table.add_column("", key="selected", width=3)
        table.add_columns("Project", "Kind", "Size", "Safety")
        self.refresh_data()

    def on_unmount(self) -> None:
        self._stop_scan()

    # -------------------------------------------------------------------------
    # Scanning
    # -------------------------------------------------------------------------

    def refresh_data(self) -> None:
        """Start a new scan; results arrive through the poll timer."""
        self._stop_scan()
        app = self.app
        app.result = None
        app.selected.clear()
        self.query_one("#project-table", DataTable).clear()
        self.query_one("#status-bar", ScanStatusBar).show_progress(0, "Starting scan...")

        self.receiver = start_scan(app.config, app.registry, environment=app.environment)
        self.poll_timer = self.set_interval(POLL_INTERVAL, self._poll)

    def _stop_scan(self) -> None:
        if self.poll_timer is not None:
            self.poll_timer.stop()
            self.poll_timer = None
        if self.receiver is not None:
            self.receiver.close()
            self.receiver = None

    def _poll(self) -> None:
        if self.receiver is None:
            return
        status = self.query_one("#status-bar", ScanStatusBar)
        for message in self.receiver.drain():
            if isinstance(message, ScanProgress):
                status.show_progress(message.dirs_scanned, message.message)
            elif isinstance(message, ScanComplete):
                self._stop_scan()
                self._show_result(message)
                return
            elif isinstance(message, ScanFailed):
                self._stop_scan()
                status.show_error(message.error)
                self.notify(message.error, severity="error", timeout=5)
                return

    def _show_result(self, message: ScanComplete) -> None:
        app = self.app
        app.result = message.result
        app.safeties = {
            p.id: assess_project(p, app.settings, registry=app.registry)
            for p in app.result.projects
        }
        self.query_one("#status-bar", ScanStatusBar).show_result(app.result)
        self._update_table()
        self.notify("Scan complete!", timeout=2)

    # -------------------------------------------------------------------------
    # Table and selection
    # -------------------------------------------------------------------------

    def _update_table(self) -> None:
        app = self.app
        table = self.query_one("#project-table", DataTable)
        table.clear()
        if app.result is None:
            return
        for project in app.result.projects:
            info = app.registry.kind_info(project.kind)
            table.add_row(
                self._checkbox(str(project.id)),
                project.name,
                f"{info.icon} {info.display_name}",
                project.size_human,
                safety_label(app.safeties[project.id]),
                key=str(project.id),
            )
        self._update_selection_info()

    def _checkbox(self, key: str) -> str:
        return "[green]X[/green]" if key in self.app.selected else "[ ]"

    def _cursor_key(self) -> str | None:
        table = self.query_one("#project-table", DataTable)
        if table.row_count == 0:
            return None
        return table.coordinate_to_cell_key(table.cursor_coordinate).row_key.value

    def _update_selection_info(self) -> None:
        app = self.app
        info = self.query_one("#selection-info", Static)
        method = "[red]permanent[/red]" if app.method == DeleteMethod.PERMANENT else "trash"

        projects = app.selected_projects()
        if not projects:
            info.update(f"[dim]No projects selected[/dim] ({method})")
            return
        total = sum(p.cleanable_size for p in projects)
        info.update(
            f"[bold]{len(projects)}[/bold] selected: [cyan]{format_size(total)}[/cyan] ({method})"
        )

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        """Show details when row is highlighted."""
        app = self.app
        if event.row_key is None or app.result is None:
            return
        project = next((p for p in app.result.projects if str(p.id) == event.row_key.value), None)
        if project is not None:
            detail = self.query_one("#project-detail", ProjectDetail)
            detail.show_project(project, app.safeties[project.id], app.registry)

    def action_toggle_select(self) -> None:
        """Toggle selection of current project."""
        key = self._cursor_key()
        if key is None:
            return
        app = self.app
        if key in app.selected:
            app.selected.remove(key)
        else:
            app.selected.add(key)
        self.query_one("#project-table", DataTable).update_cell(key, "selected", self._checkbox(key))
        self._update_selection_info()

    def action_select_all_safe(self) -> None:
        """Select every project whose safety verdict is Safe."""
        app = self.app
        if app.result is None:
            return
        for project in app.result.projects:
            if app.safeties[project.id].is_safe:
                app.selected.add(str(project.id))
        self._update_table()
        self.notify("Selected all safe projects")

    def action_deselect_all(self) -> None:
        self.app.selected.clear()
        self._update_table()
        self.notify("Cleared selection")

    def action_toggle_permanent(self) -> None:
        app = self.app
        app.method = DeleteMethod.TRASH if app.method == DeleteMethod.PERMANENT else DeleteMethod.PERMANENT
        self._update_selection_info()

    def action_refresh(self) -> None:
        self.refresh_data()

    def action_cleanup(self) -> None:
        """Open the confirmation screen for the selected projects."""
        app = self.app
        if not app.selected_projects():
            self.notify("No projects selected", severity="warning")
            return
        if any(app.safeties[p.id].is_blocked for p in app.selected_projects()):
            self.notify("Blocked projects in selection will be skipped", severity="warning")
        app.push_screen(CleanupScreen())


class CleanupScreen(Screen):
    """Cleanup confirmation and execution screen."""

    BINDINGS = [
        Binding("y", "confirm", "Yes, Clean"),
        Binding("n", "cancel", "Cancel"),
        Binding("escape", "cancel", "Cancel"),
    ]

    def compose(self) -> ComposeResult:
        yield Header()

        with Container(id="cleanup-container"):
            yield Static("[bold]Cleanup Preview[/bold]", id="cleanup-title")
            yield DataTable(id="cleanup-table")
            yield Static("", id="cleanup-total")

            with Horizontal(id="cleanup-buttons"):
                yield Button("Clean", variant="success", id="btn-clean")
                yield Button("Cancel", variant="default", id="btn-cancel")

            yield Static("", id="cleanup-status")

        yield Footer()

    def _targets(self):
        app = self.app
        return [p for p in app.selected_projects() if not app.safeties[p.id].is_blocked]

    def on_mount(self) -> None:
        """Initialize cleanup screen."""
        app = self.app
        table = self.query_one("#cleanup-table", DataTable)
        table.add_columns("Project", "Artifacts", "Size", "Safety")

        targets = self._targets()
        for project in targets:
            table.add_row(
                project.name,
                ", ".join(a.name for a in project.artifacts),
                project.size_human,
                safety_label(app.safeties[project.id]),
            )

        where = "moved to trash" if app.method == DeleteMethod.TRASH else "[red]permanently deleted[/red]"
        total = format_size(sum(p.cleanable_size for p in targets))
        self.query_one("#cleanup-total", Static).update(
            f"\n[bold]Total to clean: {total}[/bold] ({where})"
        )

        if app.dry_run:
            self.query_one("#cleanup-status", Static).update(
                "\n[yellow]DRY RUN - No files will be deleted[/yellow]"
            )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button presses."""
        if event.button.id == "btn-clean":
            self.action_confirm()
        elif event.button.id == "btn-cancel":
            self.action_cancel()

    def action_confirm(self) -> None:
        """Execute cleanup."""
        self.query_one("#cleanup-status", Static).update("\n[cyan]Cleaning...[/cyan]")
        self.query_one("#btn-clean", Button).disabled = True
        self.run_worker(self._execute_cleanup, thread=True)

    def _execute_cleanup(self) -> None:
        """Execute cleanup in background."""
        app = self.app
        items = project_items(app.result.model_copy(update={"projects": self._targets()}))
        summary = clean_items(items, app.method, app.environment, dry_run=app.dry_run)
        self.app.call_from_thread(self._show_results, summary)

    def _show_results(self, summary: CleanupSummary) -> None:
        """Show cleanup results."""
        freed = format_size(summary.bytes_freed)
        verb = "would be freed" if self.app.dry_run else "freed"
        failed = f", [red]{summary.failure_count} failed[/red]" if summary.failure_count else ""
        self.query_one("#cleanup-status", Static).update(
            f"\n[bold green]Cleanup complete![/bold green]\n"
            f"{summary.success_count} items cleaned, {freed} {verb}{failed}"
        )
        self.app.selected.clear()
        self.notify(f"Cleaned {freed}!", timeout=5)

    def action_cancel(self) -> None:
        """Return to main screen."""
        self.app.pop_screen()
