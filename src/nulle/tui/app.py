"""Main TUI application for null-e."""

from typing import Optional

from textual.app import App
from textual.binding import Binding

from nulle.config import Settings
from nulle.environment import Environment
from nulle.models import CleanSafety, DeleteMethod, Project, ProjectId, ScanConfig, ScanResult
from nulle.plugins import PluginRegistry
from nulle.tui.screens import MainScreen


class NullEApp(App):
    """Interactive project cleanup application."""

    TITLE = "null-e"
    SUB_TITLE = "Development Artifact Cleanup"

    CSS_PATH = "styles.tcss"

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("?", "help", "Help"),
        Binding("escape", "back", "Back", show=False),
    ]

    def __init__(
        self,
        config: ScanConfig,
        settings: Optional[Settings] = None,
        environment: Optional[Environment] = None,
        registry: Optional[PluginRegistry] = None,
        dry_run: bool = False,
    ):
        super().__init__()
        self.config = config
        self.settings = settings or Settings()
        self.environment = environment or Environment.detect()
        self.registry = registry or PluginRegistry.with_builtins()
        self.dry_run = dry_run
        self.method: DeleteMethod = self.settings.delete_method
        self.result: Optional[ScanResult] = None
        self.safeties: dict[ProjectId, CleanSafety] = {}
        self.selected: set[str] = set()

    def selected_projects(self) -> list[Project]:
        if self.result is None:
            return []
        return [p for p in self.result.projects if str(p.id) in self.selected]

    def on_mount(self) -> None:
        """Called when the app is mounted."""
        self.push_screen(MainScreen())

    def action_back(self) -> None:
        """Go back to previous screen."""
        if len(self.screen_stack) > 2:
            self.pop_screen()

    def action_help(self) -> None:
        """Show help information."""
        self.notify(
            "Arrows to navigate, Space to select, C to clean selected, P to toggle permanent deletion, R to rescan",
            title="Help",
            timeout=5,
        )


def run_tui(
    config: ScanConfig,
    settings: Optional[Settings] = None,
    environment: Optional[Environment] = None,
    dry_run: bool = False,
) -> None:
    """Run the interactive TUI.

    Args:
        config: Roots and limits for the scan
        settings: User settings (protected paths, default delete method)
        environment: Home and trash locations
        dry_run: If True, don't actually delete files
    """
    app = NullEApp(config, settings=settings, environment=environment, dry_run=dry_run)
    app.run()
