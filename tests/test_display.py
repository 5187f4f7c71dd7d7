"""Tests for display module."""

import logging
from datetime import timedelta
from pathlib import Path
from unittest.mock import patch

import pytest
from rich.console import Console
from rich.logging import RichHandler

from nulle.display import (
    configure_logging,
    confirm_action,
    safety_label,
    safety_level_label,
    show_cleanup_preview,
    show_cleanup_result,
    show_cleanup_summary,
    show_items,
    show_kinds,
    show_projects,
)
from nulle.models import (
    Artifact,
    BuiltinKind,
    CleanableItem,
    CleanBlock,
    CleanSafety,
    CleanupResult,
    CleanupSummary,
    CleanWarning,
    DeleteMethod,
    Project,
    SafetyLevel,
    ScanResult,
)
from nulle.plugins import PluginRegistry


def _project(name: str = "app", size: int = 2_500_000) -> Project:
    root = Path("/code") / name
    project = Project.new(BuiltinKind.NODE_NPM, root)
    project.artifacts = [Artifact(name="node_modules", path=root / "node_modules", size=size)]
    project.calculate_totals()
    return project


@pytest.fixture
def recorded():
    console = Console(record=True, width=200)
    with patch("nulle.display.console", console):
        yield console


class TestSafetyLabels:
    def test_safe(self):
        label = safety_label(CleanSafety.safe())
        assert "Safe" in label
        assert "green" in label

    def test_warning_shows_reason(self):
        label = safety_label(CleanSafety.warn(CleanWarning.NOT_GIT_REPO))
        assert "Not a git repository" in label
        assert "yellow" in label

    def test_blocked(self):
        label = safety_label(CleanSafety.blocked(CleanBlock.USER_PROTECTED))
        assert "red" in label

    def test_level_labels(self):
        assert "re-download" in safety_level_label(SafetyLevel.SAFE_WITH_COST)
        assert "Caution" in safety_level_label(SafetyLevel.CAUTION)


class TestShowProjects:
    def test_empty_result(self, recorded):
        show_projects(ScanResult(), {})
        assert "No projects" in recorded.export_text()

    def test_lists_projects(self, recorded):
        project = _project()
        result = ScanResult(
            projects=[project],
            total_cleanable=project.cleanable_size,
            directories_scanned=12,
            elapsed=timedelta(seconds=1.5),
        )
        show_projects(result, {project.id: CleanSafety.safe()}, PluginRegistry.with_builtins())
        output = recorded.export_text()
        assert "app" in output
        assert "Node.js (npm)" in output
        assert "2.5 MB" in output
        assert "1 projects, 2.5 MB cleanable" in output
        assert "12 directories" in output


class TestShowItems:
    def test_empty(self, recorded):
        show_items([])
        assert "Nothing found" in recorded.export_text()

    def test_lists_commands(self, recorded):
        item = CleanableItem(
            name="npm Cache",
            category="Node.js",
            path=Path("/home/dev/.npm/_cacache"),
            size=50_000_000,
            clean_command="npm cache clean --force",
        )
        show_items([item])
        output = recorded.export_text()
        assert "npm Cache" in output
        assert "Total: 50.0 MB" in output
        assert "npm cache clean --force" in output


class TestShowKinds:
    def test_lists_builtin_markers(self, recorded):
        show_kinds(PluginRegistry.with_builtins())
        output = recorded.export_text()
        assert "Cargo.toml" in output
        assert "target" in output


class TestCleanupViews:
    def test_preview(self, recorded):
        project = _project()
        show_cleanup_preview([project], {project.id: CleanSafety.safe()}, DeleteMethod.TRASH, dry_run=True)
        output = recorded.export_text()
        assert "DRY RUN" in output
        assert "moved to trash" in output

    def test_result_success(self, recorded):
        show_cleanup_result(CleanupResult(path=Path("/code/app/node_modules"), bytes_freed=1000))
        assert "1.0 KB" in recorded.export_text()

    def test_result_failure(self, recorded):
        show_cleanup_result(
            CleanupResult(path=Path("/code/app/node_modules"), success=False, error="Permission denied")
        )
        assert "Permission denied" in recorded.export_text()

    def test_summary_with_failures(self, recorded):
        summary = CleanupSummary(
            results=[
                CleanupResult(path=Path("/a"), bytes_freed=3000),
                CleanupResult(path=Path("/b"), success=False, error="boom"),
            ]
        )
        show_cleanup_summary(summary)
        output = recorded.export_text()
        assert "Cleanup Complete" in output
        assert "3.0 KB" in output
        assert "Failed" in output

    def test_dry_run_summary(self, recorded):
        show_cleanup_summary(CleanupSummary(), dry_run=True)
        assert "Would free" in recorded.export_text()


class TestConfirmAction:
    def test_delegates_to_rich(self):
        with patch("rich.prompt.Confirm.ask", return_value=True) as ask:
            assert confirm_action("Proceed?")
        ask.assert_called_once_with("Proceed?")


class TestConfigureLogging:
    def test_verbose_sets_debug(self):
        configure_logging(verbose=True)
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0], RichHandler)
        configure_logging(verbose=False)
        assert logging.getLogger().level == logging.WARNING
