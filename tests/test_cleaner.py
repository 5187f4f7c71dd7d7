"""Tests for cleanup functionality."""

import os
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from nulle.cleaner import clean_items, delete_path, run_clean_command
from nulle.environment import Environment
from nulle.models import CleanableItem, DeleteMethod
from nulle.shell import CommandResult


def _write(path: Path, size: int) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)


class TestCleanerBase:
    @pytest.fixture(autouse=True)
    def workspace(self, tmp_path):
        self.home = tmp_path / "home"
        self.home.mkdir()
        self.work = tmp_path / "work"
        self.work.mkdir()
        self.env = Environment(home=self.home, cwd=self.work, platform="linux")

    def artifact(self, name: str = "node_modules", size: int = 100) -> Path:
        path = self.work / "app" / name
        _write(path / "pkg" / "index.js", size)
        return path


class TestDeletePath(TestCleanerBase):
    def test_nonexistent_path(self):
        result = delete_path(self.work / "missing", DeleteMethod.PERMANENT, self.env)
        assert result.success
        assert result.bytes_freed == 0

    def test_dry_run_does_not_delete(self):
        path = self.artifact(size=250)
        result = delete_path(path, DeleteMethod.PERMANENT, self.env, dry_run=True)
        assert path.exists()
        assert result.dry_run
        assert result.bytes_freed == 250
        assert result.files_deleted == 1

    def test_permanent_delete(self):
        path = self.artifact(size=250)
        result = delete_path(path, DeleteMethod.PERMANENT, self.env)
        assert not path.exists()
        assert result.success
        assert result.bytes_freed == 250

    def test_trash_delete(self):
        path = self.artifact(size=70)
        with patch("nulle.cleaner.send2trash") as trash:
            result = delete_path(path, DeleteMethod.TRASH, self.env)
        trash.assert_called_once_with(os.fspath(path))
        assert result.success
        assert result.method == DeleteMethod.TRASH
        assert result.bytes_freed == 70

    def test_trash_dry_run_does_not_call_trash(self):
        path = self.artifact()
        with patch("nulle.cleaner.send2trash") as trash:
            result = delete_path(path, DeleteMethod.TRASH, self.env, dry_run=True)
        trash.assert_not_called()
        assert result.dry_run

    def test_trash_blocked_path_not_trashed(self):
        docs = self.home / "Documents"
        docs.mkdir()
        with patch("nulle.cleaner.send2trash") as trash:
            result = delete_path(docs, DeleteMethod.TRASH, self.env)
        trash.assert_not_called()
        assert not result.success

    def test_trash_failure_reported(self):
        path = self.artifact()
        with patch("nulle.cleaner.send2trash", side_effect=OSError("no trash on this volume")):
            result = delete_path(path, DeleteMethod.TRASH, self.env)
        assert not result.success
        assert result.error.startswith("OS error")
        assert path.exists()

    def test_trash_permission_error_reported(self):
        path = self.artifact()
        with patch("nulle.cleaner.send2trash", side_effect=PermissionError("denied")):
            result = delete_path(path, DeleteMethod.TRASH, self.env)
        assert result.error.startswith("Permission denied")

    def test_deletes_single_file(self):
        path = self.work / "build.log"
        _write(path, 10)
        assert delete_path(path, DeleteMethod.PERMANENT, self.env).success
        assert not path.exists()

    def test_blocked_path(self):
        docs = self.home / "Documents"
        docs.mkdir()
        result = delete_path(docs, DeleteMethod.PERMANENT, self.env)
        assert not result.success
        assert "Blocked path" in result.error
        assert docs.exists()

    def test_home_is_blocked(self):
        result = delete_path(self.home, DeleteMethod.PERMANENT, self.env)
        assert not result.success
        assert self.home.exists()

    def test_permission_error_reported(self):
        path = self.artifact()
        with patch("nulle.cleaner.shutil.rmtree", side_effect=PermissionError("denied")):
            result = delete_path(path, DeleteMethod.PERMANENT, self.env)
        assert not result.success
        assert result.error.startswith("Permission denied")

    def test_os_error_reported(self):
        path = self.artifact()
        with patch("nulle.cleaner.shutil.rmtree", side_effect=OSError("busy")):
            result = delete_path(path, DeleteMethod.PERMANENT, self.env)
        assert result.error.startswith("OS error")


class TestRunCleanCommand:
    def test_success(self):
        shell = MagicMock(return_value=CommandResult("ok", "", 0))
        result = run_clean_command("npm cache clean --force", timeout=10, shell=shell)
        assert result.success
        shell.assert_called_once_with("npm cache clean --force", timeout=10)

    def test_timeout(self):
        shell = MagicMock(side_effect=subprocess.TimeoutExpired("npm", 10))
        result = run_clean_command("npm cache clean --force", shell=shell)
        assert not result.success
        assert result.returncode == -1
        assert "timed out" in result.stderr

    def test_launch_failure(self):
        shell = MagicMock(side_effect=FileNotFoundError("npm"))
        assert run_clean_command("npm cache clean", shell=shell).returncode == -1


class TestCleanItems(TestCleanerBase):
    def item(self, path: Path, **fields) -> CleanableItem:
        return CleanableItem(name=path.name, category="Test", path=path, **fields)

    def test_failure_does_not_abort_batch(self):
        blocked = self.home / "Desktop"
        blocked.mkdir()
        good = self.artifact(size=40)
        summary = clean_items(
            [self.item(blocked), self.item(good)], DeleteMethod.PERMANENT, self.env
        )
        assert summary.failure_count == 1
        assert summary.success_count == 1
        assert summary.bytes_freed == 40
        assert not good.exists()

    def test_progress_callback(self):
        paths = [self.artifact("a"), self.artifact("b")]
        calls = []
        clean_items(
            [self.item(p) for p in paths],
            DeleteMethod.PERMANENT,
            self.env,
            dry_run=True,
            progress_callback=lambda item, i, total: calls.append((item.name, i, total)),
        )
        assert calls == [("a", 1, 2), ("b", 2, 2)]

    def test_clean_commands_used_when_requested(self):
        path = self.artifact()
        item = self.item(path, clean_command="npm cache clean --force")
        with patch("nulle.cleaner.run_clean_command", return_value=CommandResult("", "", 0)) as run:
            summary = clean_items([item], DeleteMethod.TRASH, self.env, use_clean_commands=True)
        run.assert_called_once_with("npm cache clean --force")
        assert summary.success_count == 1
        assert path.exists()

    def test_failed_clean_command(self):
        item = self.item(self.artifact(), clean_command="npm cache clean --force")
        with patch("nulle.cleaner.run_clean_command", return_value=CommandResult("", "boom\n", 1)):
            summary = clean_items([item], DeleteMethod.TRASH, self.env, use_clean_commands=True)
        assert summary.results[0].error == "boom"

    def test_clean_commands_ignored_by_default(self):
        path = self.artifact()
        item = self.item(path, clean_command="npm cache clean --force")
        with patch("nulle.cleaner.run_clean_command") as run:
            clean_items([item], DeleteMethod.PERMANENT, self.env)
        run.assert_not_called()
        assert not path.exists()
