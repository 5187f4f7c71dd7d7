"""Tests for project construction and directory sizing."""

import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from nulle.builder import ProjectBuilder, measure_directory
from nulle.git import GitProber
from nulle.markers import FileMarker, ProjectMarker
from nulle.models import BuiltinKind, GitStatus, ScanConfig
from nulle.plugins import PluginRegistry


def _write(path: Path, size: int) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)


def _prober(status: GitStatus = GitStatus()) -> GitProber:
    prober = MagicMock(spec=GitProber)
    prober.probe.return_value = status
    return prober


class TestMeasureDirectory:
    def test_sums_nested_files(self, tmp_path):
        _write(tmp_path / "a.txt", 100)
        _write(tmp_path / "sub" / "b.txt", 200)
        _write(tmp_path / "sub" / "deeper" / "c.txt", 300)

        measured = measure_directory(tmp_path)
        assert measured.size == 600
        assert measured.file_count == 3
        assert measured.dir_count == 2
        assert not measured.partial

    def test_single_file(self, tmp_path):
        _write(tmp_path / "a.bin", 42)
        measured = measure_directory(tmp_path / "a.bin")
        assert measured.size == 42
        assert measured.file_count == 1

    def test_missing_path_is_partial(self, tmp_path):
        measured = measure_directory(tmp_path / "missing")
        assert measured.size == 0
        assert measured.partial

    def test_symlinks_not_followed_by_default(self, tmp_path):
        _write(tmp_path / "outside" / "big.bin", 1000)
        (tmp_path / "tree").mkdir()
        os.symlink(tmp_path / "outside", tmp_path / "tree" / "link")
        assert measure_directory(tmp_path / "tree").size == 0

    def test_symlink_cycle_terminates(self, tmp_path):
        _write(tmp_path / "tree" / "a.txt", 10)
        os.symlink(tmp_path / "tree", tmp_path / "tree" / "loop")
        measured = measure_directory(tmp_path / "tree", follow_symlinks=True)
        assert measured.size == 10

    def test_hard_links_counted_once(self, tmp_path):
        _write(tmp_path / "a.bin", 500)
        os.link(tmp_path / "a.bin", tmp_path / "b.bin")
        assert measure_directory(tmp_path).size == 500

    def test_depth_limit_marks_partial(self, tmp_path):
        _write(tmp_path / "1" / "2" / "3" / "deep.txt", 10)
        measured = measure_directory(tmp_path, max_depth=1)
        assert measured.partial
        assert measured.size == 0


class TestProjectBuilder:
    marker = ProjectMarker(indicator=FileMarker(name="Cargo.toml"), kind=BuiltinKind.RUST, priority=10)

    def _repo(self, tmp_path: Path) -> Path:
        repo = tmp_path / "repo"
        (repo / ".git").mkdir(parents=True)
        (repo / "Cargo.toml").write_text("[package]")
        _write(repo / "target" / "debug" / "app", 2000)
        return repo

    def test_builds_rust_project(self, tmp_path):
        repo = self._repo(tmp_path)
        builder = ProjectBuilder(PluginRegistry.with_builtins(), _prober())
        project = builder.build(repo, self.marker)

        assert project.kind == BuiltinKind.RUST
        assert project.root == repo.resolve()
        assert [a.name for a in project.artifacts] == ["target"]
        assert project.artifacts[0].size == 2000
        assert project.cleanable_size == 2000
        assert project.total_size == sum(a.size for a in project.artifacts)
        assert project.last_modified is not None

    def test_no_artifacts_returns_none(self, tmp_path):
        (tmp_path / "Cargo.toml").write_text("[package]")
        builder = ProjectBuilder(PluginRegistry.with_builtins(), _prober())
        assert builder.build(tmp_path, self.marker) is None

    def test_include_empty_keeps_project(self, tmp_path):
        (tmp_path / "Cargo.toml").write_text("[package]")
        builder = ProjectBuilder(
            PluginRegistry.with_builtins(), _prober(), ScanConfig(include_empty=True)
        )
        project = builder.build(tmp_path, self.marker)
        assert project is not None
        assert project.cleanable_size == 0

    def test_attaches_repo_status(self, tmp_path):
        repo = self._repo(tmp_path)
        status = GitStatus(is_repo=True, branch="main")
        project = ProjectBuilder(PluginRegistry.with_builtins(), _prober(status)).build(repo, self.marker)
        assert project.git_status == status

    def test_non_repo_status_not_attached(self, tmp_path):
        repo = self._repo(tmp_path)
        project = ProjectBuilder(PluginRegistry.with_builtins(), _prober()).build(repo, self.marker)
        assert project.git_status is None

    def test_symlinked_artifact_skipped(self, tmp_path):
        _write(tmp_path / "elsewhere" / "big.bin", 5000)
        repo = tmp_path / "repo"
        repo.mkdir()
        (repo / "Cargo.toml").write_text("[package]")
        os.symlink(tmp_path / "elsewhere", repo / "target")
        builder = ProjectBuilder(PluginRegistry.with_builtins(), _prober())
        assert builder.build(repo, self.marker) is None

    def test_nested_artifact_not_double_counted(self, tmp_path):
        registry = PluginRegistry()
        registry.register_artifacts(BuiltinKind.RUST, ["target", "target/debug"])
        repo = self._repo(tmp_path)
        project = ProjectBuilder(registry, _prober()).build(repo, self.marker)
        assert [a.name for a in project.artifacts] == ["target"]
        assert project.cleanable_size == 2000

    def test_artifact_paths(self, tmp_path):
        builder = ProjectBuilder(PluginRegistry.with_builtins(), _prober())
        assert builder.artifact_paths(tmp_path, BuiltinKind.RUST) == [tmp_path / "target"]

    def test_unsearchable_artifact_check_does_not_raise(self, tmp_path):
        repo = self._repo(tmp_path)
        denied = PermissionError(13, "Permission denied")
        with patch.object(Path, "is_symlink", side_effect=denied), patch.object(
            Path, "exists", side_effect=denied
        ):
            project = ProjectBuilder(PluginRegistry.with_builtins(), _prober()).build(repo, self.marker)
        assert [a.name for a in project.artifacts] == ["target"]
