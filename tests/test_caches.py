"""Tests for global cache detection."""

from datetime import timedelta
from pathlib import Path
from unittest.mock import MagicMock

from nulle.caches import (
    CACHES,
    TIME_MACHINE_SNAPSHOT_ESTIMATE,
    CacheDefinition,
    detect_caches,
    detect_time_machine_snapshots,
    get_all_caches,
    get_cache,
    project_items,
)
from nulle.environment import Environment
from nulle.models import Artifact, BuiltinKind, Project, SafetyLevel, ScanResult
from nulle.shell import CommandResult

MB = 1000**2


def _sparse(path: Path, size: int) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.truncate(size)


def _env(home: Path, platform: str = "linux") -> Environment:
    return Environment(home=home, cwd=home, platform=platform)


class TestCatalog:
    def test_ids_match_keys(self):
        for cache_id, definition in CACHES.items():
            assert definition.id == cache_id

    def test_paths_under_home(self):
        for definition in get_all_caches():
            assert all(p.startswith("~/") for p in definition.paths)

    def test_get_cache(self):
        assert get_cache("npm_cache").name == "npm Cache"
        assert get_cache("nope") is None


class TestDetectCaches:
    def test_finds_large_cache(self, tmp_path):
        _sparse(tmp_path / ".cache" / "pip" / "wheels" / "a.whl", 50 * MB)
        items = detect_caches(_env(tmp_path))
        assert len(items) == 1
        item = items[0]
        assert item.name == "pip Cache"
        assert item.path == tmp_path / ".cache" / "pip"
        assert item.size == 50 * MB
        assert item.clean_command == "pip cache purge"

    def test_skips_small_cache(self, tmp_path):
        _sparse(tmp_path / ".cache" / "pip" / "a.whl", 1 * MB)
        assert detect_caches(_env(tmp_path)) == []

    def test_sorted_by_size(self, tmp_path):
        _sparse(tmp_path / ".cache" / "pip" / "a.whl", 20 * MB)
        _sparse(tmp_path / ".cargo" / "registry" / "a.crate", 80 * MB)
        items = detect_caches(_env(tmp_path))
        assert [i.name for i in items] == ["Cargo Registry", "pip Cache"]
        assert items[0].safety == SafetyLevel.SAFE_WITH_COST

    def test_platform_specific_caches(self, tmp_path):
        _sparse(tmp_path / "Library" / "Caches" / "CocoaPods" / "x", 20 * MB)
        assert detect_caches(_env(tmp_path, "linux")) == []
        names = [i.name for i in detect_caches(_env(tmp_path, "darwin"))]
        assert "CocoaPods Cache" in names

    def test_custom_definitions_and_sizer(self, tmp_path):
        (tmp_path / ".mytool").mkdir()
        definition = CacheDefinition(id="mytool", name="My Tool", category="Tools", paths=["~/.mytool"])
        sizer = MagicMock(return_value=MagicMock(size=99 * MB, file_count=3))
        items = detect_caches(_env(tmp_path), definitions=[definition], sizer=sizer)
        assert items[0].size == 99 * MB
        assert items[0].file_count == 3


class TestTimeMachine:
    listing = "Snapshot dates for disk /:\n2024-01-01-120000\n2024-01-02-120000\n2024-01-03-120000\n"

    def test_estimates_per_snapshot(self, tmp_path):
        runner = MagicMock(return_value=CommandResult(self.listing, "", 0))
        items = detect_time_machine_snapshots(_env(tmp_path, "darwin"), runner=runner)
        assert len(items) == 1
        assert items[0].size == 3 * TIME_MACHINE_SNAPSHOT_ESTIMATE
        assert items[0].file_count == 3
        assert "3 snapshots" in items[0].name

    def test_not_macos(self, tmp_path):
        runner = MagicMock()
        assert detect_time_machine_snapshots(_env(tmp_path, "linux"), runner=runner) == []
        runner.assert_not_called()

    def test_no_snapshots(self, tmp_path):
        runner = MagicMock(return_value=CommandResult("Snapshot dates for disk /:\n", "", 0))
        assert detect_time_machine_snapshots(_env(tmp_path, "darwin"), runner=runner) == []

    def test_tmutil_missing(self, tmp_path):
        runner = MagicMock(side_effect=FileNotFoundError("tmutil"))
        assert detect_time_machine_snapshots(_env(tmp_path, "darwin"), runner=runner) == []


class TestProjectItems:
    def test_flattens_artifacts(self):
        project = Project.new(BuiltinKind.NODE_NPM, Path("/code/app"))
        project.artifacts = [
            Artifact(name="node_modules", path=Path("/code/app/node_modules"), size=500),
            Artifact(name="dist", path=Path("/code/app/dist"), size=0),
        ]
        project.calculate_totals()
        result = ScanResult(projects=[project], elapsed=timedelta(seconds=1))

        items = project_items(result)
        assert len(items) == 1
        assert items[0].path == Path("/code/app/node_modules")
        assert items[0].category == "Node.js (npm)"
        assert items[0].size == 500
