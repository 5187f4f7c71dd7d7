"""Tests for background scan jobs and the message channel."""

import gc
from pathlib import Path

import pytest

from nulle.environment import Environment
from nulle.errors import ChannelClosed, ScanCancelled
from nulle.models import ScanConfig
from nulle.orchestrator import (
    ScanComplete,
    ScanFailed,
    ScanMode,
    ScanProgress,
    _ProgressCheckpoint,
    channel,
    run_scan_job,
    start_scan,
)
from nulle.plugins import PluginRegistry
from nulle.scanner import ParallelScanner


def _rust_project(root: Path) -> None:
    (root / "Cargo.toml").write_text("[package]")
    (root / "target").mkdir()
    (root / "target" / "out").write_bytes(b"x" * 100)


def _collect(receiver) -> list:
    return list(receiver)


class TestChannel:
    def test_send_and_receive(self):
        sender, receiver = channel()
        sender.send(ScanProgress(3, "Scanning /x"))
        assert receiver.try_recv() == ScanProgress(3, "Scanning /x")
        assert receiver.try_recv() is None

    def test_recv_timeout(self):
        _, receiver = channel()
        assert receiver.recv(timeout=0.01) is None

    def test_drain(self):
        sender, receiver = channel()
        for i in range(3):
            sender.send(ScanProgress(i, "x"))
        assert [m.dirs_scanned for m in receiver.drain()] == [0, 1, 2]
        assert receiver.drain() == []

    def test_close_closes_sender(self):
        sender, receiver = channel()
        receiver.close()
        assert sender.is_closed
        assert receiver.closed
        with pytest.raises(ChannelClosed):
            sender.send(ScanProgress(0, "x"))

    def test_dropping_receiver_closes_channel(self):
        sender, receiver = channel()
        del receiver
        gc.collect()
        assert sender.is_closed

    def test_context_manager_closes(self):
        sender, receiver = channel()
        with receiver:
            pass
        assert sender.is_closed

    def test_iteration_stops_at_terminal_message(self):
        sender, receiver = channel()
        sender.send(ScanProgress(1, "x"))
        sender.send(ScanFailed("boom"))
        messages = _collect(receiver)
        assert messages == [ScanProgress(1, "x"), ScanFailed("boom")]
        assert receiver.finished


class TestProgressCheckpoint:
    def test_throttles_progress(self):
        sender, receiver = channel()
        checkpoint = _ProgressCheckpoint(sender, interval=60.0)
        for i in range(10):
            checkpoint(i, Path("/x"))
        assert len(receiver.drain()) == 1

    def test_closed_channel_cancels(self):
        sender, receiver = channel()
        checkpoint = _ProgressCheckpoint(sender, interval=0.0)
        receiver.close()
        with pytest.raises(ScanCancelled):
            checkpoint(1, Path("/x"))

    def test_closing_receiver_stops_workers(self, tmp_path):
        for i in range(300):
            (tmp_path / f"d{i:03d}").mkdir()
        sender, receiver = channel()
        progress = _ProgressCheckpoint(sender, interval=0.0)

        def checkpoint(scanned, path):
            if scanned == 10:
                receiver.close()
            progress(scanned, path)

        scanner = ParallelScanner(PluginRegistry.with_builtins())
        with pytest.raises(ScanCancelled):
            scanner.scan(ScanConfig(roots=[tmp_path], threads=2), checkpoint=checkpoint)
        assert scanner.directories_scanned < 301


class TestRunScanJob:
    def test_completes_with_result(self, tmp_path):
        _rust_project(tmp_path)
        sender, receiver = channel()
        run_scan_job(sender, ScanConfig(roots=[tmp_path]), progress_interval=0.0)

        messages = receiver.drain()
        assert isinstance(messages[-1], ScanComplete)
        assert len(messages[-1].result.projects) == 1
        assert messages[-1].items == []
        assert any(isinstance(m, ScanProgress) for m in messages)

    def test_config_error_becomes_failure(self, tmp_path):
        sender, receiver = channel()
        run_scan_job(sender, ScanConfig(roots=[tmp_path / "missing"]))
        messages = receiver.drain()
        assert isinstance(messages[-1], ScanFailed)
        assert "does not exist" in messages[-1].error

    def test_cancelled_job_sends_nothing_more(self, tmp_path):
        sender, receiver = channel()
        receiver.close()
        run_scan_job(sender, ScanConfig(roots=[tmp_path]))
        assert receiver.drain() == []

    def test_caches_mode(self, tmp_path):
        home = tmp_path / "home"
        cache = home / ".npm" / "_cacache"
        cache.mkdir(parents=True)
        with open(cache / "blob", "wb") as f:
            f.truncate(20 * 1000**2)
        env = Environment(home=home, cwd=tmp_path, platform="linux")

        sender, receiver = channel()
        run_scan_job(sender, ScanConfig(), mode=ScanMode.CACHES, environment=env)
        complete = receiver.drain()[-1]
        assert isinstance(complete, ScanComplete)
        assert complete.result is None
        assert [i.name for i in complete.items] == ["npm Cache"]

    def test_all_mode_flattens_projects(self, tmp_path):
        home = tmp_path / "home"
        home.mkdir()
        code = tmp_path / "code"
        code.mkdir()
        _rust_project(code)
        env = Environment(home=home, cwd=tmp_path, platform="linux")

        sender, receiver = channel()
        run_scan_job(sender, ScanConfig(roots=[code]), mode=ScanMode.ALL, environment=env)
        complete = receiver.drain()[-1]
        assert len(complete.result.projects) == 1
        assert [i.path.name for i in complete.items] == ["target"]


class TestStartScan:
    def test_returns_receiver_and_completes(self, tmp_path):
        _rust_project(tmp_path)
        receiver = start_scan(ScanConfig(roots=[tmp_path]))
        messages = _collect(receiver)
        assert isinstance(messages[-1], ScanComplete)
        assert messages[-1].result.projects[0].root == tmp_path.resolve()

    def test_failure_is_reported(self, tmp_path):
        receiver = start_scan(ScanConfig(roots=[tmp_path / "missing"]))
        messages = _collect(receiver)
        assert isinstance(messages[-1], ScanFailed)
