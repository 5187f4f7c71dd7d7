"""Background scan jobs reporting over a one-way channel.

``start_scan`` spawns a thread and returns a ScanReceiver immediately. The
consumer drains messages at its own pace (a UI tick, a CLI loop). Closing or
dropping the receiver closes the channel; the scan notices at its next
checkpoint and stops.
"""

import logging
import queue
import threading
import time
import weakref
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Union

from nulle.caches import detect_caches, detect_time_machine_snapshots, project_items
from nulle.environment import Environment
from nulle.errors import ChannelClosed, ConfigError, ScanCancelled
from nulle.models import CleanableItem, ScanConfig, ScanResult
from nulle.plugins import PluginRegistry
from nulle.scanner import ParallelScanner

logger = logging.getLogger(__name__)

DEFAULT_PROGRESS_INTERVAL = 0.1


# =============================================================================
# Messages
# =============================================================================


@dataclass(frozen=True, slots=True)
class ScanProgress:
    dirs_scanned: int
    message: str


@dataclass(frozen=True, slots=True)
class ScanComplete:
    """Terminal message. ``result`` is None for cache-only scans."""

    result: Optional[ScanResult]
    items: list[CleanableItem] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ScanFailed:
    """Terminal message carrying a fatal error."""

    error: str


ScanMessage = Union[ScanProgress, ScanComplete, ScanFailed]


# =============================================================================
# Channel
# =============================================================================


class _Channel:
    def __init__(self) -> None:
        self.queue: "queue.SimpleQueue[ScanMessage]" = queue.SimpleQueue()
        self.closed = threading.Event()

    def close(self) -> None:
        self.closed.set()


class ScanSender:
    """Producer end; safe to use from many threads."""

    def __init__(self, channel: _Channel) -> None:
        self._channel = channel

    @property
    def is_closed(self) -> bool:
        return self._channel.closed.is_set()

    def send(self, message: ScanMessage) -> None:
        if self._channel.closed.is_set():
            raise ChannelClosed("Receiver is gone")
        self._channel.queue.put(message)


class ScanReceiver:
    """Consumer end. Closing it, or letting it be garbage collected, cancels the scan."""

    def __init__(self, channel: _Channel) -> None:
        self._channel = channel
        self._finalizer = weakref.finalize(self, channel.close)
        self.finished = False

    def try_recv(self) -> Optional[ScanMessage]:
        try:
            message = self._channel.queue.get_nowait()
        except queue.Empty:
            return None
        self._note(message)
        return message

    def recv(self, timeout: Optional[float] = None) -> Optional[ScanMessage]:
        """Block up to ``timeout`` seconds; None if nothing arrived."""
        try:
            message = self._channel.queue.get(timeout=timeout)
        except queue.Empty:
            return None
        self._note(message)
        return message

    def drain(self) -> list[ScanMessage]:
        """All messages currently queued, without blocking."""
        messages = []
        while (message := self.try_recv()) is not None:
            messages.append(message)
        return messages

    def __iter__(self) -> Iterator[ScanMessage]:
        """Yield messages until the terminal one."""
        while not self.finished:
            message = self.recv(timeout=0.5)
            if message is not None:
                yield message

    def _note(self, message: ScanMessage) -> None:
        if isinstance(message, (ScanComplete, ScanFailed)):
            self.finished = True

    def close(self) -> None:
        self._finalizer()

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def __enter__(self) -> "ScanReceiver":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def channel() -> tuple[ScanSender, ScanReceiver]:
    ch = _Channel()
    return ScanSender(ch), ScanReceiver(ch)


# =============================================================================
# Jobs
# =============================================================================


class ScanMode(str, Enum):
    PROJECTS = "projects"
    CACHES = "caches"
    ALL = "all"


class _ProgressCheckpoint:
    """Scanner checkpoint that reports progress and turns channel closure into ScanCancelled."""

    def __init__(self, sender: ScanSender, interval: float) -> None:
        self._sender = sender
        self._interval = interval
        self._lock = threading.Lock()
        self._last: Optional[float] = None

    def __call__(self, dirs_scanned: int, path) -> None:
        if self._sender.is_closed:
            raise ScanCancelled()
        now = time.monotonic()
        with self._lock:
            if self._last is not None and now - self._last < self._interval:
                return
            self._last = now
        try:
            self._sender.send(ScanProgress(dirs_scanned, f"Scanning {path}"))
        except ChannelClosed as e:
            raise ScanCancelled() from e


def run_scan_job(
    sender: ScanSender,
    config: ScanConfig,
    registry: Optional[PluginRegistry] = None,
    mode: ScanMode = ScanMode.PROJECTS,
    environment: Optional[Environment] = None,
    progress_interval: float = DEFAULT_PROGRESS_INTERVAL,
) -> None:
    """Body of a scan job; sends exactly one terminal message unless cancelled."""
    checkpoint = _ProgressCheckpoint(sender, progress_interval)
    try:
        items: list[CleanableItem] = []
        result: Optional[ScanResult] = None

        if mode in (ScanMode.CACHES, ScanMode.ALL):
            sender.send(ScanProgress(0, "Scanning global caches..."))
            env = environment or Environment.detect()
            items.extend(detect_caches(env))
            items.extend(detect_time_machine_snapshots(env))

        if mode in (ScanMode.PROJECTS, ScanMode.ALL):
            sender.send(ScanProgress(0, "Scanning for development projects..."))
            result = ParallelScanner(registry).scan(config, checkpoint=checkpoint)
            if mode is ScanMode.ALL:
                items.extend(project_items(result))
                items.sort(key=lambda i: i.size, reverse=True)

        sender.send(ScanComplete(result, items))
    except (ScanCancelled, ChannelClosed):
        logger.debug("Scan cancelled by consumer")
    except ConfigError as e:
        _send_failure(sender, str(e))
    except Exception as e:
        logger.exception("Scan failed")
        _send_failure(sender, str(e))


def _send_failure(sender: ScanSender, error: str) -> None:
    try:
        sender.send(ScanFailed(error))
    except ChannelClosed:
        pass


def start_scan(
    config: ScanConfig,
    registry: Optional[PluginRegistry] = None,
    mode: ScanMode = ScanMode.PROJECTS,
    environment: Optional[Environment] = None,
    progress_interval: float = DEFAULT_PROGRESS_INTERVAL,
) -> ScanReceiver:
    """Spawn a scan thread and return the receiving end of its channel."""
    sender, receiver = channel()
    thread = threading.Thread(
        target=run_scan_job,
        args=(sender, config, registry, mode, environment, progress_interval),
        name="nulle-scan-job",
        daemon=True,
    )
    thread.start()
    return receiver
