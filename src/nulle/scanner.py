"""Parallel project scanning for null-e.

Each directory visit is an independent task on a thread pool. A visit
classifies the directory through the plugin registry, builds a Project when a
marker matches, marks that project's artifact sub-paths as pruned, and hands
back the subdirectories still worth visiting. The coordinating thread merges
the per-visit outcomes into one ScanResult.
"""

import logging
import os
import threading
import time
from collections import Counter
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, NamedTuple, Optional

from nulle.builder import ProjectBuilder
from nulle.git import GitProber
from nulle.models import Project, ScanConfig, ScanIssue, ScanResult
from nulle.plugins import PluginRegistry

logger = logging.getLogger(__name__)

# checkpoint(directories_scanned, current_directory); may raise ScanCancelled
Checkpoint = Callable[[int, Path], None]


# =============================================================================
# Shared traversal state
# =============================================================================


class ProgressCounter:
    """Monotonically increasing counter, safe to read while workers update it."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        return self._value


class VisitedSet:
    """Directory identities already visited and paths pruned as artifacts.

    This is the only state workers contend on during traversal.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._identities: set[tuple[int, int]] = set()
        self._pruned: set[Path] = set()

    def claim(self, identity: tuple[int, int]) -> bool:
        """Record an identity; False if it was already claimed."""
        with self._lock:
            if identity in self._identities:
                return False
            self._identities.add(identity)
            return True

    def prune(self, paths: Iterable[Path]) -> None:
        """Mark paths as artifacts.

        Existing ones are also claimed by identity, so an alias reached
        through a followed symlink is pruned as well.
        """
        paths = list(paths)
        identities = []
        for path in paths:
            try:
                st = os.lstat(path)
            except OSError:
                continue
            identities.append((st.st_dev, st.st_ino))
        with self._lock:
            self._pruned.update(paths)
            self._identities.update(identities)

    def is_pruned(self, path: Path) -> bool:
        with self._lock:
            return path in self._pruned


class VisitState(str, Enum):
    """Terminal state of one directory visit."""

    NOT_PROJECT = "not_project"
    PROJECT = "project"
    PRUNED = "pruned"


class VisitTask(NamedTuple):
    path: Path
    root: Path
    depth: int


class VisitOutcome(NamedTuple):
    """Partial result owned by the worker that produced it."""

    state: VisitState
    project: Optional[Project] = None
    children: tuple[VisitTask, ...] = ()
    issues: tuple[ScanIssue, ...] = ()


# =============================================================================
# Scanner
# =============================================================================


class ParallelScanner:
    """Walks root paths with a bounded worker pool and collects Projects.

    Args:
        registry: Marker catalog; defaults to the built-in one
        prober: Git prober shared by all builds; built from the config when omitted
    """

    def __init__(
        self,
        registry: Optional[PluginRegistry] = None,
        prober: Optional[GitProber] = None,
    ) -> None:
        self.registry = registry or PluginRegistry.with_builtins()
        self.prober = prober
        self.progress = ProgressCounter()

    @property
    def directories_scanned(self) -> int:
        return self.progress.value

    def scan(self, config: ScanConfig, checkpoint: Optional[Checkpoint] = None) -> ScanResult:
        """
        Scan all configured roots.

        Args:
            config: Roots and traversal limits
            checkpoint: Called after every visit; raising ScanCancelled stops the scan

        Returns:
            ScanResult with projects ordered by cleanable size, largest first

        Raises:
            ConfigError: If a root is missing, not a directory, or none are given
            ScanCancelled: If the checkpoint cancelled the scan
        """
        roots = config.check_roots()
        started = time.monotonic()
        self.progress = ProgressCounter()
        builder = ProjectBuilder(self.registry, self.prober, config)
        visited = VisitedSet()

        projects: list[Project] = []
        issues: list[ScanIssue] = []
        states: Counter[VisitState] = Counter()

        def submit(pool: ThreadPoolExecutor, task: VisitTask) -> Future:
            return pool.submit(self._visit, task, builder, visited, config, checkpoint)

        with ThreadPoolExecutor(max_workers=config.threads, thread_name_prefix="nulle-scan") as pool:
            pending = {submit(pool, VisitTask(root, root, 0)) for root in roots}
            try:
                while pending:
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        outcome: VisitOutcome = future.result()
                        states[outcome.state] += 1
                        if outcome.project is not None:
                            projects.append(outcome.project)
                        issues.extend(outcome.issues)
                        for child in outcome.children:
                            pending.add(submit(pool, child))
            except BaseException:
                pool.shutdown(wait=False, cancel_futures=True)
                raise

        projects.sort(key=lambda p: p.cleanable_size, reverse=True)
        result = ScanResult(
            projects=projects,
            directories_scanned=self.progress.value,
            total_cleanable=sum(p.cleanable_size for p in projects),
            elapsed=timedelta(seconds=time.monotonic() - started),
            issues=issues,
        )
        logger.info(
            "Scanned %d directories, found %d projects, pruned %d (%d issues)",
            result.directories_scanned,
            len(projects),
            states[VisitState.PRUNED],
            len(issues),
        )
        return result

    # -------------------------------------------------------------------------
    # One directory visit (runs on a worker thread)
    # -------------------------------------------------------------------------

    def _visit(
        self,
        task: VisitTask,
        builder: ProjectBuilder,
        visited: VisitedSet,
        config: ScanConfig,
        checkpoint: Optional[Checkpoint],
    ) -> VisitOutcome:
        path = task.path
        try:
            st = os.stat(path)
        except OSError as e:
            logger.info("Skipping %s: %s", path, e)
            return VisitOutcome(VisitState.PRUNED, issues=(ScanIssue(path=path, message=str(e)),))

        if visited.is_pruned(path) or not visited.claim((st.st_dev, st.st_ino)):
            return VisitOutcome(VisitState.PRUNED)

        project = None
        state = VisitState.NOT_PROJECT
        issues: list[ScanIssue] = []
        try:
            marker = self.registry.resolve(path)
            if marker is not None:
                state = VisitState.PROJECT
                # Prune before listing children so none of them is handed out
                visited.prune(builder.artifact_paths(path, marker.kind))
                project = builder.build(path, marker)
        except OSError as e:
            logger.info("Cannot classify %s: %s", path, e)
            issues.append(ScanIssue(path=path, message=str(e)))

        children: list[VisitTask] = []
        if task.depth < config.max_depth:
            try:
                children = self._children(task, visited, config)
            except OSError as e:
                logger.info("Cannot list %s: %s", path, e)
                issues.append(ScanIssue(path=path, message=str(e)))

        scanned = self.progress.increment()
        if checkpoint is not None:
            checkpoint(scanned, path)

        return VisitOutcome(state, project, tuple(children), tuple(issues))

    def _children(self, task: VisitTask, visited: VisitedSet, config: ScanConfig) -> list[VisitTask]:
        children: list[VisitTask] = []
        with os.scandir(task.path) as entries:
            for entry in entries:
                name = entry.name
                if name in config.exclude_names:
                    continue
                if config.skip_hidden and name.startswith("."):
                    continue
                try:
                    if entry.is_symlink():
                        if not config.follow_symlinks:
                            continue
                        target = Path(os.path.realpath(entry.path))
                        if not target.is_relative_to(task.root):
                            continue
                    if not entry.is_dir(follow_symlinks=config.follow_symlinks):
                        continue
                except OSError:
                    continue
                child = Path(entry.path)
                if visited.is_pruned(child):
                    continue
                children.append(VisitTask(child, task.root, task.depth + 1))
        return children


def scan_projects(config: ScanConfig, registry: Optional[PluginRegistry] = None) -> ScanResult:
    """Synchronous scan: ``scan_projects(ScanConfig(roots=[Path("~/code")], max_depth=6))``."""
    return ParallelScanner(registry).scan(config)
