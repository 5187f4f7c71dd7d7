"""Project construction: artifacts, sizes, timestamps and git status."""

import logging
import os
import stat
from datetime import datetime
from pathlib import Path
from typing import NamedTuple, Optional

from nulle.git import GitProber
from nulle.markers import ProjectMarker
from nulle.models import Artifact, Project, ProjectKind, ScanConfig
from nulle.plugins import PluginRegistry

logger = logging.getLogger(__name__)


class DirectorySize(NamedTuple):
    size: int
    file_count: int
    dir_count: int
    partial: bool


def measure_directory(
    path: Path,
    max_depth: int = 64,
    follow_symlinks: bool = False,
) -> DirectorySize:
    """
    Total up a directory tree with os.scandir.

    Directories are tracked by (st_dev, st_ino) so a tree entered twice,
    through a symlink cycle or a bind mount, is walked only once. Hard-linked
    files are counted once. Unreadable entries set ``partial`` instead of
    failing.

    Args:
        path: File or directory to measure
        max_depth: Deepest level walked; anything below sets ``partial``
        follow_symlinks: Descend through directory symlinks

    Returns:
        DirectorySize(size, file_count, dir_count, partial)
    """
    try:
        top = os.stat(path) if follow_symlinks else os.lstat(path)
    except OSError:
        return DirectorySize(0, 0, 0, True)

    if stat.S_ISREG(top.st_mode):
        return DirectorySize(top.st_size, 1, 0, False)
    if not stat.S_ISDIR(top.st_mode):
        return DirectorySize(0, 0, 0, False)

    total_size = 0
    file_count = 0
    dir_count = 0
    partial = False
    seen_dirs: set[tuple[int, int]] = {(top.st_dev, top.st_ino)}
    seen_files: set[tuple[int, int]] = set()
    stack: list[tuple[str, int]] = [(os.fspath(path), 0)]

    while stack:
        current, depth = stack.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        if entry.is_dir(follow_symlinks=follow_symlinks):
                            st = entry.stat(follow_symlinks=follow_symlinks)
                            key = (st.st_dev, st.st_ino)
                            if st.st_ino and key in seen_dirs:
                                continue
                            seen_dirs.add(key)
                            dir_count += 1
                            if depth + 1 > max_depth:
                                partial = True
                                continue
                            stack.append((entry.path, depth + 1))
                        elif entry.is_file(follow_symlinks=False):
                            st = entry.stat(follow_symlinks=False)
                            if st.st_nlink > 1 and st.st_ino:
                                key = (st.st_dev, st.st_ino)
                                if key in seen_files:
                                    continue
                                seen_files.add(key)
                            total_size += st.st_size
                            file_count += 1
                    except OSError:
                        partial = True
        except OSError:
            partial = True

    return DirectorySize(total_size, file_count, dir_count, partial)


def _mtime(path: Path) -> Optional[float]:
    try:
        return os.stat(path).st_mtime
    except OSError:
        return None


class ProjectBuilder:
    """Turns a (directory, winning marker) pair into a Project.

    Args:
        registry: Source of cleanable sub-paths per kind
        prober: Git status prober; built from the config when omitted
        config: Scan configuration (size walk limits, unfiltered listing)
    """

    def __init__(
        self,
        registry: PluginRegistry,
        prober: Optional[GitProber] = None,
        config: Optional[ScanConfig] = None,
    ) -> None:
        self.registry = registry
        self.config = config or ScanConfig()
        self.prober = prober or GitProber(
            timeout=self.config.git_timeout,
            max_dirty_paths=self.config.max_dirty_paths,
        )

    def artifact_paths(self, directory: Path, kind: ProjectKind) -> list[Path]:
        """Absolute paths of the kind's cleanable sub-paths under ``directory``."""
        return [directory / rel for rel in self.registry.cleanable_paths(kind)]

    def _artifacts(self, directory: Path, kind: ProjectKind) -> list[Artifact]:
        artifacts: list[Artifact] = []
        for rel in self.registry.cleanable_paths(kind):
            path = directory / rel
            # Never measure (or later delete) through a symlink
            if os.path.islink(path) or not os.path.exists(path):
                continue
            if any(path.is_relative_to(a.path) for a in artifacts):
                continue
            measured = measure_directory(
                path,
                max_depth=self.config.size_max_depth,
                follow_symlinks=self.config.follow_symlinks,
            )
            if measured.partial:
                logger.debug("Partial size for %s", path)
            artifacts.append(
                Artifact(
                    name=rel,
                    path=path,
                    size=measured.size,
                    file_count=measured.file_count,
                    partial=measured.partial,
                )
            )
        return artifacts

    def _last_modified(self, directory: Path, marker: ProjectMarker) -> Optional[datetime]:
        times = [_mtime(directory)]
        times.extend(_mtime(p) for p in marker.indicator.matched_paths(directory))
        known = [t for t in times if t is not None]
        return datetime.fromtimestamp(max(known)) if known else None

    def build(self, directory: Path, marker: ProjectMarker) -> Optional[Project]:
        """
        Build the project rooted at ``directory``.

        Args:
            directory: Candidate project root
            marker: Winning marker from the registry

        Returns:
            The Project, or None when no artifact holds any bytes (unless the
            config asks for unfiltered listing)
        """
        root = directory.resolve()
        project = Project.new(marker.kind, root)
        project.artifacts = self._artifacts(directory, marker.kind)
        project.calculate_totals()

        if not self.config.include_empty and not any(a.size > 0 for a in project.artifacts):
            return None

        project.last_modified = self._last_modified(directory, marker)
        status = self.prober.probe(directory)
        project.git_status = status if status.is_repo else None
        return project
