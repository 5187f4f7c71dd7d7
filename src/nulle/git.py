"""Git status probing for clean-safety checks.

Probing is never fatal: a missing ``git`` binary, a timeout or a directory
outside any repository all produce ``GitStatus()`` (is_repo=False).
"""

import logging
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Optional

from nulle.models import GitStatus
from nulle.shell import CommandResult, Runner, run_command

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0
DEFAULT_MAX_DIRTY_PATHS = 100


def parse_branch(header: str) -> Optional[str]:
    """Extract the branch name from a ``## ...`` porcelain header line."""
    info = header[3:].strip() if header.startswith("## ") else header.strip()
    if info.startswith("No commits yet on "):
        return info[len("No commits yet on ") :] or None
    if info.startswith("Initial commit on "):
        return info[len("Initial commit on ") :] or None
    if info.startswith("HEAD (no branch)"):
        return None
    branch = info.split("...", 1)[0].split(" ", 1)[0]
    return branch or None


def _entry_path(entry: str) -> str:
    # "R  old -> new" reports the new name
    if " -> " in entry:
        entry = entry.split(" -> ", 1)[1]
    return entry.strip().strip('"')


class GitProber:
    """Inspects one directory's repository state through the git CLI.

    Args:
        timeout: Seconds allowed for each git invocation.
        max_dirty_paths: Cap on the number of dirty paths kept.
        runner: Command runner, replaceable in tests.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        max_dirty_paths: int = DEFAULT_MAX_DIRTY_PATHS,
        runner: Runner = run_command,
    ) -> None:
        self._timeout = timeout
        self._max_dirty_paths = max_dirty_paths
        self._runner = runner

    def probe(self, directory: Path) -> GitStatus:
        """Return the git status of ``directory``; never raises."""
        try:
            return self._probe(directory)
        except (OSError, subprocess.SubprocessError, ValueError, OverflowError) as e:
            logger.debug("git probe failed for %s: %s", directory, e)
            return GitStatus()

    def _git(self, directory: Path, *args: str) -> CommandResult:
        return self._runner(["git", "-C", str(directory), *args], timeout=self._timeout)

    def _optional(self, directory: Path, *args: str) -> Optional[str]:
        """Run a git query whose failure only leaves a field empty."""
        try:
            result = self._git(directory, *args)
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug("git %s failed for %s: %s", args[0], directory, e)
            return None
        if not result.success:
            return None
        return result.stdout.strip()

    def _probe(self, directory: Path) -> GitStatus:
        toplevel = self._git(directory, "rev-parse", "--show-toplevel")
        if not toplevel.success or not toplevel.stdout.strip():
            return GitStatus()
        repo_root = Path(toplevel.stdout.strip())

        # Restrict to this directory so sibling projects in a monorepo don't taint it
        status = self._git(directory, "status", "--porcelain=v1", "--branch", "--", ".")
        if not status.success:
            logger.debug("git status failed for %s: %s", directory, status.stderr.strip())
            return GitStatus()

        branch: Optional[str] = None
        has_uncommitted = False
        has_untracked = False
        dirty_paths: list[Path] = []

        for line in status.stdout.splitlines():
            if line.startswith("## "):
                branch = parse_branch(line)
                continue
            if len(line) < 4:
                continue
            code, entry = line[:2], line[3:]
            if code == "??":
                has_untracked = True
                continue
            if code == "!!":
                continue
            has_uncommitted = True
            if len(dirty_paths) < self._max_dirty_paths:
                dirty_paths.append(repo_root / _entry_path(entry))

        stash = self._optional(directory, "stash", "list")
        remote = self._optional(directory, "remote", "get-url", "origin")
        last_commit_raw = self._optional(directory, "log", "-1", "--format=%ct")
        last_commit = None
        if last_commit_raw and last_commit_raw.isdigit():
            last_commit = datetime.fromtimestamp(int(last_commit_raw))

        return GitStatus(
            is_repo=True,
            has_uncommitted=has_uncommitted,
            has_untracked=has_untracked,
            has_stashed=bool(stash),
            branch=branch,
            remote=remote or None,
            last_commit=last_commit,
            dirty_paths=dirty_paths,
        )
