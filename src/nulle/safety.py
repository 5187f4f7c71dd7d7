"""Safety checks run before anything is deleted."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from nulle.config import Settings
from nulle.environment import Environment
from nulle.models import CleanBlock, CleanSafety, CleanWarning, Project
from nulle.plugins import PluginRegistry

logger = logging.getLogger(__name__)

# Relative to the project root; present only while a tool is mid-operation
ACTIVE_LOCK_FILES = (
    ".git/index.lock",
    ".terraform.tfstate.lock.info",
)

# Paths that should NEVER be deleted themselves
BLOCKED_PATHS = [
    "~/Documents",
    "~/Desktop",
    "~/Downloads",
    "~/Pictures",
    "~/Music",
    "~/Movies",
    "~/Library",
    "~/Code",
    "~/Projects",
    "~/Work",
    "~/.ssh",
    "~/.gnupg",
    "~/.config",
    "/System",
    "/Library",
    "/Applications",
    "/usr",
    "/bin",
    "/sbin",
    "/etc",
    "/var",
    "/private",
    "/Users",
    "/home",
    "/opt",
]


def is_path_safe(path: Path, environment: Environment) -> bool:
    """
    Check if a path is safe to delete.

    Args:
        path: Path to check
        environment: Supplies the home directory

    Returns:
        False for the filesystem root, the home directory or any parent of
        it, and the well-known personal and system directories themselves
    """
    path = Path(path)
    if not path.is_absolute() or path == Path(path.anchor):
        return False
    if path == environment.home or environment.home.is_relative_to(path):
        return False
    for blocked in BLOCKED_PATHS:
        if path == environment.expand(blocked):
            return False
    return True


def find_active_lock(root: Path) -> Optional[Path]:
    for rel in ACTIVE_LOCK_FILES:
        candidate = root / rel
        if candidate.exists():
            return candidate
    return None


def assess_project(
    project: Project,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
    registry: Optional[PluginRegistry] = None,
) -> CleanSafety:
    """
    Full safety verdict for cleaning a project.

    Blocked conditions are checked first, then the git/age verdict from
    ``Project.safety_check``, then a missing lockfile for ecosystems that
    normally have one.

    Args:
        project: Project to assess
        settings: User settings holding protected paths
        now: Reference time for the recently-modified check
        registry: Source of per-kind lockfile names

    Returns:
        CleanSafety
    """
    if settings is not None and settings.is_protected(project.root):
        return CleanSafety.blocked(CleanBlock.USER_PROTECTED)

    lock = find_active_lock(project.root)
    if lock is not None:
        logger.debug("Active lock file in %s: %s", project.root, lock)
        return CleanSafety.blocked(CleanBlock.LOCK_FILE_PRESENT, lock_file=lock)

    verdict = project.safety_check(now)
    if not verdict.is_safe:
        return verdict

    lockfiles = (registry or PluginRegistry.with_builtins()).lockfiles(project.kind)
    if lockfiles and not any((project.root / name).exists() for name in lockfiles):
        return CleanSafety.warn(CleanWarning.NO_LOCKFILE)

    return verdict
