"""Cleanup execution with safety checks for null-e."""

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Optional

from send2trash import send2trash

from nulle.builder import measure_directory
from nulle.environment import Environment
from nulle.models import CleanableItem, CleanupResult, CleanupSummary, DeleteMethod
from nulle.safety import is_path_safe
from nulle.shell import CommandResult, run_shell

logger = logging.getLogger(__name__)

CLEAN_COMMAND_TIMEOUT = 300.0


def _remove(path: Path) -> None:
    if path.is_symlink() or not path.is_dir():
        path.unlink()
    else:
        shutil.rmtree(path)


def delete_path(
    path: Path,
    method: DeleteMethod,
    environment: Environment,
    dry_run: bool = False,
) -> CleanupResult:
    """
    Delete a path (file or directory).

    Args:
        path: Path to delete
        method: Move to trash or remove permanently
        environment: Supplies the home directory for the safety check
        dry_run: If True, only measure what would be freed

    Returns:
        CleanupResult; failures are reported in it, never raised
    """
    path = Path(path)
    if not path.exists() and not path.is_symlink():
        return CleanupResult(path=path, method=method, dry_run=dry_run)

    if not is_path_safe(path, environment):
        return CleanupResult(
            path=path,
            method=method,
            success=False,
            error=f"Blocked path: {path}",
            dry_run=dry_run,
        )

    measured = measure_directory(path)
    if dry_run:
        return CleanupResult(
            path=path,
            bytes_freed=measured.size,
            files_deleted=measured.file_count,
            method=method,
            dry_run=True,
        )

    try:
        if method == DeleteMethod.TRASH:
            send2trash(os.fspath(path))
        else:
            _remove(path)
    except PermissionError as e:
        error = f"Permission denied: {e}"
    except OSError as e:
        error = f"OS error: {e}"
    else:
        logger.info("Removed %s (%s, %d bytes)", path, method.value, measured.size)
        return CleanupResult(
            path=path,
            bytes_freed=measured.size,
            files_deleted=measured.file_count,
            method=method,
        )

    logger.warning("Failed to remove %s: %s", path, error)
    return CleanupResult(path=path, method=method, success=False, error=error)


def run_clean_command(
    command: str,
    timeout: float = CLEAN_COMMAND_TIMEOUT,
    shell: Callable[..., CommandResult] = run_shell,
) -> CommandResult:
    """
    Run a native cleanup command such as ``npm cache clean --force``.

    Timeouts and launch failures come back as a failed CommandResult.
    """
    try:
        return shell(command, timeout=timeout)
    except subprocess.TimeoutExpired:
        return CommandResult(stdout="", stderr="Command timed out", returncode=-1)
    except OSError as e:
        return CommandResult(stdout="", stderr=str(e), returncode=-1)


def _clean_with_command(item: CleanableItem, dry_run: bool) -> CleanupResult:
    if dry_run:
        return CleanupResult(path=item.path, method=DeleteMethod.PERMANENT, dry_run=True)
    result = run_clean_command(item.clean_command)
    if result.success:
        # Bytes freed is unknown until the cache is measured again
        return CleanupResult(path=item.path, method=DeleteMethod.PERMANENT)
    return CleanupResult(
        path=item.path,
        method=DeleteMethod.PERMANENT,
        success=False,
        error=result.stderr.strip() or "Command failed",
    )


def clean_items(
    items: list[CleanableItem],
    method: DeleteMethod,
    environment: Environment,
    dry_run: bool = False,
    progress_callback: Optional[Callable[[CleanableItem, int, int], None]] = None,
    use_clean_commands: bool = False,
) -> CleanupSummary:
    """
    Clean items one by one.

    A failure never aborts the batch.

    Args:
        items: Items to clean
        method: Trash or permanent deletion
        environment: Supplies the home directory for the safety check
        dry_run: If True, don't actually delete
        progress_callback: Optional callback(item, current, total)
        use_clean_commands: Prefer an item's native clean command over deleting its path

    Returns:
        CleanupSummary with one result per item
    """
    summary = CleanupSummary()
    total = len(items)
    for i, item in enumerate(items):
        if progress_callback:
            progress_callback(item, i + 1, total)
        if use_clean_commands and item.clean_command:
            result = _clean_with_command(item, dry_run)
        else:
            result = delete_path(item.path, method, environment, dry_run)
        summary.results.append(result)
    return summary
