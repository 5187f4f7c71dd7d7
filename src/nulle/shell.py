"""Subprocess helpers.

All external commands run through here with captured output and a timeout.
``subprocess.run`` kills and reaps the child when the timeout expires, so no
process handle outlives a call.
"""

import subprocess
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a command execution.

    Attributes:
        stdout: Standard output from the command.
        stderr: Standard error from the command.
        returncode: Exit code of the command.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if command executed successfully."""
        return self.returncode == 0


def run_command(
    args: list[str],
    *,
    timeout: Optional[float] = 60.0,
    cwd: Optional[str] = None,
) -> CommandResult:
    """Execute a command and return the result.

    Args:
        args: Command and arguments to execute.
        timeout: Maximum time in seconds to wait for command.
        cwd: Working directory for the command. If None, uses current directory.

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        subprocess.TimeoutExpired: If command exceeds timeout.
        FileNotFoundError: If command executable is not found.
    """
    result = subprocess.run(
        args,
        capture_output=True,
        text=True,
        errors="replace",
        check=False,
        timeout=timeout,
        cwd=cwd,
        stdin=subprocess.DEVNULL,
    )
    return CommandResult(
        stdout=result.stdout,
        stderr=result.stderr,
        returncode=result.returncode,
    )


def run_shell(command: str, *, timeout: Optional[float] = 300.0) -> CommandResult:
    """Run a suggested clean command (e.g. ``npm cache clean --force``) through the shell."""
    result = subprocess.run(
        command,
        shell=True,  # nosec: B602 - commands come from the built-in catalog
        capture_output=True,
        text=True,
        errors="replace",
        check=False,
        timeout=timeout,
        stdin=subprocess.DEVNULL,
    )
    return CommandResult(stdout=result.stdout, stderr=result.stderr, returncode=result.returncode)


Runner = Callable[..., CommandResult]
