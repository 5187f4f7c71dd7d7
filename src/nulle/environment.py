"""Explicit environment injected into every path-resolving component."""

import os
import sys
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class Environment(BaseModel):
    """Home directory, working directory and platform for one invocation.

    Components never call ``Path.home()`` themselves; they take an
    Environment so tests can point them at a synthetic home.
    """

    model_config = ConfigDict(frozen=True)

    home: Path = Field(..., description="User home directory")
    cwd: Path = Field(..., description="Working directory used as the default scan root")
    platform: str = Field(default=sys.platform, description="sys.platform value")

    @classmethod
    def detect(cls) -> "Environment":
        """Build the environment of the running process."""
        return cls(home=Path.home(), cwd=Path.cwd(), platform=sys.platform)

    @property
    def is_macos(self) -> bool:
        return self.platform == "darwin"

    @property
    def config_dir(self) -> Path:
        return self.home / ".null-e"

    def expand(self, path: str) -> Path:
        """Expand a leading ``~`` against this environment's home."""
        if path == "~":
            return self.home
        if path.startswith("~/"):
            return self.home / path[2:]
        return Path(os.path.expandvars(path))
