"""User settings persisted in ``<home>/.null-e/config.json``."""

import json
import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from nulle.environment import Environment
from nulle.errors import ConfigError
from nulle.models import DEFAULT_EXCLUDE_NAMES, DeleteMethod, ScanConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"

# Environment variables that override file values
ENV_THREADS = "NULLE_THREADS"
ENV_MAX_DEPTH = "NULLE_MAX_DEPTH"


class Settings(BaseModel):
    """Persistent user preferences."""

    protected_paths: list[Path] = Field(
        default_factory=list, description="Paths whose projects are never cleaned"
    )
    exclude_names: list[str] = Field(
        default_factory=lambda: sorted(DEFAULT_EXCLUDE_NAMES),
        description="Directory names never entered while scanning",
    )
    roots: list[Path] = Field(default_factory=list, description="Default scan roots")
    max_depth: int = Field(10, ge=0, description="Default traversal depth")
    threads: Optional[int] = Field(None, ge=1, description="Worker threads, None for automatic")
    delete_method: DeleteMethod = Field(DeleteMethod.TRASH, description="Default deletion method")

    def is_protected(self, path: Path) -> bool:
        """True if ``path`` is a protected path or lies inside one."""
        return any(path == p or path.is_relative_to(p) for p in self.protected_paths)

    def protect(self, path: Path) -> bool:
        """Add a protected path. Returns False if it was already protected."""
        if path in self.protected_paths:
            return False
        self.protected_paths.append(path)
        return True

    def unprotect(self, path: Path) -> bool:
        """Remove a protected path. Returns False if it was not protected."""
        if path not in self.protected_paths:
            return False
        self.protected_paths.remove(path)
        return True

    def scan_config(self, roots: Optional[list[Path]] = None, **overrides) -> ScanConfig:
        """
        Build a ScanConfig from these settings.

        Args:
            roots: Explicit roots; falls back to the configured roots
            **overrides: Any ScanConfig field, taking precedence over settings

        Returns:
            ScanConfig (roots are not checked until the scan starts)
        """
        values: dict = {
            "roots": roots or self.roots,
            "max_depth": self.max_depth,
            "exclude_names": frozenset(self.exclude_names),
        }
        if self.threads is not None:
            values["threads"] = self.threads
        values.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return ScanConfig(**values)
        except ValidationError as e:
            raise ConfigError(str(e)) from e


def config_path(environment: Environment) -> Path:
    return environment.config_dir / CONFIG_FILENAME


def _env_int(environ: Mapping[str, str], name: str) -> Optional[int]:
    raw = environ.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def load_settings(
    environment: Environment,
    environ: Optional[Mapping[str, str]] = None,
    apply_env: bool = True,
) -> Settings:
    """
    Load settings from disk.

    A missing file gives defaults. An unreadable or invalid file also gives
    defaults, with a warning.

    Args:
        environment: Supplies the config directory
        environ: Variables to read overrides from; defaults to os.environ
        apply_env: Apply NULLE_THREADS / NULLE_MAX_DEPTH overrides

    Returns:
        Settings

    Raises:
        ConfigError: If an override variable is not a valid integer
    """
    path = config_path(environment)
    settings = Settings()
    if path.exists():
        try:
            with open(path) as f:
                settings = Settings.model_validate(json.load(f))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("Ignoring unreadable config %s: %s", path, e)
            settings = Settings()
    else:
        logger.debug("No config at %s, using defaults", path)

    if not apply_env:
        return settings

    environ = os.environ if environ is None else environ
    updates: dict = {}
    threads = _env_int(environ, ENV_THREADS)
    if threads is not None:
        updates["threads"] = threads
    max_depth = _env_int(environ, ENV_MAX_DEPTH)
    if max_depth is not None:
        updates["max_depth"] = max_depth
    if updates:
        try:
            settings = Settings.model_validate({**settings.model_dump(), **updates})
        except ValidationError as e:
            raise ConfigError(str(e)) from e
    return settings


def save_settings(settings: Settings, environment: Environment) -> Path:
    """
    Write settings to disk.

    Returns:
        Path of the written file

    Raises:
        ConfigError: If the file cannot be written
    """
    path = config_path(environment)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            f.write(settings.model_dump_json(indent=2))
    except OSError as e:
        raise ConfigError(f"Cannot write config {path}: {e}") from e
    return path
