"""Filesystem-presence rules that classify a directory's ecosystem.

Every check is a single stat or a single non-recursive listing of the
candidate directory. Anything unreadable counts as "no match".
"""

import os
import stat
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from nulle.models import BuiltinKind, CustomKind


def _is_file(path: Path) -> bool:
    try:
        return stat.S_ISREG(os.stat(path).st_mode)
    except (OSError, ValueError):
        return False


def _is_dir(path: Path) -> bool:
    try:
        return stat.S_ISDIR(os.stat(path).st_mode)
    except (OSError, ValueError):
        return False


def _exists(path: Path) -> bool:
    return os.path.exists(path)


class FileMarker(BaseModel):
    """An exact file name is present (e.g. ``package.json``)."""

    model_config = ConfigDict(frozen=True)

    type: Literal["file"] = "file"
    name: str

    def matches(self, directory: Path) -> bool:
        return _is_file(directory / self.name)

    def matched_paths(self, directory: Path) -> list[Path]:
        path = directory / self.name
        return [path] if _is_file(path) else []

    def __str__(self) -> str:
        return self.name


class DirectoryMarker(BaseModel):
    """An exact subdirectory is present (e.g. ``.dart_tool``)."""

    model_config = ConfigDict(frozen=True)

    type: Literal["directory"] = "directory"
    name: str

    def matches(self, directory: Path) -> bool:
        return _is_dir(directory / self.name)

    def matched_paths(self, directory: Path) -> list[Path]:
        path = directory / self.name
        return [path] if _is_dir(path) else []

    def __str__(self) -> str:
        return f"{self.name}/"


class ExtensionMarker(BaseModel):
    """Some entry directly inside the directory has this extension (e.g. ``.csproj``).

    Bundle-style "files" such as ``.xcodeproj`` are directories, so entries of
    any type count.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["extension"] = "extension"
    extension: str

    @field_validator("extension")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return value if value.startswith(".") else f".{value}"

    def _iter_matches(self, directory: Path):
        try:
            with os.scandir(directory) as entries:
                for entry in entries:
                    name = entry.name
                    if len(name) > len(self.extension) and name.endswith(self.extension):
                        yield Path(entry.path)
        except OSError:
            return

    def matches(self, directory: Path) -> bool:
        return next(self._iter_matches(directory), None) is not None

    def matched_paths(self, directory: Path) -> list[Path]:
        return list(self._iter_matches(directory))

    def __str__(self) -> str:
        return f"*{self.extension}"


class AllOfMarker(BaseModel):
    """Every listed name exists."""

    model_config = ConfigDict(frozen=True)

    type: Literal["all_of"] = "all_of"
    names: tuple[str, ...] = Field(..., min_length=1)

    def matches(self, directory: Path) -> bool:
        return all(_exists(directory / name) for name in self.names)

    def matched_paths(self, directory: Path) -> list[Path]:
        if not self.matches(directory):
            return []
        return [directory / name for name in self.names]

    def __str__(self) -> str:
        return " + ".join(self.names)


class AnyOfMarker(BaseModel):
    """At least one listed name exists."""

    model_config = ConfigDict(frozen=True)

    type: Literal["any_of"] = "any_of"
    names: tuple[str, ...] = Field(..., min_length=1)

    def matches(self, directory: Path) -> bool:
        return any(_exists(directory / name) for name in self.names)

    def matched_paths(self, directory: Path) -> list[Path]:
        return [directory / name for name in self.names if _exists(directory / name)]

    def __str__(self) -> str:
        return " | ".join(self.names)


MarkerKind = Annotated[
    Union[FileMarker, DirectoryMarker, ExtensionMarker, AllOfMarker, AnyOfMarker],
    Field(discriminator="type"),
]


class ProjectMarker(BaseModel):
    """Binds a marker to the kind it identifies, with a priority."""

    model_config = ConfigDict(frozen=True)

    indicator: MarkerKind
    kind: Union[BuiltinKind, CustomKind]
    priority: int = Field(..., description="Higher wins when several markers match")

    def matches(self, directory: Path) -> bool:
        return self.indicator.matches(directory)
