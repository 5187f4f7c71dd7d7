"""Data models for null-e."""

import hashlib
import os
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import ClassVar, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from nulle.errors import ConfigError

# Projects modified more recently than this get a RecentlyModified warning
RECENT_DAYS = 7


def format_size(size_bytes: int) -> str:
    """Format bytes to human-readable string (decimal units)."""
    if size_bytes >= 1000**4:
        return f"{size_bytes / (1000**4):.1f} TB"
    elif size_bytes >= 1000**3:
        return f"{size_bytes / (1000**3):.1f} GB"
    elif size_bytes >= 1000**2:
        return f"{size_bytes / (1000**2):.1f} MB"
    elif size_bytes >= 1000:
        return f"{size_bytes / 1000:.1f} KB"
    else:
        return f"{size_bytes} B"


# =============================================================================
# Identity
# =============================================================================


class ProjectId(BaseModel):
    """64-bit fingerprint of a project's canonical root path."""

    model_config = ConfigDict(frozen=True)

    value: int = Field(..., ge=0, lt=2**64)

    @classmethod
    def from_path(cls, path: Path) -> "ProjectId":
        digest = hashlib.blake2b(os.fsencode(path), digest_size=8).digest()
        return cls(value=int.from_bytes(digest, "big"))

    def __str__(self) -> str:
        return f"{self.value:016x}"


# =============================================================================
# Project kinds
# =============================================================================


class BuiltinKind(str, Enum):
    """Ecosystems known without any plugin."""

    # JavaScript / TypeScript
    NODE_NPM = "node_npm"
    NODE_YARN = "node_yarn"
    NODE_PNPM = "node_pnpm"
    NODE_BUN = "node_bun"
    DENO = "deno"
    # Systems languages
    RUST = "rust"
    GO = "go"
    CPP = "cpp"
    C = "c"
    ZIG = "zig"
    # JVM
    JAVA_MAVEN = "java_maven"
    JAVA_GRADLE = "java_gradle"
    KOTLIN = "kotlin"
    SCALA = "scala"
    CLOJURE = "clojure"
    # .NET
    DOTNET = "dotnet"
    FSHARP = "fsharp"
    # Python
    PYTHON_PIP = "python_pip"
    PYTHON_POETRY = "python_poetry"
    PYTHON_PIPENV = "python_pipenv"
    PYTHON_CONDA = "python_conda"
    PYTHON_UV = "python_uv"
    # Ruby
    RUBY_BUNDLER = "ruby_bundler"
    RUBY_RAILS = "ruby_rails"
    # PHP
    PHP_COMPOSER = "php_composer"
    PHP_LARAVEL = "php_laravel"
    # Mobile
    SWIFT_SPM = "swift_spm"
    SWIFT_XCODE = "swift_xcode"
    FLUTTER = "flutter"
    REACT_NATIVE = "react_native"
    ANDROID = "android"
    # Other languages
    ELIXIR = "elixir"
    HASKELL = "haskell"
    OCAML = "ocaml"
    JULIA = "julia"
    R = "r"
    LUA = "lua"
    PERL = "perl"
    # Infrastructure
    TERRAFORM = "terraform"
    PULUMI = "pulumi"
    DOCKER = "docker"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def icon(self) -> str:
        return _ICONS.get(self, "📁")

    @property
    def is_node(self) -> bool:
        return self in _NODE_KINDS

    @property
    def is_rust(self) -> bool:
        return self is BuiltinKind.RUST

    @property
    def is_python(self) -> bool:
        return self in _PYTHON_KINDS

    @property
    def is_java(self) -> bool:
        return self in _JVM_KINDS

    @property
    def is_go(self) -> bool:
        return self is BuiltinKind.GO

    @property
    def is_swift(self) -> bool:
        return self in (BuiltinKind.SWIFT_SPM, BuiltinKind.SWIFT_XCODE)

    @property
    def is_dotnet(self) -> bool:
        return self in (BuiltinKind.DOTNET, BuiltinKind.FSHARP)


_NODE_KINDS = frozenset(
    {
        BuiltinKind.NODE_NPM,
        BuiltinKind.NODE_YARN,
        BuiltinKind.NODE_PNPM,
        BuiltinKind.NODE_BUN,
        BuiltinKind.DENO,
    }
)
_PYTHON_KINDS = frozenset(
    {
        BuiltinKind.PYTHON_PIP,
        BuiltinKind.PYTHON_POETRY,
        BuiltinKind.PYTHON_PIPENV,
        BuiltinKind.PYTHON_CONDA,
        BuiltinKind.PYTHON_UV,
    }
)
_JVM_KINDS = frozenset(
    {
        BuiltinKind.JAVA_MAVEN,
        BuiltinKind.JAVA_GRADLE,
        BuiltinKind.KOTLIN,
        BuiltinKind.SCALA,
        BuiltinKind.CLOJURE,
    }
)

_DISPLAY_NAMES: dict[BuiltinKind, str] = {
    BuiltinKind.NODE_NPM: "Node.js (npm)",
    BuiltinKind.NODE_YARN: "Node.js (Yarn)",
    BuiltinKind.NODE_PNPM: "Node.js (pnpm)",
    BuiltinKind.NODE_BUN: "Bun",
    BuiltinKind.DENO: "Deno",
    BuiltinKind.RUST: "Rust (Cargo)",
    BuiltinKind.GO: "Go",
    BuiltinKind.CPP: "C++",
    BuiltinKind.C: "C",
    BuiltinKind.ZIG: "Zig",
    BuiltinKind.JAVA_MAVEN: "Java (Maven)",
    BuiltinKind.JAVA_GRADLE: "Java (Gradle)",
    BuiltinKind.KOTLIN: "Kotlin",
    BuiltinKind.SCALA: "Scala",
    BuiltinKind.CLOJURE: "Clojure",
    BuiltinKind.DOTNET: ".NET",
    BuiltinKind.FSHARP: "F#",
    BuiltinKind.PYTHON_PIP: "Python (pip)",
    BuiltinKind.PYTHON_POETRY: "Python (Poetry)",
    BuiltinKind.PYTHON_PIPENV: "Python (Pipenv)",
    BuiltinKind.PYTHON_CONDA: "Python (Conda)",
    BuiltinKind.PYTHON_UV: "Python (uv)",
    BuiltinKind.RUBY_BUNDLER: "Ruby (Bundler)",
    BuiltinKind.RUBY_RAILS: "Ruby on Rails",
    BuiltinKind.PHP_COMPOSER: "PHP (Composer)",
    BuiltinKind.PHP_LARAVEL: "PHP (Laravel)",
    BuiltinKind.SWIFT_SPM: "Swift (SPM)",
    BuiltinKind.SWIFT_XCODE: "Swift (Xcode)",
    BuiltinKind.FLUTTER: "Flutter",
    BuiltinKind.REACT_NATIVE: "React Native",
    BuiltinKind.ANDROID: "Android",
    BuiltinKind.ELIXIR: "Elixir",
    BuiltinKind.HASKELL: "Haskell",
    BuiltinKind.OCAML: "OCaml",
    BuiltinKind.JULIA: "Julia",
    BuiltinKind.R: "R",
    BuiltinKind.LUA: "Lua",
    BuiltinKind.PERL: "Perl",
    BuiltinKind.TERRAFORM: "Terraform",
    BuiltinKind.PULUMI: "Pulumi",
    BuiltinKind.DOCKER: "Docker",
}

_ICONS: dict[BuiltinKind, str] = {
    **{kind: "📦" for kind in _NODE_KINDS},
    **{kind: "🐍" for kind in _PYTHON_KINDS},
    **{kind: "☕" for kind in _JVM_KINDS},
    BuiltinKind.RUST: "🦀",
    BuiltinKind.GO: "🐹",
    BuiltinKind.CPP: "⚙️",
    BuiltinKind.C: "⚙️",
    BuiltinKind.ZIG: "⚡",
    BuiltinKind.DOTNET: "🔷",
    BuiltinKind.FSHARP: "🔷",
    BuiltinKind.RUBY_BUNDLER: "💎",
    BuiltinKind.RUBY_RAILS: "💎",
    BuiltinKind.PHP_COMPOSER: "🐘",
    BuiltinKind.PHP_LARAVEL: "🐘",
    BuiltinKind.SWIFT_SPM: "🍎",
    BuiltinKind.SWIFT_XCODE: "🍎",
    BuiltinKind.FLUTTER: "🦋",
    BuiltinKind.REACT_NATIVE: "⚛️",
    BuiltinKind.ANDROID: "🤖",
    BuiltinKind.ELIXIR: "💧",
    BuiltinKind.HASKELL: "λ",
    BuiltinKind.OCAML: "🐫",
    BuiltinKind.JULIA: "📊",
    BuiltinKind.R: "📈",
    BuiltinKind.LUA: "🌙",
    BuiltinKind.PERL: "🐪",
    BuiltinKind.TERRAFORM: "🏗️",
    BuiltinKind.PULUMI: "🏗️",
    BuiltinKind.DOCKER: "🐳",
}


class CustomKind(BaseModel):
    """Plugin-defined kind, identified by a numeric tag.

    Display metadata lives in the plugin registry (see ``KindInfo``), not here.
    """

    model_config = ConfigDict(frozen=True)

    tag: int = Field(..., ge=0)

    display_name: ClassVar[str] = "Custom"
    icon: ClassVar[str] = "📁"
    is_node: ClassVar[bool] = False
    is_rust: ClassVar[bool] = False
    is_python: ClassVar[bool] = False
    is_java: ClassVar[bool] = False
    is_go: ClassVar[bool] = False
    is_swift: ClassVar[bool] = False
    is_dotnet: ClassVar[bool] = False

    @property
    def value(self) -> str:
        return f"custom:{self.tag}"


ProjectKind = Union[BuiltinKind, CustomKind]


class KindInfo(BaseModel):
    """Display metadata for a kind, used for plugin kinds."""

    model_config = ConfigDict(frozen=True)

    display_name: str
    icon: str = "📁"


# =============================================================================
# Git status and safety
# =============================================================================


class GitStatus(BaseModel):
    """Snapshot of a repository's state, taken once per scan."""

    model_config = ConfigDict(frozen=True)

    is_repo: bool = Field(False, description="Whether this is a git repository")
    has_uncommitted: bool = Field(False, description="Modified or staged files")
    has_untracked: bool = Field(False, description="Untracked files present")
    has_stashed: bool = Field(False, description="Stash entries present")
    branch: Optional[str] = Field(None, description="Current branch name")
    remote: Optional[str] = Field(None, description="Remote URL of origin")
    last_commit: Optional[datetime] = Field(None, description="Last commit timestamp")
    dirty_paths: list[Path] = Field(
        default_factory=list, description="Paths with uncommitted changes (capped)"
    )

    @property
    def is_clean(self) -> bool:
        """True only for a repository with nothing uncommitted or untracked."""
        return self.is_repo and not self.has_uncommitted and not self.has_untracked


class SafetyVerdict(str, Enum):
    """Top-level classification gating a destructive action."""

    SAFE = "safe"
    WARNING = "warning"
    BLOCKED = "blocked"


class CleanWarning(str, Enum):
    UNCOMMITTED_CHANGES = "uncommitted_changes"
    UNTRACKED_FILES = "untracked_files"
    NOT_GIT_REPO = "not_git_repo"
    RECENTLY_MODIFIED = "recently_modified"
    NO_LOCKFILE = "no_lockfile"


class CleanBlock(str, Enum):
    LOCK_FILE_PRESENT = "lock_file_present"
    PROCESS_RUNNING = "process_running"
    USER_PROTECTED = "user_protected"


class CleanSafety(BaseModel):
    """Safety verdict for cleaning a project. Derived, never persisted."""

    model_config = ConfigDict(frozen=True)

    verdict: SafetyVerdict
    warning: Optional[CleanWarning] = None
    block: Optional[CleanBlock] = None
    paths: list[Path] = Field(default_factory=list)
    age_days: Optional[int] = None
    lock_file: Optional[Path] = None
    pid: Optional[int] = None
    process_name: Optional[str] = None

    @classmethod
    def safe(cls) -> "CleanSafety":
        return cls(verdict=SafetyVerdict.SAFE)

    @classmethod
    def warn(cls, warning: CleanWarning, **details) -> "CleanSafety":
        return cls(verdict=SafetyVerdict.WARNING, warning=warning, **details)

    @classmethod
    def blocked(cls, block: CleanBlock, **details) -> "CleanSafety":
        return cls(verdict=SafetyVerdict.BLOCKED, block=block, **details)

    @property
    def is_safe(self) -> bool:
        return self.verdict == SafetyVerdict.SAFE

    @property
    def is_blocked(self) -> bool:
        return self.verdict == SafetyVerdict.BLOCKED

    @property
    def reason(self) -> str:
        """Human-readable explanation of the verdict."""
        if self.block == CleanBlock.LOCK_FILE_PRESENT:
            return f"Active lock file: {self.lock_file}"
        if self.block == CleanBlock.PROCESS_RUNNING:
            return f"In use by {self.process_name} (pid {self.pid})"
        if self.block == CleanBlock.USER_PROTECTED:
            return "Protected by user"
        if self.warning == CleanWarning.UNCOMMITTED_CHANGES:
            return f"Uncommitted changes ({len(self.paths)} files)"
        if self.warning == CleanWarning.UNTRACKED_FILES:
            return "Untracked files present"
        if self.warning == CleanWarning.NOT_GIT_REPO:
            return "Not a git repository"
        if self.warning == CleanWarning.RECENTLY_MODIFIED:
            return f"Modified {self.age_days} days ago"
        if self.warning == CleanWarning.NO_LOCKFILE:
            return "No lockfile found"
        return "Safe to clean"


# =============================================================================
# Projects and artifacts
# =============================================================================


class Artifact(BaseModel):
    """A cleanable sub-path of a project (dependency dir, build output...)."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Sub-path relative to the project root")
    path: Path = Field(..., description="Absolute path of the artifact")
    size: int = Field(0, ge=0, description="Total size in bytes")
    file_count: int = Field(0, ge=0, description="Number of files")
    partial: bool = Field(False, description="Some entries could not be read")

    @property
    def size_human(self) -> str:
        return format_size(self.size)


class Project(BaseModel):
    """A detected development project."""

    id: ProjectId
    kind: ProjectKind
    root: Path
    name: str
    last_modified: Optional[datetime] = None
    git_status: Optional[GitStatus] = None
    artifacts: list[Artifact] = Field(default_factory=list)
    total_size: int = 0
    cleanable_size: int = 0

    @classmethod
    def new(cls, kind: ProjectKind, root: Path) -> "Project":
        """Create an empty project, deriving id and name from the root."""
        return cls(id=ProjectId.from_path(root), kind=kind, root=root, name=root.name or "unknown")

    @property
    def artifact_count(self) -> int:
        return len(self.artifacts)

    @property
    def size_human(self) -> str:
        return format_size(self.cleanable_size)

    def calculate_totals(self) -> None:
        """Finalize totals from artifacts."""
        self.total_size = sum(a.size for a in self.artifacts)
        # Rule-based exclusions would reduce this; none exist yet
        self.cleanable_size = self.total_size

    def safety_check(self, now: Optional[datetime] = None) -> CleanSafety:
        """Pure safety verdict from git status and last-modified time."""
        status = self.git_status
        if status is None or not status.is_repo:
            return CleanSafety.warn(CleanWarning.NOT_GIT_REPO)
        if status.has_uncommitted:
            return CleanSafety.warn(CleanWarning.UNCOMMITTED_CHANGES, paths=list(status.dirty_paths))
        if status.has_untracked:
            return CleanSafety.warn(CleanWarning.UNTRACKED_FILES)

        if self.last_modified is not None:
            age = (now or datetime.now()) - self.last_modified
            if timedelta(0) <= age < timedelta(days=RECENT_DAYS):
                return CleanSafety.warn(CleanWarning.RECENTLY_MODIFIED, age_days=age.days)

        return CleanSafety.safe()

    def __str__(self) -> str:
        return f"{self.kind.icon} {self.name} ({self.kind.display_name}) - {self.size_human}"


# =============================================================================
# Scan configuration and results
# =============================================================================

DEFAULT_EXCLUDE_NAMES = frozenset({".git", ".hg", ".svn", ".Trash", ".cache"})


def _default_threads() -> int:
    return min(32, (os.cpu_count() or 1) + 4)


class ScanConfig(BaseModel):
    """Input to a scan: where to look and how far."""

    roots: list[Path] = Field(default_factory=list, description="Root directories to scan")
    max_depth: int = Field(10, ge=0, description="Maximum traversal depth below each root")
    threads: int = Field(default_factory=_default_threads, ge=1, description="Worker threads")
    skip_hidden: bool = Field(True, description="Skip dot-directories while traversing")
    follow_symlinks: bool = Field(False, description="Follow directory symlinks inside roots")
    exclude_names: frozenset[str] = Field(
        default=DEFAULT_EXCLUDE_NAMES, description="Directory names never entered"
    )
    include_empty: bool = Field(False, description="Also list projects with no artifact bytes")
    git_timeout: float = Field(5.0, gt=0, description="Seconds allowed per git command")
    max_dirty_paths: int = Field(100, ge=0, description="Cap on dirty paths kept per repo")
    size_max_depth: int = Field(64, ge=1, description="Maximum depth of artifact size walks")

    @field_validator("roots")
    @classmethod
    def _expand_roots(cls, roots: list[Path]) -> list[Path]:
        return [Path(os.path.expanduser(str(r))) for r in roots]

    def check_roots(self) -> list[Path]:
        """Return canonical roots, raising ConfigError for unusable ones."""
        if not self.roots:
            raise ConfigError("No root paths to scan")
        canonical: list[Path] = []
        for root in self.roots:
            if not root.exists():
                raise ConfigError(f"Root path does not exist: {root}")
            if not root.is_dir():
                raise ConfigError(f"Root path is not a directory: {root}")
            resolved = root.resolve()
            if resolved not in canonical:
                canonical.append(resolved)
        return canonical


class ScanIssue(BaseModel):
    """A directory that was skipped because of an I/O error."""

    model_config = ConfigDict(frozen=True)

    path: Path
    message: str


class ScanResult(BaseModel):
    """Immutable snapshot of a completed scan."""

    model_config = ConfigDict(frozen=True)

    projects: list[Project] = Field(default_factory=list)
    directories_scanned: int = 0
    total_cleanable: int = 0
    elapsed: timedelta = timedelta(0)
    issues: list[ScanIssue] = Field(default_factory=list)

    @property
    def total_human(self) -> str:
        return format_size(self.total_cleanable)

    def get(self, project_id: ProjectId) -> Optional[Project]:
        for project in self.projects:
            if project.id == project_id:
                return project
        return None


# =============================================================================
# Cleanable items and cleanup
# =============================================================================


class SafetyLevel(str, Enum):
    """How safe it is to delete a cleanable item."""

    SAFE = "safe"  # Regenerated automatically
    SAFE_WITH_COST = "safe_with_cost"  # Regenerated, but slow or re-downloaded
    CAUTION = "caution"  # User judgment needed
    DANGEROUS = "dangerous"  # Potential data loss


class CleanableItem(BaseModel):
    """Uniform entry for anything that occupies space and may be deleted."""

    name: str = Field(..., description="Human-readable name")
    category: str = Field(..., description="Grouping, e.g. 'Cache' or a project kind")
    icon: str = Field("📁", description="Display icon")
    path: Path = Field(..., description="Path that would be deleted")
    size: int = Field(0, ge=0, description="Size in bytes")
    file_count: Optional[int] = Field(None, description="Number of files, if known")
    last_modified: Optional[datetime] = None
    description: str = Field("", description="What this item is")
    safety: SafetyLevel = Field(SafetyLevel.SAFE, description="Deletion risk")
    clean_command: Optional[str] = Field(
        None, description="Native command to run instead of deleting the path"
    )

    @property
    def size_human(self) -> str:
        return format_size(self.size)


class DeleteMethod(str, Enum):
    TRASH = "trash"
    PERMANENT = "permanent"


class CleanupResult(BaseModel):
    """Result of removing one item."""

    path: Path = Field(..., description="Path that was cleaned")
    bytes_freed: int = Field(0, description="Bytes freed")
    files_deleted: int = Field(0, description="Number of files removed")
    method: DeleteMethod = DeleteMethod.TRASH
    success: bool = Field(True, description="Whether cleanup succeeded")
    error: Optional[str] = Field(None, description="Error message if failed")
    dry_run: bool = Field(False, description="Whether this was a dry run")


class CleanupSummary(BaseModel):
    """Tally of a batch cleanup. Always produced, whatever individual items did."""

    results: list[CleanupResult] = Field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def bytes_freed(self) -> int:
        return sum(r.bytes_freed for r in self.results if r.success)
