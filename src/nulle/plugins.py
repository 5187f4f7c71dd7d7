"""Plugin registry: marker catalog plus cleanable sub-paths per project kind."""

from pathlib import Path
from typing import Iterable, Optional

from nulle.markers import (
    AllOfMarker,
    AnyOfMarker,
    DirectoryMarker,
    ExtensionMarker,
    FileMarker,
    MarkerKind,
    ProjectMarker,
)
from nulle.models import BuiltinKind, CustomKind, KindInfo, ProjectKind

K = BuiltinKind

# =============================================================================
# Built-in marker catalog
# =============================================================================
# (indicator, kind, priority). Higher priority wins; on a tie the earlier
# entry wins, so more specific markers are listed before generic ones.

BUILTIN_MARKERS: list[tuple[MarkerKind, BuiltinKind, int]] = [
    # Systems languages
    (FileMarker(name="Cargo.toml"), K.RUST, 10),
    (FileMarker(name="go.mod"), K.GO, 10),
    (FileMarker(name="build.zig"), K.ZIG, 10),
    (FileMarker(name="CMakeLists.txt"), K.CPP, 7),
    (FileMarker(name="meson.build"), K.C, 6),
    # JVM
    (AllOfMarker(names=("build.gradle", "app/src/main/AndroidManifest.xml")), K.ANDROID, 10),
    (AllOfMarker(names=("build.gradle.kts", "src/main/kotlin")), K.KOTLIN, 10),
    (FileMarker(name="pom.xml"), K.JAVA_MAVEN, 10),
    (
        AnyOfMarker(names=("build.gradle", "build.gradle.kts", "settings.gradle", "settings.gradle.kts")),
        K.JAVA_GRADLE,
        10,
    ),
    (FileMarker(name="build.sbt"), K.SCALA, 10),
    (AnyOfMarker(names=("project.clj", "deps.edn")), K.CLOJURE, 10),
    # .NET
    (ExtensionMarker(extension=".fsproj"), K.FSHARP, 10),
    (ExtensionMarker(extension=".csproj"), K.DOTNET, 10),
    (ExtensionMarker(extension=".sln"), K.DOTNET, 9),
    # Mobile
    (FileMarker(name="pubspec.yaml"), K.FLUTTER, 10),
    (FileMarker(name="Package.swift"), K.SWIFT_SPM, 10),
    (ExtensionMarker(extension=".xcodeproj"), K.SWIFT_XCODE, 9),
    (FileMarker(name="Podfile"), K.SWIFT_XCODE, 9),
    (AllOfMarker(names=("package.json", "metro.config.js")), K.REACT_NATIVE, 9),
    # JavaScript / TypeScript
    (AnyOfMarker(names=("deno.json", "deno.jsonc")), K.DENO, 9),
    (AllOfMarker(names=("package.json", "bun.lockb")), K.NODE_BUN, 9),
    (AllOfMarker(names=("package.json", "bun.lock")), K.NODE_BUN, 9),
    (AllOfMarker(names=("package.json", "pnpm-lock.yaml")), K.NODE_PNPM, 9),
    (AllOfMarker(names=("package.json", "yarn.lock")), K.NODE_YARN, 9),
    (FileMarker(name="package.json"), K.NODE_NPM, 8),
    # Python
    (AllOfMarker(names=("pyproject.toml", "uv.lock")), K.PYTHON_UV, 9),
    (AllOfMarker(names=("pyproject.toml", "poetry.lock")), K.PYTHON_POETRY, 9),
    (FileMarker(name="Pipfile"), K.PYTHON_PIPENV, 9),
    (AnyOfMarker(names=("environment.yml", "environment.yaml")), K.PYTHON_CONDA, 7),
    (
        AnyOfMarker(names=("pyproject.toml", "setup.py", "setup.cfg", "requirements.txt")),
        K.PYTHON_PIP,
        6,
    ),
    # Ruby / PHP
    (AllOfMarker(names=("Gemfile", "config/application.rb")), K.RUBY_RAILS, 9),
    (FileMarker(name="Gemfile"), K.RUBY_BUNDLER, 8),
    (AllOfMarker(names=("composer.json", "artisan")), K.PHP_LARAVEL, 9),
    (FileMarker(name="composer.json"), K.PHP_COMPOSER, 8),
    # Other languages
    (FileMarker(name="mix.exs"), K.ELIXIR, 10),
    (AnyOfMarker(names=("stack.yaml", "cabal.project")), K.HASKELL, 10),
    (ExtensionMarker(extension=".cabal"), K.HASKELL, 9),
    (FileMarker(name="dune-project"), K.OCAML, 10),
    (AllOfMarker(names=("Project.toml", "Manifest.toml")), K.JULIA, 7),
    (ExtensionMarker(extension=".Rproj"), K.R, 7),
    (ExtensionMarker(extension=".rockspec"), K.LUA, 7),
    (AnyOfMarker(names=("Makefile.PL", "Build.PL", "cpanfile")), K.PERL, 7),
    # Infrastructure
    (FileMarker(name="Pulumi.yaml"), K.PULUMI, 9),
    (ExtensionMarker(extension=".tf"), K.TERRAFORM, 6),
    (AnyOfMarker(names=("Dockerfile", "docker-compose.yml", "compose.yaml")), K.DOCKER, 2),
]

_NODE_ARTIFACTS = [
    "node_modules",
    ".next",
    ".nuxt",
    ".output",
    ".turbo",
    ".parcel-cache",
    ".svelte-kit",
    ".angular/cache",
    "dist",
]
_PYTHON_ARTIFACTS = [
    ".venv",
    "venv",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".ruff_cache",
    ".tox",
    ".nox",
    "build",
    "dist",
]

# Relative sub-paths that are regenerable for each kind
BUILTIN_ARTIFACTS: dict[BuiltinKind, list[str]] = {
    K.NODE_NPM: _NODE_ARTIFACTS,
    K.NODE_YARN: [*_NODE_ARTIFACTS, ".yarn/cache"],
    K.NODE_PNPM: _NODE_ARTIFACTS,
    K.NODE_BUN: _NODE_ARTIFACTS,
    K.DENO: ["node_modules"],
    K.RUST: ["target"],
    K.GO: [],
    K.CPP: ["build", "cmake-build-debug", "cmake-build-release"],
    K.C: ["build", "builddir"],
    K.ZIG: ["zig-cache", ".zig-cache", "zig-out"],
    K.JAVA_MAVEN: ["target"],
    K.JAVA_GRADLE: ["build", ".gradle"],
    K.KOTLIN: ["build", ".gradle", ".kotlin"],
    K.SCALA: ["target", "project/target", ".bsp", ".bloop", ".metals"],
    K.CLOJURE: ["target", ".cpcache"],
    K.DOTNET: ["bin", "obj"],
    K.FSHARP: ["bin", "obj"],
    K.PYTHON_PIP: _PYTHON_ARTIFACTS,
    K.PYTHON_POETRY: _PYTHON_ARTIFACTS,
    K.PYTHON_PIPENV: _PYTHON_ARTIFACTS,
    K.PYTHON_CONDA: ["__pycache__", ".pytest_cache", ".mypy_cache", "build", "dist"],
    K.PYTHON_UV: _PYTHON_ARTIFACTS,
    K.RUBY_BUNDLER: ["vendor/bundle", ".bundle"],
    K.RUBY_RAILS: ["vendor/bundle", "tmp/cache", "public/packs", "node_modules"],
    K.PHP_COMPOSER: ["vendor"],
    K.PHP_LARAVEL: ["vendor", "node_modules", "bootstrap/cache"],
    K.SWIFT_SPM: [".build", ".swiftpm"],
    K.SWIFT_XCODE: ["Pods", "build", "DerivedData"],
    K.FLUTTER: ["build", ".dart_tool"],
    K.REACT_NATIVE: ["node_modules", "ios/Pods", "ios/build", "android/build", "android/app/build"],
    K.ANDROID: ["build", "app/build", ".gradle", ".cxx"],
    K.ELIXIR: ["_build", "deps"],
    K.HASKELL: [".stack-work", "dist-newstyle"],
    K.OCAML: ["_build", "_opam"],
    K.JULIA: [],
    K.R: ["renv/library", ".Rproj.user"],
    K.LUA: ["lua_modules", ".luarocks"],
    K.PERL: ["blib", "local", "_build"],
    K.TERRAFORM: [".terraform"],
    K.PULUMI: ["node_modules", "venv"],
    K.DOCKER: [],
}

# Lockfiles a healthy project of this kind normally has
LOCKFILES: dict[BuiltinKind, tuple[str, ...]] = {
    K.NODE_NPM: ("package-lock.json", "npm-shrinkwrap.json"),
    K.NODE_YARN: ("yarn.lock",),
    K.NODE_PNPM: ("pnpm-lock.yaml",),
    K.NODE_BUN: ("bun.lockb", "bun.lock"),
    K.RUST: ("Cargo.lock",),
    K.GO: ("go.sum",),
    K.PYTHON_POETRY: ("poetry.lock",),
    K.PYTHON_PIPENV: ("Pipfile.lock",),
    K.PYTHON_UV: ("uv.lock",),
    K.RUBY_BUNDLER: ("Gemfile.lock",),
    K.RUBY_RAILS: ("Gemfile.lock",),
    K.PHP_COMPOSER: ("composer.lock",),
    K.PHP_LARAVEL: ("composer.lock",),
    K.FLUTTER: ("pubspec.lock",),
    K.ELIXIR: ("mix.lock",),
}


class PluginRegistry:
    """Ordered marker catalog plus per-kind cleanable sub-paths.

    Registration happens before scanning. During a scan the registry is only
    read, so it is shared across worker threads without locking.
    """

    def __init__(self) -> None:
        self._markers: list[ProjectMarker] = []
        self._artifacts: dict[ProjectKind, list[str]] = {}
        self._kinds: dict[int, KindInfo] = {}

    @classmethod
    def with_builtins(cls) -> "PluginRegistry":
        """Registry seeded with the default catalog."""
        registry = cls()
        for indicator, kind, priority in BUILTIN_MARKERS:
            registry.register(indicator, kind, priority)
        for kind, paths in BUILTIN_ARTIFACTS.items():
            registry.register_artifacts(kind, paths)
        return registry

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register(
        self,
        indicator: MarkerKind,
        kind: ProjectKind,
        priority: int,
        artifacts: Optional[Iterable[str]] = None,
    ) -> ProjectMarker:
        """Append a marker to the catalog.

        Args:
            indicator: Marker that must match the candidate directory
            kind: Kind the marker identifies
            priority: Higher priority wins over other matching markers
            artifacts: Optional extra cleanable sub-paths for the kind

        Returns:
            The registered ProjectMarker
        """
        marker = ProjectMarker(indicator=indicator, kind=kind, priority=priority)
        self._markers.append(marker)
        if artifacts is not None:
            self.register_artifacts(kind, artifacts)
        return marker

    def register_artifacts(self, kind: ProjectKind, paths: Iterable[str]) -> None:
        """Add cleanable sub-paths for a kind, keeping order and skipping duplicates."""
        existing = self._artifacts.setdefault(kind, [])
        for path in paths:
            if Path(path).is_absolute() or ".." in Path(path).parts:
                raise ValueError(f"Artifact path must be relative and inside the project: {path}")
            if path not in existing:
                existing.append(path)

    def register_kind(
        self,
        tag: int,
        display_name: str,
        icon: str = "📁",
        artifacts: Iterable[str] = (),
    ) -> CustomKind:
        """Declare a plugin-defined kind and its display metadata."""
        kind = CustomKind(tag=tag)
        self._kinds[tag] = KindInfo(display_name=display_name, icon=icon)
        self.register_artifacts(kind, artifacts)
        return kind

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def markers(self) -> tuple[ProjectMarker, ...]:
        return tuple(self._markers)

    def resolve(self, directory: Path) -> Optional[ProjectMarker]:
        """Pick the winning marker for a directory, or None if nothing matches.

        Every marker is evaluated. The highest priority wins and ties go to
        the marker registered first.
        """
        best: Optional[ProjectMarker] = None
        for marker in self._markers:
            if not marker.matches(directory):
                continue
            if best is None or marker.priority > best.priority:
                best = marker
        return best

    def cleanable_paths(self, kind: ProjectKind) -> tuple[str, ...]:
        return tuple(self._artifacts.get(kind, ()))

    def kind_info(self, kind: ProjectKind) -> KindInfo:
        if isinstance(kind, CustomKind):
            return self._kinds.get(kind.tag, KindInfo(display_name="Custom"))
        return KindInfo(display_name=kind.display_name, icon=kind.icon)

    def lockfiles(self, kind: ProjectKind) -> tuple[str, ...]:
        if isinstance(kind, CustomKind):
            return ()
        return LOCKFILES.get(kind, ())
