"""Global package-manager and tool cache catalog.

This is a best-effort list of well-known locations under the user's home.
Each detected cache becomes a CleanableItem; nothing here is specific to a
single project.
"""

import logging
import subprocess
from pathlib import Path
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from nulle.builder import DirectorySize, measure_directory
from nulle.environment import Environment
from nulle.models import CleanableItem, ScanResult, SafetyLevel
from nulle.shell import Runner, run_command

logger = logging.getLogger(__name__)

MB = 1000**2
GB = 1000**3

# tmutil does not report snapshot sizes; this is an estimate, not a measurement
TIME_MACHINE_SNAPSHOT_ESTIMATE = 2 * GB


class CacheDefinition(BaseModel):
    """A well-known cache location."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique identifier")
    name: str = Field(..., description="Human-readable name")
    category: str = Field(..., description="Ecosystem or tool family")
    icon: str = "🗄️"
    paths: list[str] = Field(..., description="Candidate paths, ~ is the injected home")
    safety: SafetyLevel = SafetyLevel.SAFE
    description: str = ""
    min_size_bytes: int = Field(10 * MB, description="Smaller caches are not reported")
    clean_command: Optional[str] = Field(None, description="Native cleanup command")
    platforms: Optional[tuple[str, ...]] = Field(None, description="sys.platform values, None for all")


CACHES: dict[str, CacheDefinition] = {
    # =========================================================================
    # JavaScript
    # =========================================================================
    "npm_cache": CacheDefinition(
        id="npm_cache",
        name="npm Cache",
        category="Node.js",
        icon="📦",
        paths=["~/.npm/_cacache"],
        description="Cached npm packages. Re-downloaded on next install.",
        clean_command="npm cache clean --force",
    ),
    "yarn_cache": CacheDefinition(
        id="yarn_cache",
        name="Yarn Cache",
        category="Node.js",
        icon="📦",
        paths=["~/.yarn/cache", "~/.cache/yarn", "~/Library/Caches/Yarn"],
        description="Cached Yarn packages.",
        clean_command="yarn cache clean",
    ),
    "pnpm_store": CacheDefinition(
        id="pnpm_store",
        name="pnpm Store",
        category="Node.js",
        icon="📦",
        paths=["~/.local/share/pnpm/store", "~/Library/pnpm/store"],
        safety=SafetyLevel.SAFE_WITH_COST,
        description="Content-addressed pnpm store shared by all projects.",
        clean_command="pnpm store prune",
    ),
    "bun_cache": CacheDefinition(
        id="bun_cache",
        name="Bun Cache",
        category="Node.js",
        icon="📦",
        paths=["~/.bun/install/cache"],
        description="Cached Bun packages.",
    ),
    # =========================================================================
    # Python
    # =========================================================================
    "pip_cache": CacheDefinition(
        id="pip_cache",
        name="pip Cache",
        category="Python",
        icon="🐍",
        paths=["~/.cache/pip", "~/Library/Caches/pip"],
        description="Cached pip wheels and downloads.",
        clean_command="pip cache purge",
    ),
    "uv_cache": CacheDefinition(
        id="uv_cache",
        name="uv Cache",
        category="Python",
        icon="🐍",
        paths=["~/.cache/uv", "~/Library/Caches/uv"],
        description="Cached uv wheels and source distributions.",
        clean_command="uv cache clean",
    ),
    "poetry_cache": CacheDefinition(
        id="poetry_cache",
        name="Poetry Cache",
        category="Python",
        icon="🐍",
        paths=["~/.cache/pypoetry", "~/Library/Caches/pypoetry"],
        description="Poetry package cache and virtualenvs.",
        safety=SafetyLevel.SAFE_WITH_COST,
    ),
    "conda_pkgs": CacheDefinition(
        id="conda_pkgs",
        name="Conda Package Cache",
        category="Python",
        icon="🐍",
        paths=["~/miniconda3/pkgs", "~/anaconda3/pkgs", "~/.conda/pkgs"],
        description="Cached conda package tarballs.",
        clean_command="conda clean --all --yes",
    ),
    # =========================================================================
    # Systems languages
    # =========================================================================
    "cargo_registry": CacheDefinition(
        id="cargo_registry",
        name="Cargo Registry",
        category="Rust",
        icon="🦀",
        paths=["~/.cargo/registry"],
        description="Downloaded crate sources and index.",
        safety=SafetyLevel.SAFE_WITH_COST,
    ),
    "cargo_git": CacheDefinition(
        id="cargo_git",
        name="Cargo Git Checkouts",
        category="Rust",
        icon="🦀",
        paths=["~/.cargo/git"],
        description="Git dependencies checked out by Cargo.",
        safety=SafetyLevel.SAFE_WITH_COST,
    ),
    "go_mod_cache": CacheDefinition(
        id="go_mod_cache",
        name="Go Module Cache",
        category="Go",
        icon="🐹",
        paths=["~/go/pkg/mod"],
        description="Downloaded Go modules.",
        safety=SafetyLevel.SAFE_WITH_COST,
        clean_command="go clean -modcache",
    ),
    "go_build_cache": CacheDefinition(
        id="go_build_cache",
        name="Go Build Cache",
        category="Go",
        icon="🐹",
        paths=["~/.cache/go-build", "~/Library/Caches/go-build"],
        description="Compiled package cache.",
        clean_command="go clean -cache",
    ),
    # =========================================================================
    # JVM and .NET
    # =========================================================================
    "gradle_cache": CacheDefinition(
        id="gradle_cache",
        name="Gradle Cache",
        category="Java",
        icon="☕",
        paths=["~/.gradle/caches", "~/.gradle/wrapper/dists"],
        description="Gradle dependency cache and wrapper distributions.",
        safety=SafetyLevel.SAFE_WITH_COST,
    ),
    "maven_repository": CacheDefinition(
        id="maven_repository",
        name="Maven Repository",
        category="Java",
        icon="☕",
        paths=["~/.m2/repository"],
        description="Local Maven artifact repository.",
        safety=SafetyLevel.SAFE_WITH_COST,
    ),
    "sbt_cache": CacheDefinition(
        id="sbt_cache",
        name="sbt / Coursier Cache",
        category="Scala",
        icon="☕",
        paths=["~/.ivy2/cache", "~/.cache/coursier", "~/Library/Caches/Coursier"],
        description="Scala dependency caches.",
        safety=SafetyLevel.SAFE_WITH_COST,
    ),
    "nuget_packages": CacheDefinition(
        id="nuget_packages",
        name="NuGet Packages",
        category=".NET",
        icon="🔷",
        paths=["~/.nuget/packages"],
        description="NuGet global packages folder.",
        safety=SafetyLevel.SAFE_WITH_COST,
        clean_command="dotnet nuget locals all --clear",
    ),
    # =========================================================================
    # Ruby / PHP / mobile
    # =========================================================================
    "gem_cache": CacheDefinition(
        id="gem_cache",
        name="RubyGems Cache",
        category="Ruby",
        icon="💎",
        paths=["~/.gem", "~/.bundle/cache"],
        description="Installed gems and Bundler cache.",
        safety=SafetyLevel.CAUTION,
    ),
    "composer_cache": CacheDefinition(
        id="composer_cache",
        name="Composer Cache",
        category="PHP",
        icon="🐘",
        paths=["~/.cache/composer", "~/.composer/cache", "~/Library/Caches/composer"],
        description="Cached Composer packages.",
        clean_command="composer clear-cache",
    ),
    "cocoapods_cache": CacheDefinition(
        id="cocoapods_cache",
        name="CocoaPods Cache",
        category="iOS",
        icon="🍎",
        paths=["~/Library/Caches/CocoaPods"],
        description="Cached pod specs and sources.",
        clean_command="pod cache clean --all",
        platforms=("darwin",),
    ),
    "xcode_derived_data": CacheDefinition(
        id="xcode_derived_data",
        name="Xcode DerivedData",
        category="iOS",
        icon="🍎",
        paths=["~/Library/Developer/Xcode/DerivedData"],
        description="Xcode build intermediates and indexes.",
        min_size_bytes=100 * MB,
        platforms=("darwin",),
    ),
    "pub_cache": CacheDefinition(
        id="pub_cache",
        name="Dart Pub Cache",
        category="Flutter",
        icon="🦋",
        paths=["~/.pub-cache"],
        description="Downloaded Dart and Flutter packages.",
        safety=SafetyLevel.SAFE_WITH_COST,
        clean_command="dart pub cache clean",
    ),
    # =========================================================================
    # Tools, browsers for testing, ML models
    # =========================================================================
    "playwright_browsers": CacheDefinition(
        id="playwright_browsers",
        name="Playwright Browsers",
        category="Testing",
        icon="🎭",
        paths=["~/.cache/ms-playwright", "~/Library/Caches/ms-playwright"],
        description="Browser binaries downloaded by Playwright.",
        safety=SafetyLevel.SAFE_WITH_COST,
        min_size_bytes=100 * MB,
    ),
    "cypress_cache": CacheDefinition(
        id="cypress_cache",
        name="Cypress Binary Cache",
        category="Testing",
        icon="🌲",
        paths=["~/.cache/Cypress", "~/Library/Caches/Cypress"],
        description="Cypress application binaries.",
        safety=SafetyLevel.SAFE_WITH_COST,
        min_size_bytes=100 * MB,
    ),
    "huggingface_cache": CacheDefinition(
        id="huggingface_cache",
        name="Hugging Face Hub Cache",
        category="ML",
        icon="🤗",
        paths=["~/.cache/huggingface"],
        description="Downloaded models and datasets.",
        safety=SafetyLevel.CAUTION,
        min_size_bytes=100 * MB,
    ),
    "git_lfs_cache": CacheDefinition(
        id="git_lfs_cache",
        name="Git LFS Cache",
        category="Git",
        icon="📁",
        paths=["~/.git-lfs"],
        description="Git Large File Storage objects.",
        safety=SafetyLevel.SAFE_WITH_COST,
        min_size_bytes=100 * MB,
        clean_command="git lfs prune",
    ),
    "vagrant_tmp": CacheDefinition(
        id="vagrant_tmp",
        name="Vagrant Temp Files",
        category="Vagrant",
        icon="📦",
        paths=["~/.vagrant.d/tmp"],
        description="Temporary Vagrant files.",
        min_size_bytes=50 * MB,
    ),
}


def get_cache(cache_id: str) -> CacheDefinition | None:
    """Get a cache definition by ID."""
    return CACHES.get(cache_id)


def get_all_caches() -> list[CacheDefinition]:
    """Get all cache definitions."""
    return list(CACHES.values())


def detect_caches(
    environment: Environment,
    definitions: Optional[list[CacheDefinition]] = None,
    sizer: Callable[[Path], DirectorySize] = measure_directory,
) -> list[CleanableItem]:
    """
    Find cache locations that exist and are large enough to report.

    Args:
        environment: Supplies the home directory and platform
        definitions: Catalog to check; defaults to CACHES
        sizer: Directory sizing function

    Returns:
        CleanableItems sorted by size, largest first
    """
    items: list[CleanableItem] = []
    for definition in definitions if definitions is not None else get_all_caches():
        if definition.platforms and environment.platform not in definition.platforms:
            continue
        for raw_path in definition.paths:
            path = environment.expand(raw_path)
            if not path.is_dir() or path.is_symlink():
                continue
            measured = sizer(path)
            if measured.size < definition.min_size_bytes:
                continue
            items.append(
                CleanableItem(
                    name=definition.name,
                    category=definition.category,
                    icon=definition.icon,
                    path=path,
                    size=measured.size,
                    file_count=measured.file_count,
                    description=definition.description,
                    safety=definition.safety,
                    clean_command=definition.clean_command,
                )
            )
    items.sort(key=lambda i: i.size, reverse=True)
    return items


def detect_time_machine_snapshots(
    environment: Environment,
    runner: Runner = run_command,
) -> list[CleanableItem]:
    """Report local Time Machine snapshots on macOS.

    The size is TIME_MACHINE_SNAPSHOT_ESTIMATE per snapshot.
    """
    if not environment.is_macos:
        return []
    try:
        result = runner(["tmutil", "listlocalsnapshotdates", "/"], timeout=30.0)
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("tmutil unavailable: %s", e)
        return []
    if not result.success:
        return []

    # First line is a header
    count = max(0, len([line for line in result.stdout.splitlines() if line.strip()]) - 1)
    if count == 0:
        return []
    return [
        CleanableItem(
            name=f"Time Machine Snapshots ({count} snapshots)",
            category="System",
            icon="⏰",
            path=Path("/"),
            size=count * TIME_MACHINE_SNAPSHOT_ESTIMATE,
            file_count=count,
            description="Local Time Machine snapshots (estimated size).",
            safety=SafetyLevel.CAUTION,
            clean_command="tmutil deletelocalsnapshots /",
        )
    ]


def project_items(result: ScanResult) -> list[CleanableItem]:
    """Flatten a scan result into one CleanableItem per project artifact."""
    items: list[CleanableItem] = []
    for project in result.projects:
        for artifact in project.artifacts:
            if artifact.size == 0:
                continue
            items.append(
                CleanableItem(
                    name=f"{project.name} ({artifact.name})",
                    category=project.kind.display_name,
                    icon=project.kind.icon,
                    path=artifact.path,
                    size=artifact.size,
                    file_count=artifact.file_count,
                    last_modified=project.last_modified,
                    description=f"{artifact.name} of {project.root}",
                    safety=SafetyLevel.SAFE,
                )
            )
    return items
