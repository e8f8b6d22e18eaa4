"""Installation catalog: query every discovery source and merge the results.

Sources are independent, so they are queried concurrently. Merging always
follows ``SOURCE_PRIORITY`` (registry, launcher, environment) so the
first-occurrence-wins rule of deduplication does not depend on which source
finished first.
"""

import json
import logging
import platform
import re
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterable, Optional

from unreal_build.engine.environment import read_environment
from unreal_build.engine.launcher import read_manifest
from unreal_build.engine.models import (
    SOURCE_PRIORITY,
    Catalog,
    DiscoveryError,
    EngineVersion,
    Installation,
    InstallationSource,
    SourceResult,
)
from unreal_build.engine.registry import read_registry

logger = logging.getLogger("unreal-build")

VERSION_FILE_CANDIDATES = [
    ("Engine", "Binaries", "Win64", "UnrealEditor.version"),
    ("Engine", "Binaries", "Mac", "UnrealEditor.version"),
    ("Engine", "Binaries", "Linux", "UnrealEditor.version"),
    ("Engine", "Build", "Build.version"),
]

# Registry and launcher data only exist on Windows
_WINDOWS_ONLY = {InstallationSource.REGISTRY, InstallationSource.LAUNCHER}

# A path segment such as UE_5.3, UE_4_27 or UnrealEngine-5.4.1
_RE_PATH_VERSION = re.compile(
    r"(?:^|[\\/])(?:UE|UnrealEngine)[_-]?(\d+)(?:[._](\d+))?(?:[._](\d+))?(?=[\\/]|$)",
    re.IGNORECASE,
)

ReaderFn = Callable[[], SourceResult]


def version_from_path(path: str) -> Optional[EngineVersion]:
    """Best-effort version guess from the installation path.

    Missing minor/patch components default to zero. The result is tagged
    ``guessed`` so it is never mistaken for a version read from disk.
    """
    matches = list(_RE_PATH_VERSION.finditer(path or ""))
    if not matches:
        return None
    major, minor, patch = matches[-1].groups()
    return EngineVersion(
        major_version=int(major),
        minor_version=int(minor or 0),
        patch_version=int(patch or 0),
        guessed=True,
    )


def load_version(install_path: str) -> Optional[EngineVersion]:
    """Read the installation's version file, falling back to the path."""
    root = Path(install_path)
    for parts in VERSION_FILE_CANDIDATES:
        version_file = root.joinpath(*parts)
        if not version_file.is_file():
            continue
        try:
            with open(version_file, "r", encoding="utf-8-sig") as f:
                return EngineVersion.from_dict(json.load(f))
        except (OSError, ValueError) as e:
            logger.debug("Failed to parse version file %s: %s", version_file, e)

    return version_from_path(install_path)


def dedupe(installations: Iterable[Installation]) -> list[Installation]:
    """Collapse records that share a normalized path.

    The first occurrence keeps its scalar fields; a version carried by a later
    duplicate fills in a first occurrence that has none.
    """
    unique: dict[str, Installation] = {}
    for installation in installations:
        key = installation.normalized_path
        if not key:
            continue
        existing = unique.get(key)
        if existing is None:
            unique[key] = installation
        elif existing.version is None and installation.version is not None:
            unique[key] = existing.with_version(installation.version)
    return list(unique.values())


def _safe_read(source: InstallationSource, reader: ReaderFn) -> SourceResult:
    try:
        return reader()
    except Exception as e:
        logger.debug("Discovery source %s failed: %s", source.value, e, exc_info=True)
        return SourceResult(
            source=source,
            errors=[DiscoveryError(source, "", str(e), expected=False)],
        )


def collect_sources(
    platform_name: Optional[str] = None,
    *,
    registry: ReaderFn = read_registry,
    launcher: ReaderFn = read_manifest,
    environment: ReaderFn = read_environment,
) -> list[SourceResult]:
    """Query every applicable source; results come back in priority order."""
    system = platform_name or platform.system()
    readers = {
        InstallationSource.REGISTRY: registry,
        InstallationSource.LAUNCHER: launcher,
        InstallationSource.ENVIRONMENT: environment,
    }
    active = {
        source: reader
        for source, reader in readers.items()
        if system == "Windows" or source not in _WINDOWS_ONLY
    }

    with ThreadPoolExecutor(max_workers=len(active)) as pool:
        futures = {
            source: pool.submit(_safe_read, source, reader)
            for source, reader in active.items()
        }
        completed = {source: future.result() for source, future in futures.items()}

    results = []
    for source in SOURCE_PRIORITY:
        if source in completed:
            results.append(completed[source])
        else:
            results.append(
                SourceResult(
                    source=source,
                    skipped=True,
                    errors=[
                        DiscoveryError(source, "", f"not available on {system}")
                    ],
                )
            )
    return results


def build_catalog(platform_name: Optional[str] = None, **readers) -> Catalog:
    """Query, merge, dedupe and version every installation. Never raises."""
    sources = collect_sources(platform_name, **readers)
    merged = [inst for result in sources for inst in result.installations]
    unique = dedupe(merged)

    installations = []
    for installation in unique:
        try:
            version = load_version(installation.path)
        except Exception as e:
            logger.debug("Failed to load version for %s: %s", installation.path, e)
            version = None
        installations.append(installation.with_version(version))

    logger.debug(
        "Catalog: %d installations (%d before dedupe)", len(installations), len(merged)
    )
    return Catalog(installations=installations, sources=sources)


def find_installations(platform_name: Optional[str] = None, **readers) -> list[Installation]:
    """Return the deduplicated, versioned installation catalog."""
    return build_catalog(platform_name, **readers).installations
