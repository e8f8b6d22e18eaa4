"""Pick the engine installation a project should build against.

Matching is association-first: the installation whose association id equals
the project's ``EngineAssociation`` wins even when a newer engine is
installed. Without a match the newest installation is used, and a warning
says so, so a missing association is never masked.
"""

import logging
import re
from pathlib import Path
from typing import Callable, Optional

from unreal_build.engine.catalog import build_catalog
from unreal_build.engine.models import (
    Catalog,
    EngineAssociation,
    EngineDetectionResult,
    Installation,
    version_sort_key,
)
from unreal_build.project import InvalidProjectError, read_engine_association

logger = logging.getLogger("unreal-build")

_RE_BARE_VERSION = re.compile(r"^\d+\.\d+$")

CatalogFn = Callable[[], Catalog]


def normalize_token(token: str) -> str:
    """Association tokens compare without braces, whitespace or case."""
    return (token or "").strip().strip("{}").strip().casefold()


def find_associated(
    installations: list[Installation], association: EngineAssociation
) -> Optional[Installation]:
    """Find the installation registered under the project's association.

    An exact token match is preferred; otherwise tokens are compared
    normalized, and a bare version association such as ``"5.3"`` also
    matches the launcher's ``UE_5.3`` app name.
    """
    for installation in installations:
        if installation.association_id == association.guid:
            return installation

    wanted = normalize_token(association.guid)
    if not wanted:
        return None
    aliases = {wanted}
    if _RE_BARE_VERSION.match(wanted):
        aliases.add(f"ue_{wanted}")

    for installation in installations:
        if normalize_token(installation.association_id) in aliases:
            return installation
    return None


def newest(installations: list[Installation]) -> Optional[Installation]:
    """Installation with the greatest version; unknown versions sort lowest.

    Ties keep catalog order, which itself follows source priority.
    """
    if not installations:
        return None
    # max() returns the first maximal element, so catalog order breaks ties
    return max(installations, key=lambda inst: version_sort_key(inst.version))


def resolve_engine(
    project_path: Optional[str | Path] = None,
    *,
    catalog_fn: CatalogFn = build_catalog,
) -> EngineDetectionResult:
    """Resolve the engine for ``project_path`` (or for no project at all).

    Never raises: descriptor problems become warnings, unexpected failures
    populate ``error``.
    """
    result = EngineDetectionResult()

    try:
        if project_path:
            try:
                result.uproject_engine = read_engine_association(project_path)
            except (InvalidProjectError, OSError) as e:
                result.warnings.append(f"Failed to read project file: {e}")

        catalog = catalog_fn()
        result.sources = list(catalog.sources)
        installations = list(catalog.installations)

        if result.uproject_engine is not None:
            result.engine = find_associated(installations, result.uproject_engine)
            if result.engine is None:
                result.warnings.append(
                    f"Engine with association ID {result.uproject_engine.guid} "
                    "not found in installed engines"
                )

        if result.engine is None and installations:
            result.engine = newest(installations)
            result.warnings.append(
                f"Using engine {result.engine.label} at {result.engine.path} "
                "(not associated with project)"
            )
            if len(installations) > 1:
                result.warnings.append(
                    f"{len(installations)} engine installations found; "
                    "picked the newest version"
                )

        if not installations:
            searched = ", ".join(
                s.source.value for s in result.sources if not s.skipped
            ) or "none"
            result.warnings.append(
                "No engine installation found (sources searched: "
                f"{searched}). Set UE_ENGINE_PATH or pass --engine-path."
            )

    except Exception as e:
        logger.debug("Engine resolution failed", exc_info=True)
        result.error = str(e) or e.__class__.__name__

    return result
