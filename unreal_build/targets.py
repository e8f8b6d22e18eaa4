"""Build target discovery and resolution.

A project's ``Source/`` folder holds one ``<Name>.Target.cs`` per target.
Callers usually ask for a generic category ("Editor") and this module maps
it to the concrete name the build tool expects ("MyGameEditor").
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

from unreal_build.project import project_dir

logger = logging.getLogger("unreal-build")

TARGET_SUFFIX = ".Target.cs"


class TargetCategory(str, Enum):
    EDITOR = "Editor"
    GAME = "Game"
    CLIENT = "Client"
    SERVER = "Server"


GENERIC_TARGETS = {c.value for c in TargetCategory}


class TargetNotFoundError(LookupError):
    """No target in the project matches the requested category or name."""

    def __init__(self, requested: str, available: list[str]):
        self.requested = requested
        self.available = available
        if requested in GENERIC_TARGETS:
            msg = f"No {requested} target found in project."
        else:
            msg = f'Target "{requested}" not found in project.'
        super().__init__(
            f"{msg} Available targets: {', '.join(available) or '(none)'}"
        )


@dataclass(frozen=True)
class BuildTargetDescriptor:
    name: str
    category: TargetCategory
    path: Optional[Path] = None

    def to_dict(self) -> dict:
        return {"name": self.name, "category": self.category.value}


def infer_category(name: str) -> TargetCategory:
    """Guess a target's category from its name; anything else is a game target."""
    lowered = name.lower()
    if "editor" in lowered:
        return TargetCategory.EDITOR
    if "client" in lowered:
        return TargetCategory.CLIENT
    if "server" in lowered:
        return TargetCategory.SERVER
    return TargetCategory.GAME


def get_available_targets(project_path: str | Path) -> list[BuildTargetDescriptor]:
    """List the targets defined in ``<project>/Source``.

    An empty list is a normal answer (content-only projects have no
    ``Source`` folder).
    """
    source_dir = project_dir(project_path) / "Source"
    if not source_dir.is_dir():
        logger.debug("No Source directory at %s", source_dir)
        return []

    targets = []
    for target_file in sorted(source_dir.glob("*" + TARGET_SUFFIX)):
        name = target_file.name[: -len(TARGET_SUFFIX)]
        targets.append(
            BuildTargetDescriptor(
                name=name, category=infer_category(name), path=target_file
            )
        )
    return targets


def match_target(requested: str, targets: Iterable[BuildTargetDescriptor]) -> str:
    """Pick the concrete target name for ``requested`` among ``targets``.

    Raises:
        TargetNotFoundError: if nothing matches.
    """
    targets = list(targets)
    names = [t.name for t in targets]

    if requested in GENERIC_TARGETS:
        category = TargetCategory(requested)
        for target in targets:
            if target.category == category:
                logger.debug('Resolved generic target "%s" to "%s"', requested, target.name)
                return target.name
        for target in targets:
            if requested.lower() in target.name.lower():
                logger.debug('Fallback: resolved target "%s" to "%s"', requested, target.name)
                return target.name
        raise TargetNotFoundError(requested, names)

    if requested in names:
        return requested
    raise TargetNotFoundError(requested, names)


def resolve_target(
    project_path: str | Path,
    requested: str,
    targets: Optional[list[BuildTargetDescriptor]] = None,
) -> str:
    """Resolve a generic category or explicit target name for a project.

    When the project defines no targets at all the request is returned
    unchanged; whether that is acceptable is the caller's decision.

    Raises:
        TargetNotFoundError: if targets exist but none matches.
    """
    if targets is None:
        targets = get_available_targets(project_path)
    if not targets:
        logger.debug("No target files found, using generic target name %s", requested)
        return requested
    return match_target(requested, targets)


def default_target(targets: Iterable[BuildTargetDescriptor]) -> str:
    """Editor when the project has an editor target, otherwise Game."""
    if any(t.category == TargetCategory.EDITOR for t in targets):
        return TargetCategory.EDITOR.value
    return TargetCategory.GAME.value
