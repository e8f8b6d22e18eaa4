"""Project descriptor (.uproject) reading and project detection.

Only the fields needed to associate a project with an engine are validated:
``FileVersion``, ``EngineAssociation``, ``Modules`` and, when present,
``Plugins``. Everything else in the descriptor is carried through untouched.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from unreal_build.engine.models import EngineAssociation

logger = logging.getLogger("unreal-build")

UPROJECT_SUFFIX = ".uproject"
EXPECTED_FILE_VERSION = 3


class InvalidProjectError(ValueError):
    """The project path or its descriptor cannot be used for resolution."""


@dataclass(frozen=True)
class ProjectDescriptor:
    path: Path
    file_version: int
    engine_association: str
    modules: list
    plugins: list = field(default_factory=list)
    category: str = ""
    description: str = ""
    warnings: tuple = ()

    @property
    def name(self) -> str:
        return self.path.stem


def find_uproject(project_path: str | Path) -> Path:
    """Normalize a project path to its descriptor file.

    Accepts a ``.uproject`` file or a directory containing one. When a
    directory holds several descriptors the first in name order is used.

    Raises:
        InvalidProjectError: if nothing resolvable is found.
    """
    path = Path(project_path).expanduser()
    if not path.exists():
        raise InvalidProjectError(f"Project path does not exist: {path}")

    if path.is_dir():
        try:
            candidates = sorted(
                p for p in path.iterdir() if p.suffix == UPROJECT_SUFFIX and p.is_file()
            )
        except OSError as e:
            raise InvalidProjectError(f"Failed to list {path}: {e}") from e
        if not candidates:
            raise InvalidProjectError(f"No .uproject file found in {path}")
        if len(candidates) > 1:
            logger.debug(
                "Multiple .uproject files in %s, using %s", path, candidates[0].name
            )
        return candidates[0]

    if path.suffix != UPROJECT_SUFFIX:
        raise InvalidProjectError(f"Project path is not a .uproject file: {path}")
    return path


def validate_descriptor(data: dict, path: Path) -> ProjectDescriptor:
    """Check the required fields and build a ``ProjectDescriptor``.

    Raises:
        InvalidProjectError: with the name of the first offending field.
    """
    if not isinstance(data, dict):
        raise InvalidProjectError(f"{path.name}: descriptor is not a JSON object")

    warnings = []

    if "FileVersion" not in data:
        raise InvalidProjectError(f"{path.name}: missing FileVersion field")
    file_version = data["FileVersion"]
    if not isinstance(file_version, int) or isinstance(file_version, bool):
        raise InvalidProjectError(
            f"{path.name}: FileVersion must be an integer, got {file_version!r}"
        )
    if file_version != EXPECTED_FILE_VERSION:
        warnings.append(
            f"Unexpected FileVersion: {file_version}. Expected {EXPECTED_FILE_VERSION}."
        )

    association = data.get("EngineAssociation")
    if not association or not isinstance(association, str):
        raise InvalidProjectError(f"{path.name}: missing EngineAssociation field")

    modules = data.get("Modules")
    if not isinstance(modules, list):
        raise InvalidProjectError(f"{path.name}: missing or invalid Modules array")

    plugins = data.get("Plugins", [])
    if not isinstance(plugins, list):
        raise InvalidProjectError(f"{path.name}: Plugins must be an array")

    return ProjectDescriptor(
        path=path,
        file_version=file_version,
        engine_association=association,
        modules=modules,
        plugins=plugins,
        category=data.get("Category", "") or "",
        description=data.get("Description", "") or "",
        warnings=tuple(warnings),
    )


def read_descriptor(project_path: str | Path) -> ProjectDescriptor:
    """Read and validate a project's descriptor."""
    uproject = find_uproject(project_path)
    try:
        with open(uproject, "r", encoding="utf-8-sig") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidProjectError(f"{uproject.name}: invalid JSON ({e})") from e
    except (UnicodeDecodeError, ValueError) as e:
        raise InvalidProjectError(f"{uproject.name}: not valid UTF-8 JSON ({e})") from e
    except OSError as e:
        raise InvalidProjectError(f"Failed to read {uproject}: {e}") from e
    return validate_descriptor(data, uproject)


def read_engine_association(project_path: str | Path) -> EngineAssociation:
    """Return the engine association declared by a project."""
    descriptor = read_descriptor(project_path)
    token = descriptor.engine_association
    return EngineAssociation(guid=token, name=token)


def project_dir(project_path: str | Path) -> Path:
    """Directory of a project given a descriptor file or the directory itself."""
    path = Path(project_path).expanduser()
    if path.suffix == UPROJECT_SUFFIX:
        return path.parent
    return path


# =============================================================================
# Project detection
# =============================================================================


@dataclass
class ProjectInfo:
    name: str
    path: Path
    uproject_path: Path
    descriptor: ProjectDescriptor
    source_dir: Optional[Path]
    targets: list = field(default_factory=list)
    modules: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "path": str(self.path),
            "uproject_path": str(self.uproject_path),
            "engine_association": self.descriptor.engine_association,
            "source_dir": str(self.source_dir) if self.source_dir else None,
            "targets": [
                {"name": t.name, "category": t.category.value} for t in self.targets
            ],
            "modules": [{"name": m.name, "path": str(m.path)} for m in self.modules],
            "descriptor_modules": self.descriptor.modules,
            "plugins": self.descriptor.plugins,
        }


@dataclass(frozen=True)
class SourceModule:
    name: str
    path: Path


@dataclass
class ProjectDetectionResult:
    project: Optional[ProjectInfo] = None
    error: Optional[str] = None
    warnings: list = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.project is not None and self.error is None

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "project": self.project.to_dict() if self.project else None,
            "error": self.error,
            "warnings": list(self.warnings),
        }


def find_source_modules(source_dir: Path) -> list[SourceModule]:
    """Every ``*.Build.cs`` module under ``Source/``."""
    return [
        SourceModule(name=p.name[: -len(".Build.cs")], path=p)
        for p in sorted(source_dir.rglob("*.Build.cs"))
    ]


def detect_project(cwd: str | Path, recursive: bool = False) -> ProjectDetectionResult:
    """Find and describe the Unreal project rooted at (or below) ``cwd``."""
    from unreal_build.targets import get_available_targets

    root = Path(cwd).expanduser()
    warnings: list[str] = []

    pattern = "**/*.uproject" if recursive else "*.uproject"
    try:
        uprojects = sorted(root.glob(pattern)) if root.is_dir() else []
    except OSError as e:
        return ProjectDetectionResult(error=str(e), warnings=warnings)
    if root.is_file() and root.suffix == UPROJECT_SUFFIX:
        uprojects = [root]

    if not uprojects:
        return ProjectDetectionResult(
            error="No Unreal Engine project (.uproject) file found", warnings=warnings
        )
    if len(uprojects) > 1:
        warnings.append(
            f"Found {len(uprojects)} .uproject files, using {uprojects[0].name}"
        )

    try:
        descriptor = read_descriptor(uprojects[0])
    except InvalidProjectError as e:
        return ProjectDetectionResult(
            error=f"Invalid .uproject file: {e}", warnings=warnings
        )
    warnings.extend(descriptor.warnings)

    directory = descriptor.path.parent
    source_dir = directory / "Source"
    if not source_dir.is_dir():
        warnings.append("Source directory not found - this may be a blueprint-only project")
        source_dir = None

    project = ProjectInfo(
        name=descriptor.name,
        path=directory,
        uproject_path=descriptor.path,
        descriptor=descriptor,
        source_dir=source_dir,
        targets=get_available_targets(directory) if source_dir else [],
        modules=find_source_modules(source_dir) if source_dir else [],
    )
    return ProjectDetectionResult(project=project, warnings=warnings)
