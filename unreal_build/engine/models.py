"""Data model for engine discovery and resolution.

All records are immutable once built. A fresh set is produced on every
catalog build; nothing here is cached across calls.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Optional

from unreal_build.pathutil import normalize_install_path


# Shown for installations whose version could not be determined at all.
# Display only: never used for ordering.
DEFAULT_DISPLAY_MAJOR = 5


class InstallationSource(str, Enum):
    """Where an installation record came from, in merge-priority order."""

    REGISTRY = "registry"
    LAUNCHER = "launcher"
    ENVIRONMENT = "environment"


SOURCE_PRIORITY = (
    InstallationSource.REGISTRY,
    InstallationSource.LAUNCHER,
    InstallationSource.ENVIRONMENT,
)


@dataclass(frozen=True, eq=False)
class EngineVersion:
    """Build identity of one installation (the engine's ``Build.version``).

    ``guessed`` marks versions reconstructed from the installation path
    instead of read from a version file. Equality, hashing and ordering all
    use ``sort_key``, so versions differing only in branch, build id or
    ``guessed`` compare equal.
    """

    major_version: int
    minor_version: int = 0
    patch_version: int = 0
    changelist: int = 0
    compatible_changelist: int = 0
    is_licensee_version: int = 0
    is_promoted_build: int = 0
    branch_name: str = ""
    build_id: str = ""
    guessed: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "EngineVersion":
        """Build from the JSON payload of a ``*.version`` file.

        Raises:
            ValueError: if the payload is not an object or lacks
                ``MajorVersion``/``MinorVersion``.
        """
        if not isinstance(data, dict):
            raise ValueError("version file is not a JSON object")
        missing = [k for k in ("MajorVersion", "MinorVersion") if k not in data]
        if missing:
            raise ValueError(f"version file missing {', '.join(missing)}")
        try:
            return cls(
                major_version=int(data["MajorVersion"]),
                minor_version=int(data["MinorVersion"]),
                patch_version=int(data.get("PatchVersion", 0) or 0),
                changelist=int(data.get("Changelist", 0) or 0),
                compatible_changelist=int(data.get("CompatibleChangelist", 0) or 0),
                is_licensee_version=int(data.get("IsLicenseeVersion", 0) or 0),
                is_promoted_build=int(data.get("IsPromotedBuild", 0) or 0),
                branch_name=str(data.get("BranchName", "") or ""),
                build_id=str(data.get("BuildId", "") or ""),
            )
        except (TypeError, ValueError) as e:
            raise ValueError(f"version file has a non-numeric field: {e}") from e

    @property
    def sort_key(self) -> tuple[int, int, int, int]:
        return (
            self.major_version,
            self.minor_version,
            self.patch_version,
            self.changelist,
        )

    def __eq__(self, other):
        if not isinstance(other, EngineVersion):
            return NotImplemented
        return self.sort_key == other.sort_key

    def __hash__(self):
        return hash(self.sort_key)

    def __lt__(self, other):
        if not isinstance(other, EngineVersion):
            return NotImplemented
        return self.sort_key < other.sort_key

    def __le__(self, other):
        if not isinstance(other, EngineVersion):
            return NotImplemented
        return self.sort_key <= other.sort_key

    def __gt__(self, other):
        if not isinstance(other, EngineVersion):
            return NotImplemented
        return self.sort_key > other.sort_key

    def __ge__(self, other):
        if not isinstance(other, EngineVersion):
            return NotImplemented
        return self.sort_key >= other.sort_key

    def __str__(self) -> str:
        text = f"{self.major_version}.{self.minor_version}.{self.patch_version}"
        return f"{text} (guessed)" if self.guessed else text


def version_sort_key(version: Optional[EngineVersion]) -> tuple:
    """Total-order key where an unknown version sorts below every known one."""
    if version is None:
        return (0, (0, 0, 0, 0))
    return (1, version.sort_key)


class Installation:
    """One discovered engine root.

    Identity is the normalized, case-insensitive ``path``: two records with
    the same path are the same installation whatever source reported them.
    """

    __slots__ = (
        "path",
        "association_id",
        "version",
        "display_name",
        "installed_date",
        "source",
        "normalized_path",
    )

    def __init__(
        self,
        path: str,
        association_id: str,
        source: InstallationSource,
        version: Optional[EngineVersion] = None,
        display_name: Optional[str] = None,
        installed_date: Optional[str] = None,
    ):
        setter = object.__setattr__
        setter(self, "path", path)
        setter(self, "association_id", association_id)
        setter(self, "source", InstallationSource(source))
        setter(self, "version", version)
        setter(self, "display_name", display_name)
        setter(self, "installed_date", installed_date)
        setter(self, "normalized_path", normalize_install_path(path))

    def __setattr__(self, name, value):
        raise AttributeError(f"Installation is immutable (tried to set {name!r})")

    def __eq__(self, other):
        if not isinstance(other, Installation):
            return NotImplemented
        return self.normalized_path == other.normalized_path

    def __hash__(self):
        return hash(self.normalized_path)

    def __repr__(self):
        return (
            f"Installation(path={self.path!r}, association_id={self.association_id!r}, "
            f"source={self.source.value!r}, version={self.version!r})"
        )

    def with_version(self, version: Optional[EngineVersion]) -> "Installation":
        """Return a copy carrying ``version``; an existing version is kept."""
        if self.version is not None or version is None:
            return self
        return Installation(
            path=self.path,
            association_id=self.association_id,
            source=self.source,
            version=version,
            display_name=self.display_name,
            installed_date=self.installed_date,
        )

    @property
    def label(self) -> str:
        """Human-readable name for messages."""
        if self.version is not None and not self.version.guessed:
            return f"UE {self.version.major_version}.{self.version.minor_version}.{self.version.patch_version}"
        if self.display_name:
            return self.display_name
        if self.version is not None:
            return f"UE {self.version.major_version}.{self.version.minor_version}"
        return f"UE {DEFAULT_DISPLAY_MAJOR}.x ({self.association_id})"

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "association_id": self.association_id,
            "display_name": self.display_name,
            "label": self.label,
            "installed_date": self.installed_date,
            "source": self.source.value,
            "version": asdict(self.version) if self.version else None,
        }


@dataclass(frozen=True)
class EngineAssociation:
    """A project's declared binding to an engine, read from its descriptor."""

    guid: str
    name: Optional[str] = None
    path: Optional[str] = None
    version: Optional[str] = None


@dataclass(frozen=True)
class DiscoveryError:
    """Why a source (or one location of it) contributed nothing.

    ``expected`` is True for plain absence (missing key, missing file, wrong
    platform) and False for failures a user could plausibly fix.
    """

    source: InstallationSource
    location: str
    message: str
    expected: bool = True


@dataclass
class SourceResult:
    """Outcome of probing one discovery source."""

    source: InstallationSource
    installations: list = field(default_factory=list)
    errors: list = field(default_factory=list)
    skipped: bool = False

    @property
    def contributed(self) -> bool:
        return bool(self.installations)

    def to_dict(self) -> dict:
        return {
            "source": self.source.value,
            "skipped": self.skipped,
            "found": len(self.installations),
            "errors": [
                {"location": e.location, "message": e.message, "expected": e.expected}
                for e in self.errors
            ],
        }


@dataclass
class Catalog:
    """Deduplicated installations plus the per-source discovery results."""

    installations: list = field(default_factory=list)
    sources: list = field(default_factory=list)


@dataclass
class EngineDetectionResult:
    engine: Optional[Installation] = None
    uproject_engine: Optional[EngineAssociation] = None
    warnings: list = field(default_factory=list)
    error: Optional[str] = None
    sources: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "engine": self.engine.to_dict() if self.engine else None,
            "uproject_engine": asdict(self.uproject_engine)
            if self.uproject_engine
            else None,
            "warnings": list(self.warnings),
            "error": self.error,
            "sources": [s.to_dict() for s in self.sources],
        }
