from .models import (
    Catalog,
    DiscoveryError,
    EngineAssociation,
    EngineDetectionResult,
    EngineVersion,
    Installation,
    InstallationSource,
    SourceResult,
)
from .catalog import build_catalog, find_installations

# resolve_engine is not re-exported: resolver imports unreal_build.project,
# which imports this package.

__all__ = [
    "Catalog",
    "DiscoveryError",
    "EngineAssociation",
    "EngineDetectionResult",
    "EngineVersion",
    "Installation",
    "InstallationSource",
    "SourceResult",
    "build_catalog",
    "find_installations",
]
