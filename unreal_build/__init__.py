"""Unreal Build Toolkit: engine discovery, target resolution and builds."""

from unreal_build.engine.resolver import resolve_engine
from unreal_build.engine.catalog import build_catalog, find_installations
from unreal_build.project import (
    InvalidProjectError,
    detect_project,
    read_descriptor,
    read_engine_association,
)
from unreal_build.targets import (
    TargetNotFoundError,
    get_available_targets,
    resolve_target,
)
from unreal_build.invocation import (
    BuildOptions,
    InvocationError,
    resolve_generate,
    resolve_invocation,
    resolve_run,
)

__version__ = "0.1.0"

__all__ = [
    "resolve_engine",
    "build_catalog",
    "find_installations",
    "InvalidProjectError",
    "detect_project",
    "read_descriptor",
    "read_engine_association",
    "TargetNotFoundError",
    "get_available_targets",
    "resolve_target",
    "BuildOptions",
    "InvocationError",
    "resolve_invocation",
    "resolve_run",
    "resolve_generate",
]
