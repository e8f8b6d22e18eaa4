"""Turn a build request into a concrete build-tool invocation.

``BuildOptions`` is the one place every recognized option and its default
lives. ``resolve_invocation`` combines the engine resolver and the target
resolver into a ``BuildInvocation`` that the runner (or any other process
launcher) can execute. ``resolve_run`` does the same for launching a built
target and ``resolve_generate`` for writing IDE project files.
"""

import logging
import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from unreal_build.engine.models import EngineDetectionResult
from unreal_build.engine.resolver import resolve_engine
from unreal_build.project import find_uproject
from unreal_build.targets import get_available_targets, resolve_target

logger = logging.getLogger("unreal-build")

VALID_CONFIGS = ("Debug", "DebugGame", "Development", "Shipping", "Test")
VALID_PLATFORMS = ("Win64", "Win32", "Linux", "Mac", "Android", "IOS")


class InvocationError(RuntimeError):
    """A build invocation cannot be assembled (no engine, bad engine path)."""


def host_platform(system: Optional[str] = None) -> str:
    """Build platform name for the machine we are running on."""
    system = system or platform.system()
    if system == "Darwin":
        return "Mac"
    if system == "Linux":
        return "Linux"
    return "Win64"


@dataclass(frozen=True)
class BuildOptions:
    target: str = "Editor"
    config: str = "Development"
    platform: str = field(default_factory=host_platform)
    project_path: Optional[str] = None
    engine_path: Optional[str] = None
    clean: bool = False
    verbose: bool = False
    additional_args: tuple = ()

    def __post_init__(self):
        if not self.target or not self.target.strip():
            raise ValueError("Build target must not be empty")
        if self.config not in VALID_CONFIGS:
            raise ValueError(
                f"Invalid build configuration '{self.config}'. "
                f"Valid: {', '.join(VALID_CONFIGS)}"
            )
        if self.platform not in VALID_PLATFORMS:
            raise ValueError(
                f"Invalid build platform '{self.platform}'. "
                f"Valid: {', '.join(VALID_PLATFORMS)}"
            )
        object.__setattr__(self, "additional_args", tuple(self.additional_args))


def is_valid_engine_path(engine_path: str | Path) -> bool:
    """Whether ``engine_path`` looks like an engine root (has Engine/Binaries)."""
    root = Path(engine_path)
    return (root / "Engine").is_dir() and (root / "Engine" / "Binaries").is_dir()


def build_tool_path(engine_path: str | Path, system: Optional[str] = None) -> Path:
    """Locate the build entry point inside an engine root.

    Prefers the batch/shell wrapper and falls back to UnrealBuildTool itself.
    The returned path may not exist; callers report that.
    """
    system = system or platform.system()
    batch_files = Path(engine_path) / "Engine" / "Build" / "BatchFiles"
    if system == "Windows":
        wrapper = batch_files / "Build.bat"
    elif system == "Darwin":
        wrapper = batch_files / "Mac" / "Build.sh"
    else:
        wrapper = batch_files / "Linux" / "Build.sh"
    if wrapper.is_file():
        return wrapper
    return unreal_build_tool_path(engine_path, system)


@dataclass
class BuildInvocation:
    """Everything needed to launch one build."""

    engine_path: str
    project_file: str
    target: str
    config: str
    platform: str
    tool_path: str
    clean: bool = False
    verbose: bool = False
    additional_args: tuple = ()
    warnings: list = field(default_factory=list)

    def argv(self) -> list[str]:
        args = [
            self.tool_path,
            self.target,
            self.platform,
            self.config,
            f"-project={self.project_file}",
        ]
        if self.clean:
            args.append("-clean")
        if self.verbose:
            args.append("-verbose")
        args.extend(self.additional_args)
        return args

    def to_dict(self) -> dict:
        return {
            "engine_path": self.engine_path,
            "project_file": self.project_file,
            "target": self.target,
            "config": self.config,
            "platform": self.platform,
            "tool_path": self.tool_path,
            "argv": self.argv(),
            "warnings": list(self.warnings),
        }


def _engine_path_for(
    uproject: Path,
    engine_path: Optional[str],
    engine_resolver: Callable[[str], EngineDetectionResult],
    warnings: list,
) -> str:
    """Explicit engine path, or the one the resolver picks for ``uproject``."""
    if not engine_path:
        detection = engine_resolver(str(uproject))
        if detection.error:
            raise InvocationError(f"Engine resolution failed: {detection.error}")
        warnings.extend(detection.warnings)
        if detection.engine is None:
            raise InvocationError(
                "Could not determine engine path. Please specify --engine-path"
            )
        engine_path = detection.engine.path

    if not Path(engine_path).exists():
        raise InvocationError(f"Engine path does not exist: {engine_path}")
    if not is_valid_engine_path(engine_path):
        warnings.append(f"{engine_path} does not look like an engine root (no Engine/Binaries)")
    return str(engine_path)


def resolve_invocation(
    options: BuildOptions,
    *,
    engine_resolver: Callable[[str], EngineDetectionResult] = resolve_engine,
    cwd: Optional[str | Path] = None,
) -> BuildInvocation:
    """Resolve engine path and target name for ``options``.

    Raises:
        InvalidProjectError: if the project path does not lead to a descriptor.
        InvocationError: if no usable engine path can be determined.
        TargetNotFoundError: if the requested target does not exist.
    """
    uproject = find_uproject(options.project_path or cwd or os.getcwd())
    warnings: list[str] = []
    engine_path = _engine_path_for(uproject, options.engine_path, engine_resolver, warnings)

    target = resolve_target(uproject, options.target, get_available_targets(uproject))
    if target != options.target:
        logger.debug("Target %s resolved to %s", options.target, target)

    invocation = BuildInvocation(
        engine_path=engine_path,
        project_file=str(uproject),
        target=target,
        config=options.config,
        platform=options.platform,
        tool_path=str(build_tool_path(engine_path)),
        clean=options.clean,
        verbose=options.verbose,
        additional_args=options.additional_args,
        warnings=warnings,
    )
    for warning in warnings:
        logger.warning(warning)
    return invocation


# =============================================================================
# Running built executables
# =============================================================================

EDITOR_EXECUTABLES = ("UnrealEditor", "UnrealEditor-Cmd", "UE4Editor", "UE5Editor")


def executable_suffix(platform_name: str) -> str:
    return ".exe" if platform_name in ("Win64", "Win32") else ""


def is_editor_target(target: str) -> bool:
    return "editor" in target.lower()


def editor_candidates(engine_path: str | Path, platform_name: str) -> list[Path]:
    """Editor binaries inside an engine root, most preferred first."""
    binaries = Path(engine_path) / "Engine" / "Binaries" / platform_name
    if platform_name == "Mac":
        # The command-line editor is a plain binary, the others are app bundles
        return [
            binaries / name
            if name.endswith("-Cmd")
            else binaries / f"{name}.app" / "Contents" / "MacOS" / name
            for name in EDITOR_EXECUTABLES
        ]
    suffix = executable_suffix(platform_name)
    return [binaries / f"{name}{suffix}" for name in EDITOR_EXECUTABLES]


def game_candidates(
    uproject: Path, target: str, config: str, platform_name: str
) -> list[Path]:
    """Where a packaged or staged target binary may live inside a project."""
    binaries = uproject.parent / "Binaries" / platform_name
    project = uproject.stem
    suffix = executable_suffix(platform_name)
    return [
        binaries / f"{project}{suffix}",
        binaries / f"{project}-{platform_name}-{config}" / f"{project}{suffix}",
        binaries / f"{target}{suffix}",
        binaries / f"{target}-{platform_name}-{config}{suffix}",
    ]


def find_executable(candidates: list[Path]) -> Path:
    """First candidate that exists, else the first (expected) location."""
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return candidates[0]


@dataclass
class RunInvocation:
    """A built target ready to launch."""

    executable: str
    project_file: str
    target: str
    config: str
    platform: str
    engine_path: Optional[str] = None
    additional_args: tuple = ()
    warnings: list = field(default_factory=list)

    @property
    def is_editor(self) -> bool:
        return is_editor_target(self.target)

    @property
    def cwd(self) -> str:
        return str(Path(self.executable).parent)

    def argv(self) -> list[str]:
        args = [self.executable]
        if self.is_editor:
            args.append(self.project_file)
        args.extend(self.additional_args)
        return args

    def to_dict(self) -> dict:
        return {
            "executable": self.executable,
            "exists": Path(self.executable).is_file(),
            "project_file": self.project_file,
            "target": self.target,
            "config": self.config,
            "platform": self.platform,
            "engine_path": self.engine_path,
            "argv": self.argv(),
            "warnings": list(self.warnings),
        }


def resolve_run(
    options: BuildOptions,
    *,
    engine_resolver: Callable[[str], EngineDetectionResult] = resolve_engine,
    cwd: Optional[str | Path] = None,
) -> RunInvocation:
    """Find the executable for ``options.target``.

    Editor targets run the engine's editor with the project as first
    argument, so they need an engine. Other targets run the project's own
    binary. The executable may not exist yet; the runner reports that.

    Raises:
        InvalidProjectError: if the project path does not lead to a descriptor.
        InvocationError: if an editor target has no usable engine.
        TargetNotFoundError: if the requested target does not exist.
    """
    uproject = find_uproject(options.project_path or cwd or os.getcwd())
    warnings: list[str] = []
    target = resolve_target(uproject, options.target, get_available_targets(uproject))

    engine_path = None
    if is_editor_target(target):
        engine_path = _engine_path_for(
            uproject, options.engine_path, engine_resolver, warnings
        )
        candidates = editor_candidates(engine_path, options.platform)
    else:
        candidates = game_candidates(uproject, target, options.config, options.platform)

    run = RunInvocation(
        executable=str(find_executable(candidates)),
        project_file=str(uproject),
        target=target,
        config=options.config,
        platform=options.platform,
        engine_path=engine_path,
        additional_args=options.additional_args,
        warnings=warnings,
    )
    for warning in warnings:
        logger.warning(warning)
    return run


# =============================================================================
# IDE project files
# =============================================================================

# ide -> (UnrealBuildTool flag, description); Visual Studio is the default
IDE_FORMATS = {
    "sln": (None, "Visual Studio solution"),
    "vs2022": (None, "Visual Studio 2022 solution"),
    "vscode": ("-VSCode", "Visual Studio Code workspace"),
    "clion": ("-CLion", "CLion (CMakeLists.txt)"),
    "xcode": ("-XCodeProjectFiles", "Xcode project"),
}


@dataclass
class GenerateInvocation:
    """UnrealBuildTool call that writes IDE project files for a project."""

    engine_path: str
    project_file: str
    ide: str
    tool_path: str
    force: bool = False
    warnings: list = field(default_factory=list)

    def argv(self) -> list[str]:
        args = [
            self.tool_path,
            "-projectfiles",
            f"-project={self.project_file}",
            "-game",
            "-engine",
        ]
        flag = IDE_FORMATS[self.ide][0]
        if flag:
            args.append(flag)
        if self.force:
            args.append("-force")
        return args

    def to_dict(self) -> dict:
        return {
            "engine_path": self.engine_path,
            "project_file": self.project_file,
            "ide": self.ide,
            "tool_path": self.tool_path,
            "argv": self.argv(),
            "warnings": list(self.warnings),
        }


def unreal_build_tool_path(engine_path: str | Path, system: Optional[str] = None) -> Path:
    system = system or platform.system()
    exe = "UnrealBuildTool.exe" if system == "Windows" else "UnrealBuildTool"
    return (
        Path(engine_path) / "Engine" / "Binaries" / "DotNET" / "UnrealBuildTool" / exe
    )


def resolve_generate(
    project_path: Optional[str | Path] = None,
    ide: str = "sln",
    engine_path: Optional[str] = None,
    force: bool = False,
    *,
    engine_resolver: Callable[[str], EngineDetectionResult] = resolve_engine,
    cwd: Optional[str | Path] = None,
) -> GenerateInvocation:
    """Build the UnrealBuildTool ``-projectfiles`` call for ``ide``.

    Raises:
        ValueError: for an unknown IDE.
        InvalidProjectError: if the project path does not lead to a descriptor.
        InvocationError: if no usable engine path can be determined.
    """
    if ide not in IDE_FORMATS:
        raise ValueError(f"Unknown IDE '{ide}'. Valid: {', '.join(IDE_FORMATS)}")
    uproject = find_uproject(project_path or cwd or os.getcwd())
    warnings: list[str] = []
    engine_path = _engine_path_for(uproject, engine_path, engine_resolver, warnings)

    invocation = GenerateInvocation(
        engine_path=engine_path,
        project_file=str(uproject),
        ide=ide,
        tool_path=str(unreal_build_tool_path(engine_path)),
        force=force,
        warnings=warnings,
    )
    for warning in warnings:
        logger.warning(warning)
    return invocation


_GENERATED_PATTERNS = {
    "sln": ("*.sln", "*.vcxproj", "*.vcxproj.filters"),
    "vs2022": ("*.sln", "*.vcxproj", "*.vcxproj.filters"),
    "vscode": ("*.sln", "*.code-workspace", ".vscode/*"),
    "clion": ("CMakeLists.txt",),
    "xcode": ("*.xcodeproj",),
}


def find_generated_files(project_file: str | Path, ide: str) -> list[Path]:
    """Project files the generator left next to the descriptor."""
    root = Path(project_file).parent
    found: list[Path] = []
    for pattern in _GENERATED_PATTERNS.get(ide, ()):
        found.extend(sorted(root.glob(pattern)))
    return found
