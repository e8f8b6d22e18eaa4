#!/usr/bin/env python3
"""
Unreal Build Toolkit - engine discovery and build CLI

Usage:
    unreal-build engine                     Show the engine for the current project
    unreal-build engine --verbose           Also list every detected installation
    unreal-build targets                    List build targets of the project
    unreal-build build Editor               Build the project's editor target
    unreal-build build Game --dry-run       Show the command without running it
    unreal-build run Game --build-first     Build, then launch the game
    unreal-build generate --ide vscode      Write IDE project files
    unreal-build detect                     Describe the project in this directory

    unreal-build add <path>                 Add project + set active
    unreal-build use <name>                 Switch active project
    unreal-build list                       List all projects
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from unreal_build import core
from unreal_build.engine.catalog import build_catalog
from unreal_build.engine.resolver import resolve_engine
from unreal_build.invocation import (
    IDE_FORMATS,
    VALID_CONFIGS,
    VALID_PLATFORMS,
    BuildOptions,
    InvocationError,
    find_generated_files,
    resolve_generate,
    resolve_invocation,
    resolve_run,
)
from unreal_build.project import detect_project
from unreal_build.runner import run_executable, run_invocation
from unreal_build.targets import TargetNotFoundError, get_available_targets


def _print_json(data):
    print(json.dumps(data, indent=2, default=str))


def _project_from_args(args):
    """Resolve the project: --project > active project in config > cwd.

    Returns (project_path or None, saved project settings).
    """
    if getattr(args, "project", None):
        return args.project, {}

    settings = core.get_project_settings()
    if settings.get("project_path"):
        return settings["project_path"], settings

    cwd = os.getcwd()
    if any(p.suffix == ".uproject" for p in Path(cwd).iterdir()):
        return cwd, {}
    return None, {}


def cmd_engine(args):
    """Show engine information for the project."""
    project_path, _ = _project_from_args(args)

    catalog = build_catalog()
    result = resolve_engine(project_path, catalog_fn=lambda: catalog)

    if args.json:
        data = result.to_dict()
        if args.verbose:
            data["installations"] = [i.to_dict() for i in catalog.installations]
        _print_json(data)
        return

    if args.verbose:
        print("Engine Detection Details")
        print(f"  Total engines detected: {len(catalog.installations)}")
        for index, engine in enumerate(catalog.installations, start=1):
            print()
            print(f"  Engine {index}:")
            print(f"    Path: {engine.path}")
            print(f"    Source: {engine.source.value}")
            print(f"    Association ID: {engine.association_id}")
            print(f"    Display Name: {engine.display_name or '(none)'}")
            if engine.version:
                print(f"    Version: {engine.version}")
            if engine.installed_date:
                print(f"    Installed: {engine.installed_date}")
        print()
        print("Sources:")
        for source in catalog.sources:
            if source.skipped:
                status = "skipped"
            else:
                status = f"{len(source.installations)} found"
            print(f"  {source.source.value}: {status}")
            for error in source.errors:
                if not error.expected:
                    print(f"    ! {error.location or source.source.value}: {error.message}")
        print()

    if result.error:
        print(f"ERROR: {result.error}")
        sys.exit(1)

    if result.engine:
        engine = result.engine
        print(f"Engine: {engine.label}")
        print(f"  Path: {engine.path}")
        print(f"  Association ID: {engine.association_id}")
        if engine.version:
            print(f"  Version: {engine.version}")
            if not engine.version.guessed:
                print(f"  Build ID: {engine.version.build_id or '(none)'}")
                print(f"  Branch: {engine.version.branch_name or '(none)'}")
                print(f"  Changelist: {engine.version.changelist}")
                print(f"  Promoted Build: {'Yes' if engine.version.is_promoted_build else 'No'}")
        if engine.installed_date:
            print(f"  Installed: {engine.installed_date}")
    else:
        print("No engine installation found")

    if result.uproject_engine:
        print()
        print("Project Engine Association:")
        print(f"  GUID: {result.uproject_engine.guid}")

    if result.warnings:
        print()
        print("Warnings:")
        for warning in result.warnings:
            print(f"  - {warning}")

    if not result.engine:
        sys.exit(1)


def cmd_targets(args):
    """List available build targets."""
    project_path, _ = _project_from_args(args)
    if not project_path:
        print("ERROR: No project found. Use --project or run inside a project folder.")
        sys.exit(1)

    targets = get_available_targets(project_path)
    if args.json:
        _print_json([t.to_dict() for t in targets])
        return

    if not targets:
        print("No target files found (blueprint-only project?)")
        return
    print("Build targets:")
    for target in targets:
        print(f"  {target.name} ({target.category.value})")


def cmd_build(args):
    """Resolve and run (or preview) a build."""
    project_path, settings = _project_from_args(args)
    if not project_path:
        print("ERROR: No project found. Use --project or run inside a project folder.")
        sys.exit(1)

    defaults = core.get_build_defaults()
    try:
        options = BuildOptions(
            target=args.target,
            config=args.config or defaults.get("config", "Development"),
            platform=args.platform or defaults.get("platform") or BuildOptions().platform,
            project_path=project_path,
            engine_path=args.engine_path or settings.get("engine_path") or None,
            clean=args.clean,
            verbose=args.verbose,
            additional_args=tuple(args.extra or ()),
        )
        invocation = resolve_invocation(options)
    except (ValueError, InvocationError, TargetNotFoundError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    print(f"Build: {invocation.target} | {invocation.platform} | {invocation.config}")
    print(f"  Project: {invocation.project_file}")
    print(f"  Engine: {invocation.engine_path}")

    if args.dry_run:
        print(f"  Command: {' '.join(invocation.argv())}")
        return

    print()
    result = run_invocation(invocation)
    print()
    if result.success:
        print(f"Build completed successfully in {result.duration:.1f}s")
    else:
        print(f"ERROR: {result.error}")
        sys.exit(result.exit_code if result.exit_code > 0 else 1)


def cmd_run(args):
    """Launch a built target, optionally building it first."""
    project_path, settings = _project_from_args(args)
    if not project_path:
        print("ERROR: No project found. Use --project or run inside a project folder.")
        sys.exit(1)

    defaults = core.get_build_defaults()
    config = args.config or defaults.get("config", "Development")
    platform_name = args.platform or defaults.get("platform") or BuildOptions().platform
    engine_path = args.engine_path or settings.get("engine_path") or None
    try:
        options = BuildOptions(
            target=args.target,
            config=config,
            platform=platform_name,
            project_path=project_path,
            engine_path=engine_path,
            additional_args=tuple(args.extra or ()),
        )
        run = resolve_run(options)
        build = None
        if args.build_first:
            build = resolve_invocation(
                BuildOptions(
                    target=run.target,
                    config=config,
                    platform=platform_name,
                    project_path=project_path,
                    engine_path=engine_path,
                )
            )
    except (ValueError, InvocationError, TargetNotFoundError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    print(f"Run: {run.target} | {run.platform} | {run.config}")
    print(f"  Project: {run.project_file}")
    print(f"  Executable: {run.executable}")

    if args.dry_run:
        if build:
            print(f"  Build command: {' '.join(build.argv())}")
        print(f"  Command: {' '.join(run.argv())}")
        return

    if build:
        print()
        build_result = run_invocation(build)
        if not build_result.success:
            print(f"ERROR: {build_result.error}")
            sys.exit(build_result.exit_code if build_result.exit_code > 0 else 1)
        print(f"Build completed successfully in {build_result.duration:.1f}s")

    print()
    result = run_executable(run)
    if not result.success:
        print(f"ERROR: {result.error}")
        sys.exit(result.exit_code if result.exit_code > 0 else 1)


def cmd_generate(args):
    """Generate IDE project files with UnrealBuildTool."""
    if args.list_ides:
        print("Supported IDEs:")
        for ide, (_, description) in IDE_FORMATS.items():
            print(f"  {ide:<8} {description}")
        return

    project_path, settings = _project_from_args(args)
    if not project_path:
        print("ERROR: No project found. Use --project or run inside a project folder.")
        sys.exit(1)

    try:
        invocation = resolve_generate(
            project_path,
            ide=args.ide,
            engine_path=args.engine_path or settings.get("engine_path") or None,
            force=args.force,
        )
    except (ValueError, InvocationError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    print(f"Generate: {IDE_FORMATS[invocation.ide][1]}")
    print(f"  Project: {invocation.project_file}")
    print(f"  Engine: {invocation.engine_path}")

    if args.dry_run:
        print(f"  Command: {' '.join(invocation.argv())}")
        return

    print()
    result = run_invocation(invocation)
    print()
    if not result.success:
        print(f"ERROR: {result.error}")
        sys.exit(result.exit_code if result.exit_code > 0 else 1)

    print(f"Project files generated in {result.duration:.1f}s")
    for path in find_generated_files(invocation.project_file, invocation.ide):
        print(f"  {path}")


def cmd_detect(args):
    """Describe the project in the current directory."""
    result = detect_project(os.getcwd(), recursive=args.recursive)
    if args.json:
        _print_json(result.to_dict())
        return

    if not result.is_valid:
        print(f"ERROR: {result.error}")
        for warning in result.warnings:
            print(f"  - {warning}")
        sys.exit(1)

    project = result.project
    print(f"Project: {project.name}")
    print(f"  Path: {project.path}")
    print(f"  Source Directory: {project.source_dir or 'Not found'}")
    print(f"  Engine Association: {project.descriptor.engine_association}")

    if project.descriptor.modules:
        print()
        print("Modules:")
        for module in project.descriptor.modules:
            print(
                f"  {module.get('Name', '?')} ({module.get('Type', '?')})"
                f" - Loading: {module.get('LoadingPhase', 'Default')}"
            )
    if project.targets:
        print()
        print("Build Targets:")
        for target in project.targets:
            print(f"  {target.name} ({target.category.value})")
    if project.modules:
        print()
        print("Source Modules:")
        for module in project.modules:
            print(f"  {module.name}")
    if project.descriptor.plugins:
        print()
        print("Plugins:")
        for plugin in project.descriptor.plugins:
            status = "Enabled" if plugin.get("Enabled") else "Disabled"
            print(f"  {plugin.get('Name', '?')} - {status}")
    if result.warnings:
        print()
        print("Warnings:")
        for warning in result.warnings:
            print(f"  - {warning}")


def cmd_add(args):
    """Add a new project."""
    project_path = args.path
    if not project_path.endswith(".uproject"):
        print(f"ERROR: Expected .uproject file, got: {project_path}")
        sys.exit(1)

    if args.name:
        name = args.name
    else:
        name = os.path.splitext(os.path.basename(project_path))[0].lower()

    try:
        result = core.add_project(name, project_path, engine_path=args.engine_path)
    except (FileNotFoundError, ValueError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    print(f"Added project: {result['name']}")
    print(f"  Path: {result['project_path']}")
    print(f"  Engine: {result['engine_path']}")


def cmd_use(args):
    """Switch active project."""
    try:
        core.set_active_project(args.name)
    except ValueError as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    print(f"Switched to project: {args.name}")


def cmd_list(args):
    """List all projects."""
    result = core.list_projects()
    active = result["active"]
    projects = result["projects"]

    if not projects:
        print("No projects configured.")
        print()
        print("Add a project with:")
        print("  unreal-build add /path/to/Project.uproject")
        return

    print("Projects:")
    for name, config in projects.items():
        marker = " *" if name == active else ""
        print(f"  {name}{marker}")
        print(f"    Path: {config.get('project_path', '(not set)')}")
        print(f"    Engine: {config.get('engine_path') or '(auto-detect)'}")
    print()
    print(f"Active: {active or '(none)'}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unreal-build",
        description="Unreal Build Toolkit - engine discovery & builds",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
        epilog="""
Examples:
  unreal-build engine --project "/path/to/MyGame.uproject"
  unreal-build targets
  unreal-build build Editor --config Development
  unreal-build build MyGameServer --platform Linux --dry-run
  unreal-build build Game -- -NoHotReloadFromIDE
  unreal-build run Editor --dry-run
  unreal-build run Game -- -windowed -ResX=1280
  unreal-build generate --ide clion
  unreal-build add "/path/to/MyGame.uproject" --name mygame

Environment:
  UE_ENGINE_PATH / UE_ROOT / UNREAL_ENGINE_PATH   Engine root to consider
  UE_BUILD_CONFIG                                 Alternate config.json
  UE_BUILD_DEBUG=1                                Debug logging
""",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    engine_parser = subparsers.add_parser("engine", help="Show engine information")
    engine_parser.add_argument("--project", help="Project directory or .uproject file")
    engine_parser.add_argument("--json", action="store_true", help="Output JSON")
    engine_parser.add_argument(
        "-v", "--verbose", action="store_true", help="List every detected engine"
    )

    targets_parser = subparsers.add_parser("targets", help="List build targets")
    targets_parser.add_argument("--project", help="Project directory or .uproject file")
    targets_parser.add_argument("--json", action="store_true", help="Output JSON")

    build_parser_ = subparsers.add_parser("build", help="Build the project")
    build_parser_.add_argument(
        "target",
        nargs="?",
        default="Editor",
        help="Editor, Game, Client, Server or a project target name (default: Editor)",
    )
    build_parser_.add_argument("-c", "--config", choices=VALID_CONFIGS)
    build_parser_.add_argument("-p", "--platform", choices=VALID_PLATFORMS)
    build_parser_.add_argument("--project", help="Project directory or .uproject file")
    build_parser_.add_argument("--engine-path", help="Engine root (skips detection)")
    build_parser_.add_argument("--clean", action="store_true", help="Clean build")
    build_parser_.add_argument(
        "--verbose", action="store_true", help="Verbose build tool output"
    )
    build_parser_.add_argument(
        "--dry-run", action="store_true", help="Print the command without running it"
    )
    build_parser_.add_argument(
        "extra", nargs="*", help="Extra build tool arguments (after --)"
    )

    run_parser = subparsers.add_parser("run", help="Run a built target")
    run_parser.add_argument(
        "target",
        nargs="?",
        default="Editor",
        help="Editor, Game, Client, Server or a project target name (default: Editor)",
    )
    run_parser.add_argument("-c", "--config", choices=VALID_CONFIGS)
    run_parser.add_argument("-p", "--platform", choices=VALID_PLATFORMS)
    run_parser.add_argument("--project", help="Project directory or .uproject file")
    run_parser.add_argument("--engine-path", help="Engine root (skips detection)")
    run_parser.add_argument(
        "--build-first", action="store_true", help="Build the target before running it"
    )
    run_parser.add_argument(
        "--dry-run", action="store_true", help="Print the command without running it"
    )
    run_parser.add_argument(
        "extra", nargs="*", help="Arguments passed to the executable (after --)"
    )

    generate_parser = subparsers.add_parser(
        "generate", help="Generate IDE project files"
    )
    generate_parser.add_argument(
        "-i", "--ide", choices=list(IDE_FORMATS), default="sln", help="IDE (default: sln)"
    )
    generate_parser.add_argument("--project", help="Project directory or .uproject file")
    generate_parser.add_argument("--engine-path", help="Engine root (skips detection)")
    generate_parser.add_argument(
        "--force", action="store_true", help="Regenerate even if files exist"
    )
    generate_parser.add_argument(
        "--list-ides", action="store_true", help="List supported IDEs and exit"
    )
    generate_parser.add_argument(
        "--dry-run", action="store_true", help="Print the command without running it"
    )

    detect_parser = subparsers.add_parser("detect", help="Describe the current project")
    detect_parser.add_argument(
        "-r", "--recursive", action="store_true", help="Search subfolders too"
    )
    detect_parser.add_argument("--json", action="store_true", help="Output JSON")

    add_parser = subparsers.add_parser("add", help="Add a project")
    add_parser.add_argument("path", help="Path to .uproject file")
    add_parser.add_argument(
        "--name", help="Short name for project (default: derived from filename)"
    )
    add_parser.add_argument("--engine-path", help="Pin an engine root for this project")

    use_parser = subparsers.add_parser("use", help="Switch active project")
    use_parser.add_argument("name", help="Project name to switch to")

    subparsers.add_parser("list", help="List all projects")

    return parser


COMMANDS = {
    "engine": cmd_engine,
    "targets": cmd_targets,
    "build": cmd_build,
    "run": cmd_run,
    "generate": cmd_generate,
    "detect": cmd_detect,
    "add": cmd_add,
    "use": cmd_use,
    "list": cmd_list,
}


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.debug or core.DEBUG:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(name)s %(levelname)s: %(message)s",
            stream=sys.stderr,
        )
    else:
        logging.basicConfig(level=logging.WARNING, stream=sys.stderr)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        COMMANDS[args.command](args)
    except ValueError as e:
        print(f"ERROR: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
