"""MCP Server for Unreal Engine build resolution.

Three tools:
  - resolve_engine: Which engine installation a project builds against
  - list_targets: Build targets defined by a project
  - resolve_build: The exact build command for a target/config/platform

Nothing is built; the server only answers questions about the machine and
the project.

Usage:
    # Run directly (stdio transport)
    python -m unreal_build.mcp_server

    # Add to Claude Desktop config:
    {
        "mcpServers": {
            "unreal-build": {
                "command": "unreal-build-mcp"
            }
        }
    }
"""

import json
import logging
import os
import sys

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from unreal_build import core
from unreal_build.engine.catalog import build_catalog
from unreal_build.engine.resolver import resolve_engine
from unreal_build.invocation import (
    VALID_CONFIGS,
    VALID_PLATFORMS,
    BuildOptions,
    resolve_invocation,
)
from unreal_build.targets import get_available_targets

logger = logging.getLogger("unreal-build")

# Create the MCP server
server = Server("unreal-build")


def _default_project() -> str | None:
    """Project path of the active project in config.json, if any."""
    return core.get_project_settings().get("project_path") or None


def tool_resolve_engine(project_path: str | None = None, include_all: bool = False) -> dict:
    project_path = project_path or _default_project()
    catalog = build_catalog()
    result = resolve_engine(project_path, catalog_fn=lambda: catalog).to_dict()
    if include_all:
        result["installations"] = [i.to_dict() for i in catalog.installations]
    return result


def tool_list_targets(project_path: str | None = None) -> dict:
    project_path = project_path or _default_project()
    if not project_path:
        return {"error": "No project_path given and no active project configured"}
    targets = get_available_targets(project_path)
    return {
        "project_path": project_path,
        "targets": [t.to_dict() for t in targets],
    }


def tool_resolve_build(
    target: str = "Editor",
    config: str = "Development",
    platform: str | None = None,
    project_path: str | None = None,
    engine_path: str | None = None,
) -> dict:
    settings = core.get_project_settings()
    project_path = project_path or settings.get("project_path")
    if not project_path:
        return {"error": "No project_path given and no active project configured"}

    options = BuildOptions(
        target=target,
        config=config,
        platform=platform or BuildOptions().platform,
        project_path=project_path,
        engine_path=engine_path or settings.get("engine_path") or None,
    )
    return resolve_invocation(options).to_dict()


# =============================================================================
# MCP Tool Definitions
# =============================================================================


@server.list_tools()
async def list_tools() -> list[Tool]:
    """Return available tools."""
    project_path_schema = {
        "type": "string",
        "description": "Project directory or .uproject file (default: active project)",
    }
    return [
        Tool(
            name="resolve_engine",
            description="""Find the Unreal Engine installation a project builds against.

Matches the project's EngineAssociation against engines registered in the
Windows registry, the Epic Games Launcher manifest and UE_ENGINE_PATH /
UE_ROOT / UNREAL_ENGINE_PATH. Without a match the newest engine is returned
with a warning.""",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_path": project_path_schema,
                    "include_all": {
                        "type": "boolean",
                        "description": "Also list every detected installation",
                        "default": False,
                    },
                },
            },
        ),
        Tool(
            name="list_targets",
            description="List build targets (*.Target.cs) with their category: Editor, Game, Client or Server.",
            inputSchema={
                "type": "object",
                "properties": {"project_path": project_path_schema},
            },
        ),
        Tool(
            name="resolve_build",
            description="""Resolve the exact build command for a project.

The target may be a category (Editor, Game, Client, Server) or a concrete
target name. Returns engine path, concrete target and argv; does not build.""",
            inputSchema={
                "type": "object",
                "properties": {
                    "target": {"type": "string", "default": "Editor"},
                    "config": {
                        "type": "string",
                        "enum": list(VALID_CONFIGS),
                        "default": "Development",
                    },
                    "platform": {"type": "string", "enum": list(VALID_PLATFORMS)},
                    "project_path": project_path_schema,
                    "engine_path": {
                        "type": "string",
                        "description": "Engine root; skips engine detection",
                    },
                },
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool calls."""
    try:
        if name == "resolve_engine":
            result = tool_resolve_engine(
                project_path=arguments.get("project_path"),
                include_all=arguments.get("include_all", False),
            )
        elif name == "list_targets":
            result = tool_list_targets(project_path=arguments.get("project_path"))
        elif name == "resolve_build":
            result = tool_resolve_build(
                target=arguments.get("target", "Editor"),
                config=arguments.get("config", "Development"),
                platform=arguments.get("platform"),
                project_path=arguments.get("project_path"),
                engine_path=arguments.get("engine_path"),
            )
        else:
            result = {"error": f"Unknown tool: {name}"}

        return [
            TextContent(type="text", text=json.dumps(result, indent=2, default=str))
        ]

    except Exception as e:
        return [TextContent(type="text", text=json.dumps({"error": str(e)}))]


# =============================================================================
# Main
# =============================================================================


async def main():
    """Run the MCP server."""
    # Enable debug logging when UE_BUILD_MCP_DEBUG is set
    if os.environ.get("UE_BUILD_MCP_DEBUG") or core.DEBUG:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(name)s %(levelname)s: %(message)s",
            stream=sys.stderr,
        )
    else:
        logging.basicConfig(level=logging.WARNING, stream=sys.stderr)

    project_name = core.get_active_project_name() or "(not configured)"
    print("Unreal Build MCP Server", file=sys.stderr)
    print(f"Project: {project_name}", file=sys.stderr)
    print("Tools: resolve_engine, list_targets, resolve_build", file=sys.stderr)

    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream, write_stream, server.create_initialization_options()
        )


def cli_main():
    """Entry point for the unreal-build-mcp command."""
    import asyncio

    asyncio.run(main())


if __name__ == "__main__":
    cli_main()
