"""Launch a resolved build, run or project-file invocation.

Output is streamed straight to the console, not captured: builds can run for
an hour and print a lot. There is no timeout; the user stops a build with
Ctrl+C.
"""

import logging
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from unreal_build.invocation import BuildInvocation, GenerateInvocation, RunInvocation

logger = logging.getLogger("unreal-build")

Runner = Callable[..., subprocess.CompletedProcess]


@dataclass
class BuildResult:
    success: bool
    exit_code: int
    duration: float
    error: Optional[str] = None


def _launch(argv: list[str], cwd: str, runner: Runner, action: str) -> BuildResult:
    start = time.time()
    logger.debug("Executing: %s", " ".join(argv))
    try:
        completed = runner(argv, cwd=cwd, check=False)
    except OSError as e:
        return BuildResult(
            success=False,
            exit_code=-1,
            duration=time.time() - start,
            error=f"{action} execution failed: {e}",
        )

    duration = time.time() - start
    if completed.returncode != 0:
        return BuildResult(
            success=False,
            exit_code=completed.returncode,
            duration=duration,
            error=f"{action} failed with exit code {completed.returncode}",
        )
    return BuildResult(success=True, exit_code=0, duration=duration)


def run_invocation(
    invocation: BuildInvocation | GenerateInvocation,
    runner: Runner = subprocess.run,
) -> BuildResult:
    """Run the build tool and report how it went."""
    tool = Path(invocation.tool_path)
    if not tool.exists():
        return BuildResult(
            success=False,
            exit_code=-1,
            duration=0.0,
            error=f"Build tool not found at: {tool}",
        )
    action = "Project generation" if isinstance(invocation, GenerateInvocation) else "Build"
    return _launch(invocation.argv(), str(tool.parent), runner, action)


def run_executable(run: RunInvocation, runner: Runner = subprocess.run) -> BuildResult:
    """Launch a built target from its own directory."""
    executable = Path(run.executable)
    if not executable.is_file():
        return BuildResult(
            success=False,
            exit_code=-1,
            duration=0.0,
            error=(
                f"Executable not found: {executable}. "
                "Try building the project first with --build-first"
            ),
        )
    return _launch(run.argv(), run.cwd, runner, "Run")
