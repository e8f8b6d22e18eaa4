"""Epic Games Launcher manifest discovery source.

The launcher keeps a JSON manifest, ``LauncherInstalled.dat``, listing every
app it installed (games included). Its location has moved between launcher
versions, so a list of candidates is checked in order and the first one that
exists and parses is used.
"""

import json
import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from unreal_build.engine.models import (
    DiscoveryError,
    Installation,
    InstallationSource,
    SourceResult,
)

logger = logging.getLogger("unreal-build")

MANIFEST_NAME = "LauncherInstalled.dat"


def manifest_candidates(environ: Optional[Mapping[str, str]] = None) -> list[Path]:
    """Return the candidate manifest paths, most likely first."""
    env = os.environ if environ is None else environ
    local = env.get("LOCALAPPDATA", "")
    program_data = env.get("PROGRAMDATA", "")
    app_data = env.get("APPDATA", "")
    program_files = env.get("PROGRAMFILES") or r"C:\Program Files"
    program_files_x86 = env.get("PROGRAMFILES(X86)") or r"C:\Program Files (x86)"

    rel = [
        # Legacy UnrealEngine launcher
        (local, ("UnrealEngine", "Common")),
        (program_data, ("Epic", "UnrealEngineLauncher")),
        (program_data, ("Epic", "EpicGamesLauncher", "Data")),
        (app_data, ("Epic", "UnrealEngineLauncher")),
        (app_data, ("Epic", "EpicGamesLauncher", "Data")),
        # Newer launcher versions
        (local, ("EpicGamesLauncher", "Data")),
        (local, ("Epic", "UnrealEngineLauncher")),
        (app_data, ("Epic Games", "Launcher", "Data")),
        (program_files, ("Epic Games", "Launcher", "Data")),
        (program_files_x86, ("Epic Games", "Launcher", "Data")),
    ]
    # An unset base variable would turn the candidate into a cwd-relative path
    return [Path(base, *parts, MANIFEST_NAME) for base, parts in rel if base]


def is_engine_entry(entry: dict) -> bool:
    """Whether a manifest entry is an engine install rather than other software."""
    app_name = entry.get("AppName") or ""
    if not isinstance(app_name, str) or not app_name:
        return False
    return (
        app_name.startswith("UE_")
        or "UnrealEngine" in app_name
        or entry.get("Category") == "engine"
    )


def parse_manifest(data: dict, manifest_path: str = "") -> list[Installation]:
    """Extract engine installs from a parsed manifest.

    Raises:
        ValueError: if the manifest has no ``InstallationList`` array.
    """
    if not isinstance(data, dict) or not isinstance(
        data.get("InstallationList"), list
    ):
        raise ValueError("manifest has no InstallationList array")

    installations = []
    for entry in data["InstallationList"]:
        if not isinstance(entry, dict) or not is_engine_entry(entry):
            logger.debug(
                "Skipping non-engine launcher entry: %s",
                entry.get("AppName") if isinstance(entry, dict) else entry,
            )
            continue
        location = entry.get("InstallLocation")
        if not location:
            logger.debug("Launcher entry %s has no InstallLocation", entry["AppName"])
            continue

        app_name = entry["AppName"]
        installations.append(
            Installation(
                path=location,
                association_id=app_name,
                source=InstallationSource.LAUNCHER,
                display_name=entry.get("DisplayName") or app_name,
                installed_date=entry.get("InstallDate"),
            )
        )
        logger.debug("Found launcher engine %s at %s", app_name, location)

    return installations


def read_manifest(candidates: Optional[list[Path]] = None) -> SourceResult:
    """Read the first manifest that exists and parses.

    A corrupt manifest is logged and skipped so the next candidate can be
    tried; missing candidates are expected and only noted at debug level.
    """
    result = SourceResult(source=InstallationSource.LAUNCHER)
    paths = manifest_candidates() if candidates is None else candidates

    for manifest_path in paths:
        if not manifest_path.is_file():
            logger.debug("Launcher manifest not found at: %s", manifest_path)
            continue

        try:
            with open(manifest_path, "r", encoding="utf-8-sig") as f:
                data = json.load(f)
            result.installations = parse_manifest(data, str(manifest_path))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable launcher manifest %s: %s", manifest_path, e)
            result.errors.append(
                DiscoveryError(
                    InstallationSource.LAUNCHER, str(manifest_path), str(e), expected=False
                )
            )
            continue

        logger.debug(
            "Read %d engines from launcher manifest %s",
            len(result.installations),
            manifest_path,
        )
        return result

    if not result.errors:
        result.errors.append(
            DiscoveryError(
                InstallationSource.LAUNCHER, "", "no launcher manifest found", expected=True
            )
        )
    return result
