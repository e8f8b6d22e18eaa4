"""Windows registry discovery source.

Source builds are registered by UnrealVersionSelector under
``HKCU\\Software\\Epic Games\\Unreal Engine\\Builds`` as ``{GUID} = <root>``;
launcher installs have used ``HKLM\\SOFTWARE\\EpicGames\\Unreal Engine\\<ver>``
with an ``InstalledDirectory`` value. Installers have moved between these
keys over the years, so every location is queried and the results merged.

The query primitive shells out to ``reg query <key> /s`` and the output is
parsed as text. Two layouts show up in practice::

    HKEY_CURRENT_USER\\SOFTWARE\\Epic Games\\Unreal Engine\\Builds
        {2B4A1C7E-...}    REG_SZ    D:/UnrealEngine

and::

    {2B4A1C7E-...}
        EnginePath    REG_SZ    D:/UnrealEngine
"""

import logging
import re
import subprocess
from typing import Callable

from unreal_build.engine.models import (
    DiscoveryError,
    Installation,
    InstallationSource,
    SourceResult,
)

logger = logging.getLogger("unreal-build")

REGISTRY_LOCATIONS = [
    # Source builds (UnrealVersionSelector registrations)
    r"HKEY_CURRENT_USER\SOFTWARE\Epic Games\Unreal Engine\Builds",
    r"HKEY_LOCAL_MACHINE\SOFTWARE\Epic Games\Unreal Engine\Builds",
    # Launcher installs, older naming
    r"HKEY_CURRENT_USER\SOFTWARE\EpicGames\Unreal Engine",
    r"HKEY_LOCAL_MACHINE\SOFTWARE\EpicGames\Unreal Engine",
    r"HKEY_CURRENT_USER\SOFTWARE\Epic Games\UE_5",
    r"HKEY_CURRENT_USER\SOFTWARE\Epic Games\UE_4",
    r"HKEY_LOCAL_MACHINE\SOFTWARE\Epic Games\UE_5",
    r"HKEY_LOCAL_MACHINE\SOFTWARE\Epic Games\UE_4",
]

# Value names that hold the engine root inside a per-install subkey
PATH_VALUE_NAMES = {"installeddirectory", "installlocation", "enginepath", "path"}

_RE_VALUE = re.compile(r"^(?P<name>.*?)\s+REG_(?:EXPAND_)?SZ\s+(?P<data>.+)$")
_RE_TOKEN = re.compile(r"^(\{[^}]+\})")

QueryFn = Callable[[str], str]


class RegistryQueryError(RuntimeError):
    """A registry query failed for a reason other than a missing key."""


class RegistryKeyNotFound(RegistryQueryError):
    """The queried key does not exist. Expected on most machines."""


def run_reg_query(key: str) -> str:
    """Run ``reg query <key> /s`` and return its stdout.

    Raises:
        RegistryKeyNotFound: if ``reg`` reports the key is missing.
        RegistryQueryError: for any other failure (no ``reg`` binary,
            access denied, ...).
    """
    try:
        result = subprocess.run(
            ["reg", "query", key, "/s"], capture_output=True, text=True, check=False
        )
    except OSError as e:
        raise RegistryQueryError(f"could not run reg.exe: {e}") from e

    if result.returncode != 0:
        message = (result.stderr or result.stdout or "").strip()
        if "unable to find" in message.lower():
            raise RegistryKeyNotFound(message or f"key not found: {key}")
        raise RegistryQueryError(message or f"reg query exited {result.returncode}")
    return result.stdout


def _is_header(line: str) -> bool:
    return line.upper().startswith("HKEY_")


def _subkey_token(header: str, key: str) -> str | None:
    """Return the last component of ``header`` if it is a subkey of ``key``."""
    prefix = key.rstrip("\\").lower() + "\\"
    if not header.lower().startswith(prefix):
        return None
    return header.rstrip("\\").rsplit("\\", 1)[-1] or None


def _make(token: str, path: str) -> Installation:
    return Installation(
        path=path,
        association_id=token,
        source=InstallationSource.REGISTRY,
        display_name=f"UE Engine {token}",
    )


def parse_reg_output(text: str, key: str) -> list[Installation]:
    """Parse ``reg query /s`` output into installation records.

    Args:
        text: Raw stdout of the query.
        key: The key that was queried; headers below it name per-install
            subkeys, anything else is only a section boundary.

    Returns:
        One record per ``(token, path)`` pair found, in output order.
    """
    lines = [line.strip() for line in text.splitlines()]
    found: list[Installation] = []

    for i, line in enumerate(lines):
        if not line:
            continue

        if _is_header(line):
            token = _subkey_token(line, key)
            if token is None:
                continue
            for nxt in lines[i + 1 :]:
                if not nxt:
                    continue
                if _is_header(nxt) or _RE_TOKEN.match(nxt):
                    break
                value = _RE_VALUE.match(nxt)
                if value and value.group("name").strip().lower() in PATH_VALUE_NAMES:
                    found.append(_make(token, value.group("data").strip()))
                    break
            continue

        token_match = _RE_TOKEN.match(line)
        if not token_match:
            continue
        token = token_match.group(1)

        # Single-line layout: {GUID}    REG_SZ    <path>
        value = _RE_VALUE.match(line)
        if value:
            found.append(_make(token, value.group("data").strip()))
            continue

        # Multi-line layout: scan forward to the path, the next token or the
        # next key header, whichever comes first
        path = None
        for nxt in lines[i + 1 :]:
            if not nxt:
                continue
            if _is_header(nxt) or _RE_TOKEN.match(nxt):
                break
            value = _RE_VALUE.match(nxt)
            if value:
                path = value.group("data").strip()
                break

        if path:
            found.append(_make(token, path))
        else:
            logger.debug("Registry token %s has no engine path under %s", token, key)

    return found


def query_location(key: str, query: QueryFn = run_reg_query) -> list[Installation]:
    """Query one registry key. Raises on total query failure."""
    logger.debug("Querying registry location: %s", key)
    installations = parse_reg_output(query(key), key)
    logger.debug("Found %d engines at %s", len(installations), key)
    return installations


def read_registry(
    query: QueryFn = run_reg_query, locations: list[str] | None = None
) -> SourceResult:
    """Query every known location and merge the hits."""
    result = SourceResult(source=InstallationSource.REGISTRY)

    for key in locations if locations is not None else REGISTRY_LOCATIONS:
        try:
            result.installations.extend(query_location(key, query))
        except RegistryKeyNotFound:
            logger.debug("Registry key not found: %s", key)
            result.errors.append(
                DiscoveryError(
                    InstallationSource.REGISTRY, key, "key not found", expected=True
                )
            )
        except RegistryQueryError as e:
            logger.debug("Failed to query registry location %s: %s", key, e)
            result.errors.append(
                DiscoveryError(InstallationSource.REGISTRY, key, str(e), expected=False)
            )

    logger.debug("Total engines found from registry: %d", len(result.installations))
    return result
