"""Environment-variable discovery source."""

import logging
import os
from typing import Mapping, Optional

from unreal_build.engine.models import (
    DiscoveryError,
    Installation,
    InstallationSource,
    SourceResult,
)

logger = logging.getLogger("unreal-build")

ENV_VARS = ("UE_ENGINE_PATH", "UE_ROOT", "UNREAL_ENGINE_PATH")


def read_environment(environ: Optional[Mapping[str, str]] = None) -> SourceResult:
    """Return the first variable in ``ENV_VARS`` that names an existing path.

    Only existence is checked; whether the path is a usable engine root is
    for ``invocation.is_valid_engine_path`` to decide.
    """
    env = os.environ if environ is None else environ
    result = SourceResult(source=InstallationSource.ENVIRONMENT)

    for name in ENV_VARS:
        value = env.get(name)
        if not value:
            continue
        if not os.path.exists(value):
            logger.debug("%s points to a missing path: %s", name, value)
            result.errors.append(
                DiscoveryError(
                    InstallationSource.ENVIRONMENT,
                    name,
                    f"path does not exist: {value}",
                    expected=False,
                )
            )
            continue

        logger.debug("Engine from %s: %s", name, value)
        result.installations.append(
            Installation(
                path=value,
                association_id=f"ENV_{name}",
                source=InstallationSource.ENVIRONMENT,
                display_name=f"UE Engine (from {name})",
            )
        )
        return result

    return result
