import os
import json
from pathlib import Path
from typing import Optional

# Set UE_BUILD_DEBUG=1 to see every registry key, manifest path and command
DEBUG = os.environ.get("UE_BUILD_DEBUG", "").lower() in ("1", "true", "yes")

DEFAULT_CONFIG_FILE = Path.home() / ".config" / "unreal-build" / "config.json"


def get_config_file() -> Path:
    """Location of config.json (``UE_BUILD_CONFIG`` overrides the default)."""
    override = os.environ.get("UE_BUILD_CONFIG")
    return Path(override).expanduser() if override else DEFAULT_CONFIG_FILE


def _empty_config() -> dict:
    return {"active_project": "", "projects": {}, "defaults": {}}


def load_config(config_file: Optional[Path] = None) -> dict:
    """Read config.json; a missing file is an empty config.

    Raises:
        ValueError: if the file exists but is not valid JSON.
    """
    config_file = config_file or get_config_file()
    if not config_file.exists():
        return _empty_config()
    with open(config_file, "r") as f:
        try:
            config = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid config file {config_file}: {e}") from e
    for key, value in _empty_config().items():
        config.setdefault(key, value)
    return config


def _save_config(config: dict, config_file: Optional[Path] = None):
    config_file = config_file or get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, "w") as f:
        json.dump(config, f, indent=2)


def add_project(
    name: str,
    project_path: str,
    engine_path: str = None,
    set_active: bool = True,
    config_file: Optional[Path] = None,
):
    project_path = os.path.abspath(os.path.expanduser(project_path))

    if not os.path.exists(project_path):
        raise FileNotFoundError(f"Project not found: {project_path}")
    if not project_path.endswith(".uproject"):
        raise ValueError(f"Expected .uproject file, got: {project_path}")
    if engine_path and not os.path.exists(engine_path):
        raise FileNotFoundError(f"Engine path not found: {engine_path}")

    config = load_config(config_file)
    config["projects"][name] = {
        "project_path": project_path,
        "engine_path": engine_path or "",
    }
    if set_active:
        config["active_project"] = name

    _save_config(config, config_file)

    return {
        "name": name,
        "project_path": project_path,
        "engine_path": engine_path or "(auto-detect)",
        "active": set_active,
    }


def set_active_project(project_name: str, config_file: Optional[Path] = None):
    config = load_config(config_file)
    projects = config.get("projects", {})
    if project_name not in projects:
        available = ", ".join(projects.keys()) or "(none)"
        raise ValueError(f"Project '{project_name}' not in config. Available: {available}")

    config["active_project"] = project_name
    _save_config(config, config_file)


def list_projects(config_file: Optional[Path] = None):
    config = load_config(config_file)
    return {
        "active": config.get("active_project") or None,
        "projects": config.get("projects", {}),
    }


def get_active_project_name(config_file: Optional[Path] = None) -> Optional[str]:
    return load_config(config_file).get("active_project") or None


def get_project_settings(
    project_name: str = None, config_file: Optional[Path] = None
) -> dict:
    """Saved settings for a project (the active one by default), or {}."""
    config = load_config(config_file)
    project_name = project_name or config.get("active_project")
    if not project_name:
        return {}
    return dict(config.get("projects", {}).get(project_name, {}))


def get_build_defaults(config_file: Optional[Path] = None) -> dict:
    """``defaults`` block: optional ``config`` and ``platform`` for builds."""
    defaults = load_config(config_file).get("defaults", {})
    return {k: v for k, v in defaults.items() if k in ("config", "platform") and v}
