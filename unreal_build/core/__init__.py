from .config import (
    DEBUG,
    get_config_file,
    load_config,
    add_project,
    list_projects,
    set_active_project,
    get_active_project_name,
    get_project_settings,
    get_build_defaults,
)

__all__ = [
    "DEBUG",
    "get_config_file",
    "load_config",
    "add_project",
    "list_projects",
    "set_active_project",
    "get_active_project_name",
    "get_project_settings",
    "get_build_defaults",
]
