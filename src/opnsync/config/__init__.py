from __future__ import annotations

from .paths import (
    APP_NAME,
    CONFIG_FILENAME,
    default_config_path,
    default_data_dir,
    expand_path,
)
from .settings import (
    API_KEY_ENV_VAR,
    API_SECRET_ENV_VAR,
    CONFIG_ENV_VAR,
    DatabaseConfig,
    RouterConfig,
    Settings,
    apply_env_overrides,
    data_dir_from_settings,
    get_settings,
    load_settings,
    render_settings_toml,
    resolve_config_path,
    write_settings,
)

__all__ = [
    "API_KEY_ENV_VAR",
    "API_SECRET_ENV_VAR",
    "APP_NAME",
    "CONFIG_ENV_VAR",
    "CONFIG_FILENAME",
    "DatabaseConfig",
    "RouterConfig",
    "Settings",
    "apply_env_overrides",
    "data_dir_from_settings",
    "default_config_path",
    "default_data_dir",
    "expand_path",
    "get_settings",
    "load_settings",
    "render_settings_toml",
    "resolve_config_path",
    "write_settings",
]
