from __future__ import annotations

import json
import os
import tomllib
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from opnsync.models.sync import BidirectionalSyncConfig

from .paths import default_config_path, default_data_dir, expand_path

CONFIG_ENV_VAR = "OPNSYNC_CONFIG"
API_KEY_ENV_VAR = "OPNSYNC_API_KEY"
API_SECRET_ENV_VAR = "OPNSYNC_API_SECRET"


class RouterConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    host: str = ""
    port: int | None = Field(default=None, ge=1, le=65535)
    use_https: bool = True
    api_key: str = ""
    api_secret: str = ""
    timeout: float = Field(default=30.0, gt=0)
    verify_tls: bool = True

    @property
    def base_url(self) -> str:
        scheme = "https" if self.use_https else "http"
        port = self.port or (443 if self.use_https else 80)
        return f"{scheme}://{self.host}:{port}"


class DatabaseConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    path: str = Field(default_factory=lambda: str(default_data_dir()))


class Settings(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    router: RouterConfig = Field(default_factory=RouterConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    sync: BidirectionalSyncConfig = Field(default_factory=BidirectionalSyncConfig)


def resolve_config_path(allow_missing: bool = False) -> tuple[Path, bool]:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        path = expand_path(env_path)
        if not allow_missing and not path.exists():
            raise FileNotFoundError(f"{CONFIG_ENV_VAR} points to missing file: {path}")
        return path, path.exists()

    path = default_config_path()
    return path, path.exists()


def apply_env_overrides(settings: Settings) -> Settings:
    """Credentials from the environment take precedence over the file."""
    overrides: dict[str, str] = {}
    if api_key := os.environ.get(API_KEY_ENV_VAR):
        overrides["api_key"] = api_key
    if api_secret := os.environ.get(API_SECRET_ENV_VAR):
        overrides["api_secret"] = api_secret
    if not overrides:
        return settings
    router = settings.router.model_copy(update=overrides)
    return settings.model_copy(update={"router": router})


def load_settings(path: Path) -> Settings:
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in config file: {path}\n{exc}") from exc

    try:
        return Settings.model_validate(data or {})
    except ValidationError as exc:
        raise ValueError(f"Invalid config file: {path}\n{exc}") from exc


@lru_cache
def get_settings() -> Settings:
    path, exists = resolve_config_path(allow_missing=False)
    settings = load_settings(path) if exists else Settings()
    return apply_env_overrides(settings)


def data_dir_from_settings(settings: Settings) -> Path:
    return expand_path(settings.database.path)


def _toml_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, tuple):
        return json.dumps(list(value))
    return json.dumps(str(value))


def render_settings_toml(settings: Settings) -> str:
    """Render settings as TOML. Credentials are never written out."""
    router = settings.router
    sync = settings.sync
    options = sync.options
    lines = [
        "# opnsync configuration",
        "",
        "[router]",
        f"host = {_toml_value(router.host)}",
        f"port = {router.port}" if router.port else "# port = 443",
        f"use_https = {_toml_value(router.use_https)}",
        f"timeout = {router.timeout}",
        f"verify_tls = {_toml_value(router.verify_tls)}",
        f"# api_key and api_secret: set here or via {API_KEY_ENV_VAR} / "
        f"{API_SECRET_ENV_VAR}",
        'api_key = ""',
        'api_secret = ""',
        "",
        "[database]",
        f"path = {_toml_value(settings.database.path)}",
        "",
        "[sync]",
        f"import_from_opnsense = {_toml_value(sync.import_from_opnsense)}",
        f"export_to_opnsense = {_toml_value(sync.export_to_opnsense)}",
        f"sync_firewall_aliases = {_toml_value(sync.sync_firewall_aliases)}",
        f"import_interface = {_toml_value(sync.import_interface)}",
        f"import_only_shelly = {_toml_value(sync.import_only_shelly)}",
        f"shelly_identifiers = {_toml_value(sync.shelly_identifiers)}",
        f"dhcp_interface = {_toml_value(sync.dhcp_interface)}",
        f"firewall_alias_names = {_toml_value(sync.firewall_alias_names)}",
        f"hostname_template = {_toml_value(sync.hostname_template)}",
        "",
        "[sync.options]",
        f"conflict_resolution = {_toml_value(options.conflict_resolution.value)}",
        f"dry_run = {_toml_value(options.dry_run)}",
        f"apply_changes = {_toml_value(options.apply_changes)}",
        f"backup_before_changes = {_toml_value(options.backup_before_changes)}",
        "",
    ]
    return "\n".join(lines)


def write_settings(settings: Settings, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_settings_toml(settings))
