"""Where opnsync keeps its config file, fleet registry and router snapshots.

Layout of the data directory::

    devices.yaml                      fleet registry
    backups/router-<UTC stamp>.json   router snapshots taken before a sync
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path

APP_NAME = "opnsync"
CONFIG_FILENAME = "config.toml"
DEVICES_FILENAME = "devices.yaml"
BACKUPS_DIRNAME = "backups"

BACKUP_PREFIX = "router-"
BACKUP_SUFFIX = ".json"
BACKUP_TIMESTAMP_FORMAT = "%Y%m%dT%H%M%SZ"


def xdg_config_home() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def xdg_data_home() -> Path:
    return Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))


def default_config_path() -> Path:
    return xdg_config_home() / APP_NAME / CONFIG_FILENAME


def default_data_dir() -> Path:
    return xdg_data_home() / APP_NAME


def expand_path(value: str | Path) -> Path:
    return Path(os.path.expandvars(os.path.expanduser(str(value))))


def devices_path(data_dir: Path) -> Path:
    return data_dir / DEVICES_FILENAME


def backups_dir(data_dir: Path) -> Path:
    return data_dir / BACKUPS_DIRNAME


def backup_filename(taken_at: datetime) -> str:
    stamp = taken_at.astimezone(timezone.utc).strftime(BACKUP_TIMESTAMP_FORMAT)
    return f"{BACKUP_PREFIX}{stamp}{BACKUP_SUFFIX}"


def backup_taken_at(path: Path) -> datetime | None:
    """Parse the timestamp out of a snapshot file name, None if it has none."""
    name = path.name
    if not (name.startswith(BACKUP_PREFIX) and name.endswith(BACKUP_SUFFIX)):
        return None
    stamp = name[len(BACKUP_PREFIX) : -len(BACKUP_SUFFIX)]
    try:
        parsed = datetime.strptime(stamp, BACKUP_TIMESTAMP_FORMAT)
    except ValueError:
        return None
    return parsed.replace(tzinfo=timezone.utc)
