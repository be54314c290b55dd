from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

import yaml
from pydantic import ValidationError

from opnsync.config.paths import (
    BACKUP_PREFIX,
    BACKUP_SUFFIX,
    backup_filename,
    backups_dir,
    devices_path,
)
from opnsync.models import DeviceMapping, FleetRegistry, RouterSnapshot
from opnsync.models.device import STATUS_SYNCED

DEVICES_HEADER = (
    "# opnsync fleet registry\n"
    "# One entry per Shelly device that should hold a DHCP reservation\n\n"
)


class Database:
    """Fleet registry (``devices.yaml``) and router snapshots (``backups/``)."""

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = data_dir
        self._devices_path = devices_path(data_dir)
        self._backups_dir = backups_dir(data_dir)

    @property
    def path(self) -> Path:
        return self._data_dir

    @property
    def devices_path(self) -> Path:
        return self._devices_path

    @property
    def backups_dir(self) -> Path:
        return self._backups_dir

    def ensure_dirs(self) -> None:
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._backups_dir.mkdir(parents=True, exist_ok=True)

    def load_devices(self) -> FleetRegistry:
        if not self._devices_path.exists():
            return FleetRegistry()

        try:
            with self._devices_path.open() as handle:
                data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ValueError(
                f"Invalid YAML in devices file: {self._devices_path}\n{exc}"
            ) from exc

        try:
            return FleetRegistry.model_validate(data)
        except ValidationError as exc:
            raise ValueError(
                f"Invalid devices file: {self._devices_path}\n{exc}"
            ) from exc

    def save_devices(self, registry: FleetRegistry) -> None:
        self.ensure_dirs()
        with self._devices_path.open("w") as handle:
            handle.write(DEVICES_HEADER)
            yaml.safe_dump(
                registry.model_dump(mode="json", exclude_none=True),
                handle,
                default_flow_style=False,
                sort_keys=False,
            )

    def add_device(self, device: DeviceMapping) -> bool:
        """Add ``device`` or replace the entry with the same MAC.

        Returns True when an existing entry was replaced.
        """
        registry = self.load_devices()
        replaced = False
        devices: list[DeviceMapping] = []
        for current in registry.devices:
            if current.mac_key == device.mac_key:
                devices.append(device)
                replaced = True
            else:
                devices.append(current)
        if not replaced:
            devices.append(device)

        self.save_devices(FleetRegistry(devices=devices))
        return replaced

    def remove_device(self, mac: str) -> bool:
        registry = self.load_devices()
        match = registry.find(mac)
        if match is None:
            return False

        remaining = [d for d in registry.devices if d.mac_key != match.mac_key]
        self.save_devices(FleetRegistry(devices=remaining))
        return True

    def record_sync(
        self, devices: Iterable[DeviceMapping], synced_at: datetime | None = None
    ) -> FleetRegistry:
        """Replace the registry with ``devices`` stamped as synced."""
        stamp = synced_at or datetime.now(timezone.utc)
        registry = FleetRegistry(
            devices=[
                device.model_copy(
                    update={"last_sync": stamp, "sync_status": STATUS_SYNCED}
                )
                for device in devices
            ]
        )
        self.save_devices(registry)
        return registry

    def save_backup(self, snapshot: RouterSnapshot) -> Path:
        self._backups_dir.mkdir(parents=True, exist_ok=True)
        path = self._backups_dir / backup_filename(snapshot.taken_at)
        with path.open("w") as handle:
            json.dump(snapshot.model_dump(mode="json", by_alias=True), handle, indent=2)
        return path

    def list_backups(self) -> list[Path]:
        if not self._backups_dir.exists():
            return []
        return sorted(self._backups_dir.glob(f"{BACKUP_PREFIX}*{BACKUP_SUFFIX}"))

    def find_backup(self, name: str) -> Path:
        """Resolve ``name`` to a snapshot file.

        Accepts ``latest``, a file name inside ``backups/`` or a path.
        """
        if name == "latest":
            backups = self.list_backups()
            if not backups:
                raise FileNotFoundError(f"No snapshots in {self._backups_dir}")
            return backups[-1]

        for candidate in (self._backups_dir / name, Path(name)):
            if candidate.is_file():
                return candidate
        raise FileNotFoundError(f"Snapshot not found: {name}")

    def load_backup(self, path: Path) -> RouterSnapshot:
        try:
            with path.open() as handle:
                data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in snapshot file: {path}\n{exc}") from exc

        try:
            return RouterSnapshot.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid snapshot file: {path}\n{exc}") from exc

    def init(self, force: bool = False) -> None:
        self.ensure_dirs()
        if force or not self._devices_path.exists():
            self.save_devices(FleetRegistry())
