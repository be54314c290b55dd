"""Run configuration and result reports."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from opnsync.models.device import DeviceMapping, ImportedDevice, SyncConflict
from opnsync.models.router import RouterSnapshot

DEFAULT_HOSTNAME_TEMPLATE = "shelly-{name}-{mac_last4}"


class ConflictResolution(str, Enum):
    MANAGER_WINS = "manager_wins"
    OPNSENSE_WINS = "opnsense_wins"
    MANUAL = "manual"
    SKIP = "skip"


class SyncOptions(BaseModel):
    """Options shared by the DHCP and the firewall alias sync."""

    model_config = {"frozen": True, "extra": "forbid"}

    conflict_resolution: ConflictResolution = ConflictResolution.MANUAL
    dry_run: bool = False
    apply_changes: bool = True
    backup_before_changes: bool = False


class BidirectionalSyncConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    options: SyncOptions = Field(default_factory=SyncOptions)

    import_from_opnsense: bool = False
    export_to_opnsense: bool = True
    sync_firewall_aliases: bool = False

    import_interface: str = ""
    import_only_shelly: bool = True
    shelly_identifiers: tuple[str, ...] = ()

    dhcp_interface: str = ""
    firewall_alias_names: tuple[str, ...] = ()
    hostname_template: str = DEFAULT_HOSTNAME_TEMPLATE

    @property
    def dry_run(self) -> bool:
        return self.options.dry_run

    @property
    def conflict_resolution(self) -> ConflictResolution:
        return self.options.conflict_resolution


class SyncResult(BaseModel):
    """Outcome of one DHCP or firewall alias sync pass."""

    success: bool = True
    reservations_added: int = 0
    reservations_updated: int = 0
    reservations_deleted: int = 0
    aliases_updated: int = 0
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    duration: float = 0.0

    def add_error(self, message: str) -> None:
        self.success = False
        self.errors.append(message)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)


class ImportSyncResult(BaseModel):
    success: bool = True
    reservations_found: int = 0
    reservations_imported: int = 0
    reservations_skipped: int = 0
    imported_devices: list[ImportedDevice] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class BidirectionalSyncResult(BaseModel):
    success: bool = True
    start_time: datetime
    duration: float = 0.0

    import_result: ImportSyncResult | None = None
    export_result: SyncResult | None = None
    firewall_results: dict[str, SyncResult] = Field(default_factory=dict)
    backup: RouterSnapshot | None = None
    resolved_devices: list[DeviceMapping] = Field(default_factory=list)

    total_devices_processed: int = 0
    devices_added: int = 0
    devices_updated: int = 0
    devices_skipped: int = 0
    aliases_updated: int = 0
    conflicts_resolved: int = 0

    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    conflicts: list[SyncConflict] = Field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.success = False
        self.errors.append(message)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)
