"""Fleet-side device records and the per-run values derived from them."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from opnsync.models.validation import normalize_mac

ConflictType = Literal["ip_mismatch", "hostname_mismatch"]
Resolution = Literal["manager_wins", "opnsense_wins", "skipped", "manual"]

STATUS_PENDING = "pending"
STATUS_IMPORTED = "imported_from_opnsense"
STATUS_SYNCED = "synced"


class DeviceMapping(BaseModel):
    """How the fleet registry wants one device to look on the router."""

    model_config = {"frozen": True, "extra": "forbid"}

    shelly_mac: str
    shelly_ip: str = ""
    shelly_name: str = ""
    opnsense_hostname: str = ""
    interface: str = ""
    last_sync: datetime | None = None
    sync_status: str = STATUS_PENDING

    @property
    def mac_key(self) -> str:
        return normalize_mac(self.shelly_mac)


class ImportedDevice(BaseModel):
    """A router reservation after classification."""

    model_config = {"frozen": True}

    mac: str
    ip: str
    hostname: str = ""
    description: str = ""
    source: str = "dhcp_reservation"
    is_shelly: bool = False
    confidence_score: float = Field(default=0.0, ge=0.0, le=1.0)

    @property
    def mac_key(self) -> str:
        return normalize_mac(self.mac)


class SyncConflict(BaseModel):
    model_config = {"frozen": True}

    type: ConflictType
    device_mac: str
    shelly_manager_value: str
    opnsense_value: str
    resolution: Resolution
    resolved_value: str | None = None

    @model_validator(mode="after")
    def _check_resolved_value(self) -> SyncConflict:
        undecided = self.resolution in ("skipped", "manual")
        if undecided and self.resolved_value is not None:
            raise ValueError(f"{self.resolution} conflicts carry no resolved value")
        if not undecided and self.resolved_value is None:
            raise ValueError(f"{self.resolution} conflicts need a resolved value")
        return self


class FleetRegistry(BaseModel):
    """Contents of the fleet registry file."""

    model_config = {"extra": "forbid"}

    devices: list[DeviceMapping] = Field(default_factory=list)

    def find(self, mac: str) -> DeviceMapping | None:
        wanted = normalize_mac(mac)
        for device in self.devices:
            if device.mac_key == wanted:
                return device
        return None
