"""Data models for opnsync."""

from opnsync.models.device import (
    DeviceMapping,
    FleetRegistry,
    ImportedDevice,
    SyncConflict,
)
from opnsync.models.router import (
    ConfigurationStatus,
    DHCPReservation,
    FirewallAlias,
    MutationResponse,
    RouterSnapshot,
)
from opnsync.models.sync import (
    BidirectionalSyncConfig,
    BidirectionalSyncResult,
    ConflictResolution,
    ImportSyncResult,
    SyncOptions,
    SyncResult,
)

__all__ = [
    "BidirectionalSyncConfig",
    "BidirectionalSyncResult",
    "ConfigurationStatus",
    "ConflictResolution",
    "DHCPReservation",
    "DeviceMapping",
    "FirewallAlias",
    "FleetRegistry",
    "ImportSyncResult",
    "ImportedDevice",
    "MutationResponse",
    "RouterSnapshot",
    "SyncConflict",
    "SyncOptions",
    "SyncResult",
]
