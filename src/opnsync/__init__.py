"""opnsync - keep a Shelly fleet and an OPNsense router in agreement."""

from __future__ import annotations

from importlib.metadata import version

from .client import OPNsenseClient, Transport
from .config import DatabaseConfig, RouterConfig, Settings, get_settings
from .core import AliasStore, ReservationStore, ShellyClassifier, SyncOrchestrator
from .errors import (
    APIError,
    ErrorKind,
    NotFoundError,
    NoValidIPsError,
    SyncError,
    ValidationError,
)
from .models import (
    BidirectionalSyncConfig,
    BidirectionalSyncResult,
    ConflictResolution,
    DeviceMapping,
    DHCPReservation,
    FirewallAlias,
    SyncOptions,
)
from .storage import Database

__all__ = [
    "APIError",
    "AliasStore",
    "BidirectionalSyncConfig",
    "BidirectionalSyncResult",
    "ConflictResolution",
    "DHCPReservation",
    "Database",
    "DatabaseConfig",
    "DeviceMapping",
    "ErrorKind",
    "FirewallAlias",
    "NoValidIPsError",
    "NotFoundError",
    "OPNsenseClient",
    "ReservationStore",
    "RouterConfig",
    "Settings",
    "ShellyClassifier",
    "SyncError",
    "SyncOptions",
    "SyncOrchestrator",
    "Transport",
    "ValidationError",
    "__version__",
    "get_settings",
]

__version__ = version("opnsync")
