from __future__ import annotations

from .aliases import AliasStore, collect_device_ips, validate_alias
from .classifier import ShellyClassifier, identify_shelly
from .conflicts import ConflictResolver
from .reservations import ReservationStore, generate_hostname, validate_reservation
from .sync import SyncOrchestrator, perform_bidirectional_sync

__all__ = [
    "AliasStore",
    "ConflictResolver",
    "ReservationStore",
    "ShellyClassifier",
    "SyncOrchestrator",
    "collect_device_ips",
    "generate_hostname",
    "identify_shelly",
    "perform_bidirectional_sync",
    "validate_alias",
    "validate_reservation",
]
