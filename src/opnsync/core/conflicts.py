from __future__ import annotations

import logging
from collections.abc import Iterable

from opnsync.models import (
    ConflictResolution,
    DeviceMapping,
    ImportedDevice,
    SyncConflict,
)
from opnsync.models.device import STATUS_IMPORTED, ConflictType, Resolution
from opnsync.models.validation import normalize_mac

logger = logging.getLogger(__name__)

# conflict type, fleet field, router field
COMPARED_FIELDS: tuple[tuple[ConflictType, str, str], ...] = (
    ("ip_mismatch", "shelly_ip", "ip"),
    ("hostname_mismatch", "opnsense_hostname", "hostname"),
)


class ConflictResolver:
    """Merges the fleet registry with devices imported from the router.

    Devices are matched on normalized MAC. Only IP and hostname are compared.
    An unknown strategy is treated as ``manual``.
    """

    def __init__(self, strategy: ConflictResolution | str) -> None:
        try:
            self.strategy = ConflictResolution(strategy)
        except ValueError:
            logger.warning("Unknown conflict strategy %r, using manual", strategy)
            self.strategy = ConflictResolution.MANUAL

    def resolve_device(
        self, device: DeviceMapping, imported: ImportedDevice
    ) -> tuple[DeviceMapping, list[SyncConflict]]:
        conflicts: list[SyncConflict] = []
        adopted: dict[str, str] = {}

        for conflict_type, fleet_field, router_field in COMPARED_FIELDS:
            fleet_value = getattr(device, fleet_field)
            router_value = getattr(imported, router_field)
            if fleet_value == router_value:
                continue

            resolution: Resolution
            resolved_value: str | None = None
            if self.strategy is ConflictResolution.MANAGER_WINS:
                resolution = "manager_wins"
                resolved_value = fleet_value
            elif self.strategy is ConflictResolution.OPNSENSE_WINS:
                resolution = "opnsense_wins"
                resolved_value = router_value
                adopted[fleet_field] = router_value
            elif self.strategy is ConflictResolution.SKIP:
                resolution = "skipped"
            else:
                resolution = "manual"

            conflicts.append(
                SyncConflict(
                    type=conflict_type,
                    device_mac=device.shelly_mac,
                    shelly_manager_value=fleet_value,
                    opnsense_value=router_value,
                    resolution=resolution,
                    resolved_value=resolved_value,
                )
            )

        resolved = device.model_copy(update=adopted) if adopted else device
        return resolved, conflicts

    def resolve(
        self,
        fleet_devices: Iterable[DeviceMapping],
        imported_devices: Iterable[ImportedDevice],
        import_only_shelly: bool = True,
        dhcp_interface: str = "",
    ) -> tuple[list[DeviceMapping], list[SyncConflict]]:
        """Return the merged device list and every conflict found.

        Fleet devices keep their input order. Devices that exist only on the
        router follow, in the order the router listed them.
        """
        fleet_devices = list(fleet_devices)
        by_mac: dict[str, ImportedDevice] = {}
        for imported in imported_devices:
            by_mac[normalize_mac(imported.mac)] = imported

        logger.info(
            "Resolving conflicts (fleet=%d, imported=%d, strategy=%s)",
            len(fleet_devices),
            len(by_mac),
            self.strategy.value,
        )

        resolved: list[DeviceMapping] = []
        conflicts: list[SyncConflict] = []
        for device in fleet_devices:
            imported = by_mac.pop(normalize_mac(device.shelly_mac), None)
            if imported is None:
                resolved.append(device)
                continue
            merged, found = self.resolve_device(device, imported)
            resolved.append(merged)
            conflicts.extend(found)

        for imported in by_mac.values():
            if import_only_shelly and not imported.is_shelly:
                continue
            resolved.append(
                DeviceMapping(
                    shelly_mac=imported.mac,
                    shelly_ip=imported.ip,
                    shelly_name=imported.hostname,
                    opnsense_hostname=imported.hostname,
                    interface=dhcp_interface,
                    sync_status=STATUS_IMPORTED,
                )
            )

        logger.info(
            "Conflict resolution finished (devices=%d, conflicts=%d)",
            len(resolved),
            len(conflicts),
        )
        return resolved, conflicts
