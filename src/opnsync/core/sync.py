"""End-to-end reconciliation between the fleet registry and the router."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from datetime import datetime, timezone

from opnsync.client import Transport
from opnsync.errors import SyncError, ValidationError
from opnsync.models import (
    BidirectionalSyncConfig,
    BidirectionalSyncResult,
    DeviceMapping,
    ImportedDevice,
    ImportSyncResult,
    RouterSnapshot,
)
from opnsync.models.validation import is_valid_alias_name, sanitize_hostname

from .aliases import AliasStore
from .classifier import ShellyClassifier
from .conflicts import ConflictResolver
from .reservations import ReservationStore, generate_hostname

logger = logging.getLogger(__name__)

_TEMPLATE_SAMPLE = DeviceMapping(shelly_mac="000000000000", shelly_name="sample")


class SyncOrchestrator:
    """Runs import, conflict resolution and export against one router.

    Steps run strictly in sequence: import, resolve, DHCP export, firewall
    export. Nothing is rolled back when a later step fails. Overlapping runs
    against the same router must be serialized by the caller.

    Usage:
        orchestrator = SyncOrchestrator(client)
        result = orchestrator.perform_bidirectional_sync(devices, config)
    """

    def __init__(
        self,
        transport: Transport,
        classifier: ShellyClassifier | None = None,
    ) -> None:
        self.reservations = ReservationStore(transport)
        self.aliases = AliasStore(transport)
        self._classifier = classifier

    def perform_bidirectional_sync(
        self,
        fleet_devices: Iterable[DeviceMapping],
        config: BidirectionalSyncConfig,
    ) -> BidirectionalSyncResult:
        """Reconcile ``fleet_devices`` with the router according to ``config``.

        Raises ValidationError only for an unusable ``config``. Failures while
        talking to the router end up in ``errors`` / ``warnings`` of the
        returned result.
        """
        self._preflight(config)

        started = time.monotonic()
        fleet = list(fleet_devices)
        result = BidirectionalSyncResult(start_time=datetime.now(timezone.utc))
        logger.info(
            "Starting bidirectional sync (fleet=%d, import=%s, export=%s, "
            "aliases=%s, strategy=%s, dry_run=%s)",
            len(fleet),
            config.import_from_opnsense,
            config.export_to_opnsense,
            config.sync_firewall_aliases,
            config.conflict_resolution.value,
            config.dry_run,
        )

        imported: list[ImportedDevice] = []
        if config.import_from_opnsense:
            import_result = self.import_from_opnsense(config)
            result.import_result = import_result
            if import_result.success:
                imported = import_result.imported_devices
                result.devices_skipped = import_result.reservations_skipped
            else:
                for error in import_result.errors:
                    result.add_error(f"import failed: {error}")

        # compare the router against the values that would actually be written
        completed = [self._complete(d, config, sanitize=True) for d in fleet]
        resolver = ConflictResolver(config.conflict_resolution)
        resolved, conflicts = resolver.resolve(
            completed,
            imported,
            import_only_shelly=config.import_only_shelly,
            dhcp_interface=config.dhcp_interface,
        )
        resolved = [self._complete(device, config) for device in resolved]
        result.conflicts = conflicts
        result.conflicts_resolved = len(conflicts)
        result.resolved_devices = resolved

        export_dhcp = config.export_to_opnsense and bool(resolved)
        export_aliases = config.sync_firewall_aliases and bool(
            config.firewall_alias_names
        )

        wants_backup = config.options.backup_before_changes and not config.dry_run
        if wants_backup and (export_dhcp or export_aliases):
            try:
                result.backup = self.take_snapshot(
                    reservations=export_dhcp, aliases=export_aliases
                )
            except SyncError as exc:
                result.add_error(f"backup failed, nothing exported: {exc}")
                export_dhcp = export_aliases = False

        if export_dhcp:
            self._export_reservations(resolved, config, result)
        if export_aliases:
            self._export_aliases(resolved, config, result)

        result.total_devices_processed = len(fleet) + len(imported)
        result.duration = time.monotonic() - started
        logger.info(
            "Bidirectional sync finished (success=%s, processed=%d, added=%d, "
            "updated=%d, aliases=%d, conflicts=%d, errors=%d, warnings=%d)",
            result.success,
            result.total_devices_processed,
            result.devices_added,
            result.devices_updated,
            result.aliases_updated,
            result.conflicts_resolved,
            len(result.errors),
            len(result.warnings),
        )
        return result

    def import_from_opnsense(self, config: BidirectionalSyncConfig) -> ImportSyncResult:
        logger.info(
            "Importing devices from OPNsense (interface=%s)",
            config.import_interface or "*",
        )
        classifier = self._classifier or ShellyClassifier(config.shelly_identifiers)
        result = ImportSyncResult()

        try:
            reservations = self.reservations.list_reservations(config.import_interface)
        except SyncError as exc:
            result.success = False
            result.errors.append(f"failed to fetch DHCP reservations: {exc}")
            return result

        result.reservations_found = len(reservations)
        for reservation in reservations:
            if not reservation.mac or not reservation.ip:
                result.reservations_skipped += 1
                continue

            is_shelly, confidence = classifier.classify(reservation)
            if config.import_only_shelly and not is_shelly:
                result.reservations_skipped += 1
                continue

            result.imported_devices.append(
                ImportedDevice(
                    mac=reservation.mac,
                    ip=reservation.ip,
                    hostname=reservation.hostname,
                    description=reservation.description,
                    is_shelly=is_shelly,
                    confidence_score=confidence,
                )
            )
            result.reservations_imported += 1

        logger.info(
            "Import finished (found=%d, imported=%d, skipped=%d)",
            result.reservations_found,
            result.reservations_imported,
            result.reservations_skipped,
        )
        return result

    def take_snapshot(
        self, reservations: bool = True, aliases: bool = True
    ) -> RouterSnapshot:
        logger.info("Taking router snapshot before changes")
        return RouterSnapshot(
            taken_at=datetime.now(timezone.utc),
            reservations=self.reservations.list_reservations() if reservations else [],
            aliases=self.aliases.list_aliases() if aliases else [],
        )

    def _preflight(self, config: BidirectionalSyncConfig) -> None:
        for name in config.firewall_alias_names:
            if not is_valid_alias_name(name):
                raise ValidationError(
                    f"invalid firewall alias name: {name!r}",
                    field="firewall_alias_names",
                )
        generate_hostname(_TEMPLATE_SAMPLE, config.hostname_template)

    @staticmethod
    def _complete(
        device: DeviceMapping,
        config: BidirectionalSyncConfig,
        sanitize: bool = False,
    ) -> DeviceMapping:
        updates: dict[str, str] = {}
        hostname = device.opnsense_hostname
        if not hostname.strip():
            updates["opnsense_hostname"] = generate_hostname(
                device, config.hostname_template
            )
        elif sanitize and sanitize_hostname(hostname) != hostname:
            updates["opnsense_hostname"] = sanitize_hostname(hostname)
        if not device.interface and config.dhcp_interface:
            updates["interface"] = config.dhcp_interface
        return device.model_copy(update=updates) if updates else device

    def _export_reservations(
        self,
        devices: list[DeviceMapping],
        config: BidirectionalSyncConfig,
        result: BidirectionalSyncResult,
    ) -> None:
        try:
            export = self.reservations.sync_reservations(devices, config.options)
        except SyncError as exc:
            result.add_error(f"export failed: {exc}")
            return

        result.export_result = export
        result.devices_added = export.reservations_added
        result.devices_updated = export.reservations_updated
        for error in export.errors:
            result.add_error(error)
        result.warnings.extend(export.warnings)

    def _export_aliases(
        self,
        devices: list[DeviceMapping],
        config: BidirectionalSyncConfig,
        result: BidirectionalSyncResult,
    ) -> None:
        # reconfigure once, after every alias has been written
        per_alias = config.options.model_copy(update={"apply_changes": False})
        for alias_name in config.firewall_alias_names:
            alias_result = self.aliases.sync_shelly_device_aliases(
                {alias_name: devices}, per_alias
            )
            result.firewall_results[alias_name] = alias_result
            result.aliases_updated += alias_result.aliases_updated
            for error in alias_result.errors:
                result.add_warning(
                    f"failed to sync firewall alias {alias_name}: {error}"
                )
            result.warnings.extend(alias_result.warnings)

        if config.options.apply_changes and not config.dry_run:
            try:
                self.aliases.apply_configuration()
            except SyncError as exc:
                result.add_warning(f"failed to apply firewall configuration: {exc}")


def perform_bidirectional_sync(
    transport: Transport,
    fleet_devices: Iterable[DeviceMapping],
    config: BidirectionalSyncConfig,
) -> BidirectionalSyncResult:
    return SyncOrchestrator(transport).perform_bidirectional_sync(fleet_devices, config)
