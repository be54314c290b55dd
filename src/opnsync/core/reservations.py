"""DHCP static reservations on the router."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from typing import Any

from opnsync.client import Transport
from opnsync.errors import APIError, NotFoundError, SyncError, ValidationError
from opnsync.models import (
    ConfigurationStatus,
    ConflictResolution,
    DeviceMapping,
    DHCPReservation,
    MutationResponse,
    SyncOptions,
    SyncResult,
)
from opnsync.models.sync import DEFAULT_HOSTNAME_TEMPLATE
from opnsync.models.validation import (
    MAX_HOSTNAME_LENGTH,
    is_valid_ip,
    is_valid_mac,
    normalize_ip,
    normalize_mac,
    sanitize_hostname,
)

logger = logging.getLogger(__name__)

SEARCH_PATH = "/api/dhcp/leases/searchReservations"
GET_PATH = "/api/dhcp/leases/getReservation/{uuid}"
ADD_PATH = "/api/dhcp/leases/addReservation"
SET_PATH = "/api/dhcp/leases/setReservation/{uuid}"
DEL_PATH = "/api/dhcp/leases/delReservation/{uuid}"
RECONFIGURE_PATH = "/api/dhcp/service/reconfigure"


def validate_reservation(reservation: DHCPReservation) -> None:
    if not reservation.mac:
        raise ValidationError("MAC address is required", field="mac")
    if not is_valid_mac(reservation.mac):
        raise ValidationError(
            f"invalid MAC address format: {reservation.mac}", field="mac"
        )

    if not reservation.ip:
        raise ValidationError("IP address is required", field="ip")
    if not is_valid_ip(reservation.ip):
        raise ValidationError(
            f"invalid IP address format: {reservation.ip}", field="ip"
        )

    if not reservation.hostname.strip():
        raise ValidationError("hostname is required", field="hostname")
    if len(reservation.hostname) > MAX_HOSTNAME_LENGTH:
        raise ValidationError(
            f"hostname too long (max {MAX_HOSTNAME_LENGTH} characters)",
            field="hostname",
        )


def generate_hostname(device: DeviceMapping, template: str = "") -> str:
    """Render ``template`` for ``device`` and sanitize the result.

    Fields: ``{name}`` / ``{type}`` (lower-cased device name), ``{mac}``
    (normalized MAC) and ``{mac_last4}``.
    """
    mac = normalize_mac(device.shelly_mac)
    name = device.shelly_name.lower()
    fields = {"name": name, "type": name, "mac": mac, "mac_last4": mac[-4:]}
    try:
        rendered = (template or DEFAULT_HOSTNAME_TEMPLATE).format_map(fields)
    except (KeyError, IndexError, ValueError) as exc:
        raise ValidationError(
            f"invalid hostname template {template!r}: {exc}",
            field="hostname_template",
        ) from exc
    return sanitize_hostname(rendered)


def reservation_for_device(device: DeviceMapping) -> DHCPReservation:
    hostname = device.opnsense_hostname
    if hostname.strip():
        hostname = sanitize_hostname(hostname)
    return DHCPReservation(
        mac=device.shelly_mac,
        ip=device.shelly_ip,
        hostname=hostname,
        description=f"Shelly device: {device.shelly_name}",
        interface=device.interface,
    )


def _checked(payload: Any, action: str) -> MutationResponse:
    response = MutationResponse.model_validate(payload or {})
    if not response.ok:
        reason = response.message or response.status or "no status"
        raise APIError(
            f"failed to {action}: {reason}",
            validations=response.validations,
        )
    return response


class ReservationStore:
    """CRUD over the router's reservation table plus the fleet sync pass."""

    generate_hostname = staticmethod(generate_hostname)

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    def list_reservations(self, interface: str = "") -> list[DHCPReservation]:
        logger.debug("Fetching DHCP reservations (interface=%s)", interface or "*")
        params = {"interface": interface} if interface else None
        payload = self._transport.request("GET", SEARCH_PATH, params=params) or {}

        reservations: list[DHCPReservation] = []
        # keyed map as documented, or the grid "rows" form of newer firmware
        for uuid, item in (payload.get("reservations") or {}).items():
            reservations.append(DHCPReservation.model_validate({**item, "uuid": uuid}))
        for item in payload.get("rows") or []:
            reservations.append(DHCPReservation.model_validate(item))

        logger.info(
            "Retrieved %d DHCP reservations (interface=%s)",
            len(reservations),
            interface or "*",
        )
        return reservations

    def get(self, uuid: str) -> DHCPReservation:
        payload = self._transport.request("GET", GET_PATH.format(uuid=uuid))
        if not payload:
            raise NotFoundError(f"no reservation with UUID {uuid}")
        data = payload.get("reservation", payload)
        return DHCPReservation.model_validate({**data, "uuid": uuid})

    def create(self, reservation: DHCPReservation) -> MutationResponse:
        validate_reservation(reservation)
        logger.info(
            "Creating DHCP reservation mac=%s ip=%s hostname=%s",
            reservation.mac,
            reservation.ip,
            reservation.hostname,
        )
        payload = self._transport.request("POST", ADD_PATH, reservation.to_payload())
        response = _checked(payload, "create reservation")
        logger.info("DHCP reservation created (uuid=%s)", response.uuid)
        return response

    def update(self, uuid: str, reservation: DHCPReservation) -> MutationResponse:
        validate_reservation(reservation)
        logger.info(
            "Updating DHCP reservation %s mac=%s ip=%s hostname=%s",
            uuid,
            reservation.mac,
            reservation.ip,
            reservation.hostname,
        )
        payload = self._transport.request(
            "POST", SET_PATH.format(uuid=uuid), reservation.to_payload()
        )
        return _checked(payload, f"update reservation {uuid}")

    def delete(self, uuid: str) -> MutationResponse:
        logger.info("Deleting DHCP reservation %s", uuid)
        payload = self._transport.request("POST", DEL_PATH.format(uuid=uuid))
        return _checked(payload, f"delete reservation {uuid}")

    def find_by_mac(self, mac: str, interface: str = "") -> DHCPReservation:
        wanted = normalize_mac(mac)
        for reservation in self.list_reservations(interface):
            if normalize_mac(reservation.mac) == wanted:
                return reservation
        raise NotFoundError(f"no reservation found for MAC address {mac}")

    def find_by_ip(self, ip: str, interface: str = "") -> DHCPReservation:
        wanted = normalize_ip(ip)
        for reservation in self.list_reservations(interface):
            if normalize_ip(reservation.ip) == wanted:
                return reservation
        raise NotFoundError(f"no reservation found for IP address {ip}")

    def apply_configuration(self) -> ConfigurationStatus:
        logger.info("Applying DHCP configuration changes")
        payload = self._transport.request("POST", RECONFIGURE_PATH)
        status = ConfigurationStatus.model_validate(payload or {})
        if not status.ok:
            raise APIError(
                f"failed to apply DHCP configuration: {status.message or status.status}"
            )
        return status

    def sync_reservations(
        self, devices: Iterable[DeviceMapping], options: SyncOptions
    ) -> SyncResult:
        """Create or update one reservation per device, keyed by MAC.

        Raises when the current reservations cannot be listed; every other
        failure is recorded on the returned result.
        """
        devices = list(devices)
        started = time.monotonic()
        logger.info(
            "Starting DHCP reservation sync (devices=%d, dry_run=%s, strategy=%s)",
            len(devices),
            options.dry_run,
            options.conflict_resolution.value,
        )

        result = SyncResult()
        existing = {
            normalize_mac(reservation.mac): reservation
            for reservation in self.list_reservations()
        }

        for device in devices:
            try:
                self._sync_device(device, existing, options, result)
            except SyncError as exc:
                result.add_error(f"failed to sync device {device.shelly_mac}: {exc}")

        if options.apply_changes and not options.dry_run:
            try:
                self.apply_configuration()
            except SyncError as exc:
                result.add_warning(f"failed to apply configuration: {exc}")

        result.duration = time.monotonic() - started
        logger.info(
            "DHCP reservation sync finished: added=%d updated=%d errors=%d "
            "warnings=%d",
            result.reservations_added,
            result.reservations_updated,
            len(result.errors),
            len(result.warnings),
        )
        return result

    def _sync_device(
        self,
        device: DeviceMapping,
        existing: dict[str, DHCPReservation],
        options: SyncOptions,
        result: SyncResult,
    ) -> None:
        desired = reservation_for_device(device)
        key = normalize_mac(device.shelly_mac)
        current = existing.get(key)

        if current is None:
            if options.dry_run:
                validate_reservation(desired)
            else:
                self.create(desired)
            existing[key] = desired
            result.reservations_added += 1
            return

        same_ip = normalize_ip(current.ip) == normalize_ip(desired.ip)
        if same_ip and current.hostname == desired.hostname:
            return

        strategy = options.conflict_resolution
        if strategy is ConflictResolution.MANAGER_WINS:
            if not desired.interface:
                desired = desired.model_copy(update={"interface": current.interface})
            if options.dry_run:
                validate_reservation(desired)
            else:
                self.update(current.uuid, desired)
            existing[key] = desired.model_copy(update={"uuid": current.uuid})
            result.reservations_updated += 1
        elif strategy is ConflictResolution.OPNSENSE_WINS:
            result.add_warning(
                f"skipping update for {device.shelly_mac} due to conflict "
                "resolution policy"
            )
        elif strategy is ConflictResolution.SKIP:
            result.add_warning(f"skipping conflicted device {device.shelly_mac}")
        else:
            result.add_warning(
                "manual conflict resolution required for device "
                f"{device.shelly_mac}"
            )
