"""Firewall aliases on the router."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from opnsync.client import Transport
from opnsync.errors import (
    APIError,
    NotFoundError,
    NoValidIPsError,
    SyncError,
    ValidationError,
)
from opnsync.models import (
    ConfigurationStatus,
    DeviceMapping,
    FirewallAlias,
    MutationResponse,
    SyncOptions,
    SyncResult,
)
from opnsync.models.validation import (
    MAX_ALIAS_NAME_LENGTH,
    is_valid_alias_name,
    is_valid_ip,
    validate_ip_or_network,
    validate_port_or_range,
)

logger = logging.getLogger(__name__)

SEARCH_PATH = "/api/firewall/alias/searchItem"
GET_PATH = "/api/firewall/alias/getItem/{uuid}"
ADD_PATH = "/api/firewall/alias/addItem"
SET_PATH = "/api/firewall/alias/setItem/{uuid}"
DEL_PATH = "/api/firewall/alias/delItem/{uuid}"
RECONFIGURE_PATH = "/api/firewall/alias/reconfigure"

ALIAS_TYPES = frozenset(
    {
        "host",
        "network",
        "port",
        "url",
        "url_ports",
        "urltable",
        "geoip",
        "networkgroup",
        "mac",
        "dynipv6host",
        "openvpngroup",
    }
)
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def validate_alias(alias: FirewallAlias) -> None:
    if not alias.name:
        raise ValidationError("alias name is required", field="name")
    if len(alias.name) > MAX_ALIAS_NAME_LENGTH:
        raise ValidationError(
            f"alias name too long (max {MAX_ALIAS_NAME_LENGTH} characters)",
            field="name",
        )
    if not is_valid_alias_name(alias.name):
        raise ValidationError(
            "alias name contains invalid characters (only alphanumeric and "
            "underscores allowed)",
            field="name",
        )

    if alias.type not in ALIAS_TYPES:
        raise ValidationError(f"invalid alias type: {alias.type}", field="type")

    if not alias.content:
        raise ValidationError("alias content is required", field="content")

    if alias.type in ("host", "network"):
        for entry in alias.content:
            validate_ip_or_network(entry)
    elif alias.type == "port":
        for entry in alias.content:
            validate_port_or_range(entry)


def collect_device_ips(devices: Iterable[DeviceMapping]) -> list[str]:
    """Usable IPs of ``devices`` in input order, without duplicates.

    Raises NoValidIPsError when nothing usable is left.
    """
    addresses: list[str] = []
    for device in devices:
        if not device.shelly_ip:
            continue
        if not is_valid_ip(device.shelly_ip):
            logger.warning(
                "Skipping invalid IP address %r of device %s",
                device.shelly_ip,
                device.shelly_name or device.shelly_mac,
            )
            continue
        if device.shelly_ip not in addresses:
            addresses.append(device.shelly_ip)

    if not addresses:
        raise NoValidIPsError()
    return addresses


def _checked(payload: Any, action: str) -> MutationResponse:
    response = MutationResponse.model_validate(payload or {})
    if not response.ok:
        reason = response.message or response.status or "no status"
        raise APIError(
            f"failed to {action}: {reason}", validations=response.validations
        )
    return response


class AliasStore:
    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    def list_aliases(self) -> list[FirewallAlias]:
        logger.debug("Fetching firewall aliases")
        payload = self._transport.request("GET", SEARCH_PATH) or {}

        aliases: list[FirewallAlias] = []
        for uuid, item in (payload.get("aliases") or {}).items():
            aliases.append(FirewallAlias.model_validate({**item, "uuid": uuid}))
        for item in payload.get("rows") or []:
            aliases.append(FirewallAlias.model_validate(item))

        logger.info("Retrieved %d firewall aliases", len(aliases))
        return aliases

    def get(self, uuid: str) -> FirewallAlias:
        payload = self._transport.request("GET", GET_PATH.format(uuid=uuid))
        if not payload:
            raise NotFoundError(f"no firewall alias with UUID {uuid}")
        data = payload.get("alias", payload)
        return FirewallAlias.model_validate({**data, "uuid": uuid})

    def find_by_name(self, name: str) -> FirewallAlias:
        wanted = name.casefold()
        for alias in self.list_aliases():
            if alias.name.casefold() == wanted:
                return alias
        raise NotFoundError(f"no firewall alias found with name {name}")

    def create(self, alias: FirewallAlias) -> MutationResponse:
        validate_alias(alias)
        logger.info(
            "Creating firewall alias %s (type=%s, entries=%d)",
            alias.name,
            alias.type,
            len(alias.content),
        )
        payload = self._transport.request("POST", ADD_PATH, alias.to_payload())
        response = _checked(payload, f"create alias {alias.name}")
        logger.info("Firewall alias %s created (uuid=%s)", alias.name, response.uuid)
        return response

    def update(self, uuid: str, alias: FirewallAlias) -> MutationResponse:
        validate_alias(alias)
        logger.info(
            "Updating firewall alias %s %s (entries=%d)",
            uuid,
            alias.name,
            len(alias.content),
        )
        payload = self._transport.request(
            "POST", SET_PATH.format(uuid=uuid), alias.to_payload()
        )
        return _checked(payload, f"update alias {alias.name}")

    def delete(self, uuid: str) -> MutationResponse:
        logger.info("Deleting firewall alias %s", uuid)
        payload = self._transport.request("POST", DEL_PATH.format(uuid=uuid))
        return _checked(payload, f"delete alias {uuid}")

    def apply_configuration(self) -> ConfigurationStatus:
        logger.info("Applying firewall configuration changes")
        payload = self._transport.request("POST", RECONFIGURE_PATH)
        status = ConfigurationStatus.model_validate(payload or {})
        if not status.ok:
            raise APIError(
                "failed to apply firewall configuration: "
                f"{status.message or status.status}"
            )
        return status

    def update_shelly_device_alias(
        self,
        alias_name: str,
        devices: Iterable[DeviceMapping],
        create_if_missing: bool = True,
    ) -> MutationResponse:
        """Replace the members of ``alias_name`` with the IPs of ``devices``."""
        addresses = collect_device_ips(devices)
        stamp = datetime.now().strftime(TIMESTAMP_FORMAT)

        try:
            existing = self.find_by_name(alias_name)
        except NotFoundError:
            if not create_if_missing:
                raise NotFoundError(
                    f"alias {alias_name} not found and create_if_missing is false"
                ) from None
            return self.create(
                FirewallAlias(
                    name=alias_name,
                    type="host",
                    content=addresses,
                    description=f"Shelly devices managed by opnsync (created: {stamp})",
                    enabled=True,
                )
            )

        updated = existing.model_copy(
            update={
                "content": addresses,
                "description": (
                    f"Shelly devices auto-updated by opnsync (last update: {stamp})"
                ),
            }
        )
        return self.update(existing.uuid, updated)

    def sync_shelly_device_aliases(
        self,
        alias_configs: Mapping[str, Iterable[DeviceMapping]],
        options: SyncOptions,
    ) -> SyncResult:
        """Bring every alias in ``alias_configs`` in line with its device group."""
        started = time.monotonic()
        logger.info(
            "Starting firewall alias sync (aliases=%d, dry_run=%s)",
            len(alias_configs),
            options.dry_run,
        )

        result = SyncResult()
        for alias_name, devices in alias_configs.items():
            devices = list(devices)
            logger.debug("Processing alias %s (%d devices)", alias_name, len(devices))
            try:
                if options.dry_run:
                    validate_alias(
                        FirewallAlias(
                            name=alias_name, content=collect_device_ips(devices)
                        )
                    )
                else:
                    self.update_shelly_device_alias(alias_name, devices, True)
            except SyncError as exc:
                result.add_error(f"failed to update alias {alias_name}: {exc}")
                continue
            result.aliases_updated += 1

        if options.apply_changes and not options.dry_run:
            try:
                self.apply_configuration()
            except SyncError as exc:
                result.add_warning(f"failed to apply firewall configuration: {exc}")

        result.duration = time.monotonic() - started
        logger.info(
            "Firewall alias sync finished: updated=%d errors=%d warnings=%d",
            result.aliases_updated,
            len(result.errors),
            len(result.warnings),
        )
        return result
