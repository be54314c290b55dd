from __future__ import annotations

import pytest
from pydantic import ValidationError as ModelValidationError

from opnsync.core import ConflictResolver
from opnsync.models import (
    ConflictResolution,
    DeviceMapping,
    ImportedDevice,
    SyncConflict,
)
from opnsync.models.device import STATUS_IMPORTED

FLEET = DeviceMapping(
    shelly_mac="8C:AA:B5:00:00:01",
    shelly_ip="192.168.1.10",
    shelly_name="kitchen",
    opnsense_hostname="shelly-kitchen",
)


def _imported(mac="8caab5000001", ip="192.168.1.10", hostname="shelly-kitchen"):
    return ImportedDevice(mac=mac, ip=ip, hostname=hostname, is_shelly=True)


def test_matching_device_has_no_conflicts():
    resolved, conflicts = ConflictResolver("manual").resolve([FLEET], [_imported()])

    assert resolved == [FLEET]
    assert conflicts == []


def test_manager_wins_keeps_fleet_values():
    resolver = ConflictResolver(ConflictResolution.MANAGER_WINS)

    resolved, conflicts = resolver.resolve([FLEET], [_imported(ip="192.168.1.99")])

    assert resolved == [FLEET]
    [conflict] = conflicts
    assert conflict.type == "ip_mismatch"
    assert conflict.resolution == "manager_wins"
    assert conflict.resolved_value == "192.168.1.10"


def test_opnsense_wins_adopts_router_values():
    resolver = ConflictResolver(ConflictResolution.OPNSENSE_WINS)

    resolved, conflicts = resolver.resolve(
        [FLEET], [_imported(ip="192.168.1.99", hostname="old-name")]
    )

    assert resolved[0].shelly_ip == "192.168.1.99"
    assert resolved[0].opnsense_hostname == "old-name"
    assert resolved[0].shelly_name == "kitchen"
    assert [c.type for c in conflicts] == ["ip_mismatch", "hostname_mismatch"]
    assert all(c.resolved_value == c.opnsense_value for c in conflicts)
    # caller's device is untouched
    assert FLEET.shelly_ip == "192.168.1.10"


@pytest.mark.parametrize(
    ("strategy", "resolution"),
    [
        (ConflictResolution.SKIP, "skipped"),
        (ConflictResolution.MANUAL, "manual"),
        ("something-else", "manual"),
    ],
)
def test_undecided_strategies_leave_device_alone(strategy, resolution):
    resolved, conflicts = ConflictResolver(strategy).resolve(
        [FLEET], [_imported(hostname="old-name")]
    )

    assert resolved == [FLEET]
    assert conflicts[0].resolution == resolution
    assert conflicts[0].resolved_value is None


def test_router_only_devices_are_appended_in_router_order():
    imported = [
        _imported(mac="8caab5000003", ip="192.168.1.13", hostname="c"),
        _imported(),
        _imported(mac="8caab5000002", ip="192.168.1.12", hostname="b"),
    ]

    resolved, _ = ConflictResolver("manual").resolve(
        [FLEET], imported, dhcp_interface="iot"
    )

    assert [d.shelly_mac for d in resolved] == [
        FLEET.shelly_mac,
        "8caab5000003",
        "8caab5000002",
    ]
    extra = resolved[1]
    assert extra.sync_status == STATUS_IMPORTED
    assert extra.shelly_name == extra.opnsense_hostname == "c"
    assert extra.interface == "iot"


def test_non_shelly_router_devices_follow_import_only_shelly():
    printer = ImportedDevice(mac="001122334455", ip="192.168.1.50", hostname="printer")

    only_shelly, _ = ConflictResolver("manual").resolve([], [printer])
    everything, _ = ConflictResolver("manual").resolve(
        [], [printer], import_only_shelly=False
    )

    assert only_shelly == []
    assert [d.shelly_mac for d in everything] == ["001122334455"]


def test_conflict_requires_consistent_resolved_value():
    with pytest.raises(ModelValidationError):
        SyncConflict(
            type="ip_mismatch",
            device_mac="m",
            shelly_manager_value="a",
            opnsense_value="b",
            resolution="skipped",
            resolved_value="a",
        )
    with pytest.raises(ModelValidationError):
        SyncConflict(
            type="ip_mismatch",
            device_mac="m",
            shelly_manager_value="a",
            opnsense_value="b",
            resolution="manager_wins",
        )


def test_confidence_score_is_bounded():
    with pytest.raises(ModelValidationError):
        ImportedDevice(mac="m", ip="10.0.0.1", confidence_score=1.5)
