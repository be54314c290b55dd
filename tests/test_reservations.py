from __future__ import annotations

import pytest

from opnsync.core import ReservationStore
from opnsync.core.reservations import generate_hostname, validate_reservation
from opnsync.errors import APIError, ErrorKind, NotFoundError, ValidationError
from opnsync.models import (
    ConflictResolution,
    DeviceMapping,
    DHCPReservation,
    SyncOptions,
)

MAC = "8c:aa:b5:01:02:03"


def _device(**overrides):
    values = {
        "shelly_mac": MAC,
        "shelly_ip": "192.168.1.10",
        "shelly_name": "Kitchen",
        "opnsense_hostname": "shelly-kitchen",
        "interface": "lan",
    }
    values.update(overrides)
    return DeviceMapping(**values)


def test_list_reservations_parses_router_payload(router):
    uuid = router.add_reservation(MAC, "192.168.1.10", "shelly-kitchen")
    store = ReservationStore(router)

    reservations = store.list_reservations()

    assert len(reservations) == 1
    assert reservations[0].uuid == uuid
    assert reservations[0].disabled is False
    assert reservations[0].interface == "lan"


def test_list_reservations_passes_interface_filter(router):
    router.add_reservation(MAC, "192.168.1.10", "a", interface="lan")
    router.add_reservation("8c:aa:b5:01:02:04", "10.0.0.10", "b", interface="iot")
    store = ReservationStore(router)

    reservations = store.list_reservations("iot")

    assert [r.hostname for r in reservations] == ["b"]
    assert router.calls[-1][3] == {"interface": "iot"}


def test_list_reservations_accepts_rows_form():
    class RowsTransport:
        def request(self, method, path, body=None, params=None):
            return {"rows": [{"uuid": "u1", "mac": MAC, "ip": "10.0.0.2"}]}

    reservations = ReservationStore(RowsTransport()).list_reservations()

    assert reservations[0].uuid == "u1"
    assert reservations[0].hostname == ""


def test_find_by_mac_ignores_format(router):
    router.add_reservation("8C-AA-B5-01-02-03", "192.168.1.10", "shelly-kitchen")
    store = ReservationStore(router)

    assert store.find_by_mac("8caab5010203").ip == "192.168.1.10"
    with pytest.raises(NotFoundError) as excinfo:
        store.find_by_mac("00:11:22:33:44:55")
    assert excinfo.value.kind is ErrorKind.NOT_FOUND


def test_find_by_ip(router):
    router.add_reservation(MAC, "192.168.1.10", "shelly-kitchen")
    store = ReservationStore(router)

    assert store.find_by_ip("192.168.1.10").hostname == "shelly-kitchen"
    with pytest.raises(NotFoundError):
        store.find_by_ip("192.168.1.99")


def test_find_by_ip_matches_equivalent_spellings(router):
    router.add_reservation(MAC, "fe80:0::1", "shelly-kitchen")
    store = ReservationStore(router)

    assert store.find_by_ip("fe80::1").hostname == "shelly-kitchen"
    assert store.find_by_ip(" FE80:0:0::1 ").ip == "fe80:0::1"


def test_get_unknown_uuid_raises_not_found(router):
    with pytest.raises(NotFoundError):
        ReservationStore(router).get("missing")


def test_create_validates_before_sending(router):
    store = ReservationStore(router)

    with pytest.raises(ValidationError) as excinfo:
        store.create(DHCPReservation(mac="nope", ip="10.0.0.1", hostname="x"))

    assert excinfo.value.field == "mac"
    assert router.calls == []


@pytest.mark.parametrize(
    ("reservation", "field"),
    [
        (DHCPReservation(ip="10.0.0.1", hostname="x"), "mac"),
        (DHCPReservation(mac=MAC, hostname="x"), "ip"),
        (DHCPReservation(mac=MAC, ip="10.0.0.256", hostname="x"), "ip"),
        (DHCPReservation(mac=MAC, ip="10.0.0.1", hostname="  "), "hostname"),
        (DHCPReservation(mac=MAC, ip="10.0.0.1", hostname="h" * 64), "hostname"),
    ],
)
def test_validate_reservation_fields(reservation, field):
    with pytest.raises(ValidationError) as excinfo:
        validate_reservation(reservation)
    assert excinfo.value.field == field


def test_create_sends_payload_without_uuid(router):
    store = ReservationStore(router)

    response = store.create(
        DHCPReservation(uuid="ignored", mac=MAC, ip="10.0.0.5", hostname="plug")
    )

    method, path, body, _ = router.calls[-1]
    assert (method, path) == ("POST", "/api/dhcp/leases/addReservation")
    assert "uuid" not in body
    assert response.uuid in router.reservations


def test_rejected_mutation_raises_api_error_with_validations(router):
    router.reject("POST", "/api/dhcp/leases/addReservation")
    store = ReservationStore(router)

    with pytest.raises(APIError) as excinfo:
        store.create(DHCPReservation(mac=MAC, ip="10.0.0.5", hostname="plug"))

    assert excinfo.value.validations == {"field": "rejected"}


def test_update_and_delete(router):
    uuid = router.add_reservation(MAC, "10.0.0.5", "plug")
    store = ReservationStore(router)

    store.update(uuid, DHCPReservation(mac=MAC, ip="10.0.0.6", hostname="plug"))
    assert router.reservations[uuid]["ip"] == "10.0.0.6"

    store.delete(uuid)
    assert uuid not in router.reservations


def test_apply_configuration_failure_raises(router):
    router.reject("POST", "/api/dhcp/service/reconfigure")

    with pytest.raises(APIError):
        ReservationStore(router).apply_configuration()


def test_generate_hostname_default_template():
    device = _device(shelly_name="Plus 1PM", shelly_mac="8C:AA:B5:01:AB:CD")
    assert generate_hostname(device) == "shelly-plus-1pm-abcd"
    assert ReservationStore.generate_hostname(device) == "shelly-plus-1pm-abcd"


def test_generate_hostname_custom_template():
    device = _device(shelly_name="Garage", shelly_mac="8caab501abcd")
    assert generate_hostname(device, "iot-{type}-{mac}") == "iot-garage-8caab501abcd"


def test_generate_hostname_unknown_field():
    with pytest.raises(ValidationError) as excinfo:
        generate_hostname(_device(), "{serial}")
    assert excinfo.value.field == "hostname_template"


def test_sync_creates_missing_reservation_and_applies(router):
    store = ReservationStore(router)

    result = store.sync_reservations([_device()], SyncOptions())

    assert result.success
    assert result.reservations_added == 1
    [stored] = router.reservations.values()
    assert stored["description"] == "Shelly device: Kitchen"
    assert router.reconfigured == ["dhcp"]
    assert router.paths("POST")[-1] == "/api/dhcp/service/reconfigure"


def test_sync_unchanged_device_makes_no_mutation(router):
    router.add_reservation("8C-AA-B5-01-02-03", "192.168.1.10", "shelly-kitchen")
    store = ReservationStore(router)

    result = store.sync_reservations(
        [_device()], SyncOptions(apply_changes=False)
    )

    assert result.reservations_added == 0
    assert result.reservations_updated == 0
    assert router.mutations == []


def test_sync_manager_wins_updates_drifted_reservation(router):
    uuid = router.add_reservation(MAC, "192.168.1.99", "shelly-kitchen")
    options = SyncOptions(conflict_resolution=ConflictResolution.MANAGER_WINS)

    result = ReservationStore(router).sync_reservations([_device()], options)

    assert result.reservations_updated == 1
    assert router.reservations[uuid]["ip"] == "192.168.1.10"


@pytest.mark.parametrize(
    "strategy",
    [
        ConflictResolution.OPNSENSE_WINS,
        ConflictResolution.SKIP,
        ConflictResolution.MANUAL,
    ],
)
def test_sync_other_strategies_only_warn(router, strategy):
    uuid = router.add_reservation(MAC, "192.168.1.99", "shelly-kitchen")
    options = SyncOptions(conflict_resolution=strategy, apply_changes=False)

    result = ReservationStore(router).sync_reservations([_device()], options)

    assert result.success
    assert result.reservations_updated == 0
    assert len(result.warnings) == 1
    assert router.reservations[uuid]["ip"] == "192.168.1.99"
    assert router.mutations == []


def test_sync_records_per_device_errors_and_continues(router):
    devices = [
        _device(shelly_ip="not-an-ip"),
        _device(shelly_mac="8c:aa:b5:01:02:04", shelly_ip="192.168.1.11"),
    ]

    result = ReservationStore(router).sync_reservations(devices, SyncOptions())

    assert not result.success
    assert len(result.errors) == 1
    assert result.reservations_added == 1


def test_sync_apply_failure_is_a_warning(router):
    router.fail("POST", "/api/dhcp/service/reconfigure")

    result = ReservationStore(router).sync_reservations([_device()], SyncOptions())

    assert result.success
    assert result.reservations_added == 1
    assert any("apply" in warning for warning in result.warnings)


def test_sync_propagates_listing_failure(router):
    router.fail("GET", "/api/dhcp/leases/searchReservations")

    with pytest.raises(APIError):
        ReservationStore(router).sync_reservations([_device()], SyncOptions())


def test_sync_dry_run_counts_without_mutating(router):
    router.add_reservation(MAC, "192.168.1.99", "shelly-kitchen")
    devices = [
        _device(),
        _device(shelly_mac="8c:aa:b5:01:02:04", shelly_ip="192.168.1.11"),
        _device(shelly_mac="8c:aa:b5:01:02:05", shelly_ip="bogus"),
    ]
    options = SyncOptions(conflict_resolution=ConflictResolution.MANAGER_WINS)

    dry = ReservationStore(router).sync_reservations(
        devices, options.model_copy(update={"dry_run": True})
    )
    assert router.mutations == []

    real = ReservationStore(router).sync_reservations(devices, options)

    assert (dry.reservations_added, dry.reservations_updated) == (1, 1)
    assert (real.reservations_added, real.reservations_updated) == (1, 1)
    assert len(dry.errors) == len(real.errors) == 1


def test_sync_sanitizes_fleet_hostnames(router):
    devices = [
        _device(opnsense_hostname="Living Room_Plug"),
        _device(
            shelly_mac="8c:aa:b5:01:02:04",
            shelly_ip="192.168.1.11",
            opnsense_hostname="a" * 70,
        ),
    ]

    result = ReservationStore(router).sync_reservations(
        devices, SyncOptions(apply_changes=False)
    )

    assert result.success, result.errors
    assert result.reservations_added == 2
    hostnames = sorted(item["hostname"] for item in router.reservations.values())
    assert hostnames == ["a" * 63, "living-room-plug"]


def test_sync_sanitized_hostname_counts_as_unchanged(router):
    router.add_reservation(MAC, "192.168.1.10", "shelly-kitchen")

    result = ReservationStore(router).sync_reservations(
        [_device(opnsense_hostname="Shelly Kitchen")],
        SyncOptions(apply_changes=False),
    )

    assert result.reservations_updated == 0
    assert router.mutations == []
