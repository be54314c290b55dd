from __future__ import annotations

import pytest

from opnsync.core import ShellyClassifier, identify_shelly
from opnsync.models import DHCPReservation

OTHER_MAC = "00:11:22:33:44:55"


def _reservation(mac=OTHER_MAC, hostname="", description=""):
    return DHCPReservation(
        mac=mac, ip="10.0.0.2", hostname=hostname, description=description
    )


def test_hostname_and_vendor_prefix():
    is_shelly, confidence = identify_shelly(
        _reservation(mac="8C:AA:B5:11:22:33", hostname="shelly-kitchen")
    )

    assert is_shelly
    assert confidence == 1.0


def test_vendor_prefix_alone_is_enough():
    is_shelly, confidence = identify_shelly(_reservation(mac="c4-5b-be-00-00-01"))

    assert is_shelly
    assert confidence == 0.6


def test_single_hostname_keyword_is_not_enough():
    is_shelly, confidence = identify_shelly(_reservation(hostname="my-shelly"))

    assert not is_shelly
    assert confidence == 0.4


def test_description_keywords_add_up():
    is_shelly, confidence = identify_shelly(
        _reservation(description="Allterco relay"),
        identifiers=["allterco", "relay"],
    )

    assert is_shelly
    assert confidence == 0.6


def test_confidence_is_capped():
    _, confidence = identify_shelly(
        _reservation(
            mac="84:cc:a8:00:00:01",
            hostname="shellyplus1-shelly1",
            description="shelly",
        )
    )

    assert confidence == 1.0


def test_unrelated_reservation():
    assert identify_shelly(_reservation(hostname="printer")) == (False, 0.0)


def test_custom_identifiers_replace_defaults():
    classifier = ShellyClassifier(identifiers=["Sonoff"])

    assert classifier.identifiers == ("sonoff",)
    assert classifier.classify(_reservation(hostname="shelly-1")) == (False, 0.0)


@pytest.mark.parametrize("identifiers", [None, [], [""]])
def test_empty_identifiers_fall_back_to_defaults(identifiers):
    classifier = ShellyClassifier(identifiers=identifiers)
    assert "shelly" in classifier.identifiers


def test_custom_ouis():
    classifier = ShellyClassifier(ouis=["00:11:22"])

    is_shelly, confidence = classifier.classify(_reservation())

    assert is_shelly
    assert confidence == 0.6


def test_model_hostname_without_vendor_prefix():
    is_shelly, confidence = identify_shelly(_reservation(hostname="shelly1pm-abcdef"))

    assert is_shelly is True
    assert 0.0 <= confidence <= 1.0
    assert confidence == 0.8
