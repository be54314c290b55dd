"""Heuristic that tells Shelly reservations apart from the rest of the LAN."""

from __future__ import annotations

from collections.abc import Iterable

from opnsync.models import DHCPReservation
from opnsync.models.validation import normalize_mac

DEFAULT_IDENTIFIERS = ("shelly", "allterco", "shellyplus", "shelly1", "shelly2")

# Allterco Robotics / Shelly vendor prefixes
DEFAULT_OUIS = ("8caab5", "c45bbe", "84cca8", "3cdbbc")

HOSTNAME_WEIGHT = 0.4
DESCRIPTION_WEIGHT = 0.3
OUI_WEIGHT = 0.6
CONFIDENCE_THRESHOLD = 0.5
MIN_MATCHES = 2


class ShellyClassifier:
    """Scores a reservation by keyword hits and vendor prefix.

    Every keyword found in the hostname adds 0.4, every keyword found in the
    description adds 0.3 and a vendor OUI adds 0.6. The score is capped at
    1.0. A reservation counts as Shelly when the score exceeds 0.5 or at
    least two signals matched.
    """

    def __init__(
        self,
        identifiers: Iterable[str] | None = None,
        ouis: Iterable[str] | None = None,
    ) -> None:
        keywords = tuple(item.lower() for item in identifiers or () if item)
        self.identifiers = keywords or DEFAULT_IDENTIFIERS
        prefixes = tuple(normalize_mac(item)[:6] for item in ouis or () if item)
        self.ouis = prefixes or DEFAULT_OUIS

    def classify(self, reservation: DHCPReservation) -> tuple[bool, float]:
        confidence = 0.0
        matches = 0

        hostname = reservation.hostname.lower()
        description = reservation.description.lower()
        for keyword in self.identifiers:
            if hostname and keyword in hostname:
                confidence += HOSTNAME_WEIGHT
                matches += 1
            if description and keyword in description:
                confidence += DESCRIPTION_WEIGHT
                matches += 1

        if normalize_mac(reservation.mac)[:6] in self.ouis:
            confidence += OUI_WEIGHT
            matches += 1

        confidence = round(min(confidence, 1.0), 2)
        return confidence > CONFIDENCE_THRESHOLD or matches >= MIN_MATCHES, confidence


def identify_shelly(
    reservation: DHCPReservation, identifiers: Iterable[str] | None = None
) -> tuple[bool, float]:
    return ShellyClassifier(identifiers).classify(reservation)
