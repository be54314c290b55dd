from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field

from opnsync.models.validation import normalize_mac


@dataclass
class Redactor:
    """Masks addresses in CLI output so tables can be shared.

    The vendor prefix of a MAC is kept because the Shelly classification
    depends on it. The same MAC always maps to the same placeholder.
    """

    enabled: bool = True
    _mac_map: dict[str, int] = field(default_factory=dict)
    _mac_counter: int = 0

    def redact_ip(self, ip: str) -> str:
        if not self.enabled or not ip:
            return ip
        try:
            address = ipaddress.ip_address(ip)
        except ValueError:
            return ip
        if address.version == 4:
            return f"x.x.x.{ip.rsplit('.', 1)[1]}"
        return "x:x:x::x"

    def redact_mac(self, mac: str) -> str:
        if not self.enabled or not mac:
            return mac
        key = normalize_mac(mac)
        if len(key) != 12:
            return mac
        counter = self._mac_map.get(key)
        if counter is None:
            self._mac_counter += 1
            counter = self._mac_counter
            self._mac_map[key] = counter
        prefix = ":".join(key[i : i + 2] for i in range(0, 6, 2))
        return f"{prefix}:xx:xx:{counter:02d}"
