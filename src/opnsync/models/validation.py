from __future__ import annotations

import ipaddress
import re
import string

from opnsync.errors import ValidationError

DEFAULT_HOSTNAME = "shelly-device"
MAX_HOSTNAME_LENGTH = 63
MAX_ALIAS_NAME_LENGTH = 32
MAX_PORT = 65535

_MAC_SEPARATED = re.compile(
    r"[0-9a-fA-F]{2}([:-])[0-9a-fA-F]{2}(\1[0-9a-fA-F]{2}){4}"
)
_HOSTNAME_INVALID = re.compile(r"[^a-z0-9-]")
_ALIAS_NAME = re.compile(r"[A-Za-z0-9_]+")
_PORT_RANGE = re.compile(r"([0-9]+)[-:]([0-9]+)")


def normalize_mac(value: str) -> str:
    """Comparison key for a MAC address: separators stripped, lower-case."""
    return value.replace(":", "").replace("-", "").lower()


def is_valid_mac(value: str) -> bool:
    if _MAC_SEPARATED.fullmatch(value):
        return True
    return len(value) == 12 and all(ch in string.hexdigits for ch in value)


def is_valid_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def normalize_ip(value: str) -> str:
    """Canonical spelling of ``value``; unparsable input is returned stripped."""
    value = value.strip()
    try:
        return str(ipaddress.ip_address(value))
    except ValueError:
        return value


def sanitize_hostname(hostname: str) -> str:
    """Force ``hostname`` into a single DNS label.

    Lower-cases, replaces anything outside ``[a-z0-9-]`` with ``-``, trims
    leading and trailing hyphens and cuts the result to 63 characters. An
    empty result becomes ``shelly-device``.
    """
    cleaned = _HOSTNAME_INVALID.sub("-", hostname.strip().lower()).strip("-")
    cleaned = cleaned[:MAX_HOSTNAME_LENGTH].rstrip("-")
    return cleaned or DEFAULT_HOSTNAME


def is_valid_alias_name(name: str) -> bool:
    if not name or len(name) > MAX_ALIAS_NAME_LENGTH:
        return False
    return _ALIAS_NAME.fullmatch(name) is not None


def validate_ip_or_network(content: str) -> None:
    try:
        if "/" in content:
            ipaddress.ip_network(content, strict=False)
        else:
            ipaddress.ip_address(content)
    except ValueError as exc:
        raise ValidationError(
            f"invalid IP address or network '{content}'", field="content"
        ) from exc


def validate_port_or_range(content: str) -> None:
    """Accept ``N`` or ``N-M`` / ``N:M`` with both ends in 1..65535 and N <= M."""
    if not content:
        raise ValidationError("empty port content", field="content")

    match = _PORT_RANGE.fullmatch(content)
    if match:
        start, end = int(match.group(1)), int(match.group(2))
        if not (1 <= start <= MAX_PORT and 1 <= end <= MAX_PORT):
            raise ValidationError(
                f"port range '{content}' out of bounds", field="content"
            )
        if start > end:
            raise ValidationError(
                f"port range '{content}' starts after it ends", field="content"
            )
        return

    if not (content.isascii() and content.isdigit()):
        raise ValidationError(f"invalid port '{content}'", field="content")
    if not 1 <= int(content) <= MAX_PORT:
        raise ValidationError(f"port '{content}' out of bounds", field="content")
