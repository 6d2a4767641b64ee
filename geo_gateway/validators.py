from ipaddress import ip_address
from typing import Any

from geo_gateway.errors import InvalidIpError


def normalize_ip(value: Any) -> str:
    """Return the canonical string form of an IPv4 or IPv6 literal.

    Surrounding whitespace is ignored and IPv6 addresses are compressed, so
    every spelling of the same address maps to one storage key.

    Raises:
        InvalidIpError: if `value` is not a string holding a valid IP literal.
    """
    if not isinstance(value, str):
        raise InvalidIpError(f"Invalid IP address format: {value!r}")

    try:
        return str(ip_address(value.strip()))
    except ValueError as exc:
        raise InvalidIpError(f"Invalid IP address format: {value}") from exc


def is_valid_ip(value: Any) -> bool:
    try:
        normalize_ip(value)
    except InvalidIpError:
        return False
    return True


def ip_kind(ip: str) -> str:
    """Address family label for an already-normalized IP, e.g. "ipv4"."""
    return f"ipv{ip_address(ip).version}"
