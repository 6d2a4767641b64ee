from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Provider(str, Enum):
    """Supported IP geolocation providers."""

    ipstack = "ipstack"
    ip_api_com = "ip-api.com"


class BulkIpRequest(BaseModel):
    """Request body shared by every bulk endpoint.

    `ips` is deliberately untyped here: an empty or non-list value is rejected
    by the bulk service itself so that the error surfaces as `invalid_request`
    rather than a generic schema failure.
    """

    ips: Any = Field(
        default=None,
        description="Non-empty array of IPv4 or IPv6 addresses.",
        examples=[["134.201.250.155", "131.101.150.139"]],
    )


class DenyListAddRequest(BaseModel):
    """Request body for adding a single IP to the deny-list."""

    ip: Any = Field(
        default=None,
        description="IPv4 or IPv6 address that already has a stored record.",
        examples=["134.201.250.155"],
    )
