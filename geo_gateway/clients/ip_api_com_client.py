from http import HTTPStatus
from typing import Any

import httpx

from geo_gateway.clients.base import BaseIPLookupClient
from geo_gateway.errors import ProviderLookupError, UpstreamServiceError
from geo_gateway.models.common import GeoAttributes

RESPONSE_FIELDS = "status,message,continent,continentCode,country,countryCode,region,regionName,city,zip,lat,lon,query"


class IpApiCom(BaseIPLookupClient):
    """Client for the http://ip-api.com JSON API.

    The free endpoint needs no key; the `fields` parameter asks for the
    continent data that ip-api.com leaves out by default.
    """

    def __init__(self, base_url: str = "http://ip-api.com", timeout_seconds: float = 5.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds

    async def lookup_ip(self, ip: str) -> GeoAttributes:
        """Look up geolocation information for an explicit IP address.

        The ip-api.com API returns a JSON payload with a `status` field that can
        be "success" or "fail". We normalize that into typed exceptions and a
        stable response shape.
        """
        url = f"{self._base_url}/json/{ip}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                response = await client.get(url, params={"fields": RESPONSE_FIELDS})
        except httpx.RequestError as exc:
            raise UpstreamServiceError(f"Request to IP provider failed: {repr(exc)}") from exc

        self._handle_http_errors(response)

        data = self._parse_json(response)
        self._handle_provider_status(data)

        return self._normalize_payload(data)

    def _handle_http_errors(self, response: httpx.Response) -> None:
        """Map HTTP status codes from the provider to domain-specific errors."""
        status_code = response.status_code

        if status_code == HTTPStatus.NOT_FOUND:
            raise ProviderLookupError("No geolocation information found for this IP address.")

        if status_code == HTTPStatus.TOO_MANY_REQUESTS:
            # 429 Quota exceeded / rate limit hit.
            raise UpstreamServiceError("IP provider rate limit or quota exceeded (HTTP 429).")

        if status_code >= HTTPStatus.BAD_REQUEST:
            raise UpstreamServiceError(f"IP provider returned HTTP {status_code}: {response.text}")

    def _handle_provider_status(self, data: dict[str, Any]) -> None:
        """Normalize ip-api.com status/message into domain exceptions."""
        status_value = str(data.get("status") or "").lower()

        if status_value == "success":
            return

        # status is "fail" or unknown
        message = str(data.get("message") or "Unknown error from ip-api.com")
        lower_msg = message.lower()

        if "quota" in lower_msg or "limit" in lower_msg:
            raise UpstreamServiceError(f"IP provider rate limit or quota exceeded: {message}")

        # "invalid query", "private range", "reserved range" and the like.
        raise ProviderLookupError(f"IP provider error: {message}")

    @staticmethod
    def _parse_json(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamServiceError(f"Failed to decode IP provider response as JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise UpstreamServiceError(f"IP provider returned an unexpected JSON payload: {data!r}")
        return data

    @staticmethod
    def _normalize_payload(data: dict[str, Any]) -> GeoAttributes:
        """Map ip-api.com's response into our normalized schema.

        ip-api.com calls the region code `region` and the region name `regionName`.
        """
        return GeoAttributes(
            continent_code=data.get("continentCode"),
            continent_name=data.get("continent"),
            country_code=data.get("countryCode"),
            country_name=data.get("country"),
            region_code=data.get("region"),
            region_name=data.get("regionName"),
            city=data.get("city"),
            postal_code=data.get("zip"),
            latitude=data.get("lat"),
            longitude=data.get("lon"),
        )
