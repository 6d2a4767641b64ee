from http import HTTPStatus
from typing import Any

import httpx

from geo_gateway.clients.base import BaseIPLookupClient
from geo_gateway.errors import ProviderLookupError, UpstreamServiceError
from geo_gateway.models.common import GeoAttributes

# ipstack error codes that describe our account rather than the looked-up IP:
# 101 missing/invalid access key, 102 inactive account, 104 monthly usage limit
# reached, 105 function not available on the current plan.
ACCOUNT_ERROR_CODES = frozenset({101, 102, 104, 105})


class IpStack(BaseIPLookupClient):
    """Client for the https://ipstack.com/ standard lookup endpoint.

    ipstack replies with HTTP 200 for most failures and reports them in the
    body as `{"success": false, "error": {"code": ..., "info": ...}}`.
    """

    def __init__(
        self,
        access_key: str,
        base_url: str = "http://api.ipstack.com",
        timeout_seconds: float = 5.0,
    ) -> None:
        self._access_key = access_key
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds

    async def lookup_ip(self, ip: str) -> GeoAttributes:
        """Look up geolocation information for an explicit IP address."""
        url = f"{self._base_url}/{ip}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                response = await client.get(url, params={"access_key": self._access_key})
        except httpx.RequestError as exc:
            raise UpstreamServiceError(f"Request to IP provider failed: {repr(exc)}") from exc

        self._handle_http_errors(response)

        data = self._parse_json(response)
        self._handle_provider_error(data)

        return self._normalize_payload(data)

    def _handle_http_errors(self, response: httpx.Response) -> None:
        """Map HTTP status codes from the provider to domain-specific errors."""
        status_code = response.status_code

        if status_code == HTTPStatus.NOT_FOUND:
            raise ProviderLookupError("No geolocation information found for this IP address.")

        if status_code in (HTTPStatus.UNAUTHORIZED, HTTPStatus.FORBIDDEN):
            raise UpstreamServiceError(f"Authentication with IP provider failed (HTTP {status_code}).")

        if status_code == HTTPStatus.TOO_MANY_REQUESTS:
            raise UpstreamServiceError("IP provider rate limit or quota exceeded (HTTP 429).")

        if status_code >= HTTPStatus.BAD_REQUEST:
            raise UpstreamServiceError(f"IP provider returned HTTP {status_code}: {response.text}")

    def _handle_provider_error(self, data: dict[str, Any]) -> None:
        """Normalize ipstack error payloads into domain exceptions.

        Examples:
            { "success": false, "error": { "code": 104, "type": "usage_limit_reached", "info": "..." } }
            { "success": false, "error": { "code": 404, "type": "404_not_found", "info": "..." } }
        """
        if data.get("success") is not False:
            return

        error = data.get("error") or {}
        if not isinstance(error, dict):
            # Plain-text error, e.g. "invalid access key".
            error = {"info": error}
        info = str(error.get("info") or "IP not found")
        code = error.get("code")

        if code in ACCOUNT_ERROR_CODES:
            raise UpstreamServiceError(f"IP provider rejected the request (code {code}): {info}")

        raise ProviderLookupError(f"IP provider error: {info}")

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
        """Map ipstack's response into our normalized schema."""
        return GeoAttributes(
            kind=data.get("type"),
            continent_code=data.get("continent_code"),
            continent_name=data.get("continent_name"),
            country_code=data.get("country_code"),
            country_name=data.get("country_name"),
            region_code=data.get("region_code"),
            region_name=data.get("region_name"),
            city=data.get("city"),
            postal_code=data.get("zip"),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
        )
