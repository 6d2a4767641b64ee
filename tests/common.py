from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from http import HTTPStatus
from typing import Any

import httpx

from geo_gateway.clients.base import BaseIPLookupClient
from geo_gateway.models.common import GeoAttributes

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class MockResponse:
    def __init__(self, status_code: int, payload: dict[str, Any] | None = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload or {}
        self.text = text

    def json(self) -> dict[str, Any]:
        return self._payload


class MockAsyncClient:
    """Minimal async context-manager mock for httpx.AsyncClient.

    Every `get` call is recorded in `calls` as `(url, params)`.
    """

    def __init__(self, response: MockResponse) -> None:
        self._response = response
        self.calls: list[tuple[str, dict[str, Any] | None]] = []

    async def __aenter__(self) -> "MockAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def get(self, url: str, params: dict[str, Any] | None = None, **kwargs: Any) -> MockResponse:
        self.calls.append((url, params))
        return self._response


class FailingAsyncClient:
    """Async client that raises a RequestError on enter to simulate network failure.

    The target URL is provided at construction time, so tests for different providers
    can reuse this implementation with different base URLs.
    """

    def __init__(self, url: str, *args: Any, **kwargs: Any) -> None:
        self._url = url

    async def __aenter__(self) -> "FailingAsyncClient":
        request = httpx.Request("GET", self._url)
        raise httpx.RequestError("Network failure", request=request)

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def get(self, url: str, **kwargs: Any) -> MockResponse:
        return MockResponse(status_code=HTTPStatus.OK, payload={})


def make_fake_async_client(response: MockResponse) -> tuple[Callable[..., MockAsyncClient], MockAsyncClient]:
    """Factory for a fake httpx.AsyncClient returning a fixed response.

    Returns the constructor to monkeypatch in and the shared client instance,
    so tests can inspect the requests that were made.
    """
    mock_client = MockAsyncClient(response)

    def _fake_client(*args: Any, **kwargs: Any) -> MockAsyncClient:
        return mock_client

    return _fake_client, mock_client


class StubProvider(BaseIPLookupClient):
    """Provider double that counts calls and returns or raises a configured outcome.

    `outcomes` maps an IP to either GeoAttributes or an exception instance;
    unknown IPs get `default`.
    """

    def __init__(
        self,
        default: GeoAttributes | Exception | None = None,
        outcomes: dict[str, GeoAttributes | Exception] | None = None,
    ) -> None:
        self.default = default or GeoAttributes(country_code="US", country_name="United States", city="Los Angeles")
        self.outcomes = outcomes or {}
        self.calls: list[str] = []

    async def lookup_ip(self, ip: str) -> GeoAttributes:
        self.calls.append(ip)
        outcome = self.outcomes.get(ip, self.default)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class RawJsonResponse(MockResponse):
    """Response whose decoded JSON body is returned as-is, even when it is not an object."""

    def __init__(self, status_code: int, body: Any) -> None:
        super().__init__(status_code=status_code)
        self._body = body

    def json(self) -> Any:
        return self._body
