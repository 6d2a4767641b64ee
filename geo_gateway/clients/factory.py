from geo_gateway.clients.base import BaseIPLookupClient
from geo_gateway.clients.ip_api_com_client import IpApiCom
from geo_gateway.clients.ipstack_client import IpStack
from geo_gateway.config import Settings
from geo_gateway.models.request_models import Provider


class IpLookupProviderFactory:
    """Factory for IP lookup provider clients.

    Given a Provider enum, returns a concrete client configured from settings.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def __call__(self, provider: Provider | None = None) -> BaseIPLookupClient:
        provider = provider or self._settings.provider
        timeout = self._settings.provider_timeout_seconds

        if provider == Provider.ipstack:
            return IpStack(
                access_key=self._settings.ipstack_access_key,
                base_url=self._settings.ipstack_base_url,
                timeout_seconds=timeout,
            )
        if provider == Provider.ip_api_com:
            return IpApiCom(base_url=self._settings.ip_api_com_base_url, timeout_seconds=timeout)

        raise ValueError(f"Unsupported IP provider: {provider}")
