from abc import ABC, abstractmethod

from geo_gateway.models.common import GeoAttributes


class BaseIPLookupClient(ABC):
    """Abstract base for all IP geolocation clients.

    Concrete implementations (e.g. ipstack, ip-api.com) should implement
    `lookup_ip` and map provider-specific responses into the normalized
    GeoAttributes shape. Failures must surface as one of two errors:

    - UpstreamServiceError: the provider could not be reached or failed.
    - ProviderLookupError: the provider answered but reported the lookup
      itself as invalid or not found.
    """

    @abstractmethod
    async def lookup_ip(self, ip: str) -> GeoAttributes:
        """Look up geolocation information for an explicit IP address."""
        raise NotImplementedError
