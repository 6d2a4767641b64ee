from collections.abc import Callable
from datetime import datetime, timedelta

from geo_gateway.clients.base import BaseIPLookupClient
from geo_gateway.errors import IpDeniedError, IpNotFoundError
from geo_gateway.logger import logger
from geo_gateway.models.common import GeoRecord, utcnow
from geo_gateway.services.deny_list import DenyListService
from geo_gateway.stores.base import RecordStore
from geo_gateway.validators import ip_kind, normalize_ip

DEFAULT_FRESHNESS_WINDOW = timedelta(hours=24)


class LookupService:
    """Resolves an IP to a GeoRecord, serving the stored copy while it is fresh.

    Nothing is cached in process memory: every call reads through the
    record store, so concurrent requests for the same IP may both refresh
    it (the last write wins).
    """

    def __init__(
        self,
        record_store: RecordStore,
        deny_list: DenyListService,
        provider_client: BaseIPLookupClient,
        freshness_window: timedelta = DEFAULT_FRESHNESS_WINDOW,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._record_store = record_store
        self._deny_list = deny_list
        self._provider_client = provider_client
        self._freshness_window = freshness_window
        self._clock = clock

    async def resolve(self, ip: str) -> GeoRecord:
        """Return geolocation data for `ip`.

        - A denied IP is refused before any network access.
        - A record younger than the freshness window is returned unchanged.
        - Otherwise the provider is asked and the result is stored with
          `fetched_at` set to now. Provider errors propagate without a write.

        Raises:
            InvalidIpError, IpDeniedError, UpstreamServiceError, ProviderLookupError
        """
        ip = normalize_ip(ip)
        now = self._clock()

        record = self._record_store.find_by_ip(ip)
        if record is not None:
            # Deny check only applies to known records.
            if self._deny_list.is_denied(ip):
                logger.info(f"Refused lookup for denied IP ip={ip}")
                raise IpDeniedError(f"IP address {ip} is in the deny-list.")

            if now - record.fetched_at < self._freshness_window:
                logger.debug(f"Serving stored record ip={ip} fetched_at={record.fetched_at.isoformat()}")
                return record

        logger.info(f"Fetching record from provider ip={ip} stale={record is not None}")
        attributes = await self._provider_client.lookup_ip(ip)

        values = attributes.model_dump()
        values["kind"] = values["kind"] or ip_kind(ip)
        return self._record_store.upsert(GeoRecord(ip=ip, fetched_at=now, **values))

    def delete(self, ip: str) -> None:
        """Delete the stored record for `ip` along with its deny-list entry."""
        ip = normalize_ip(ip)

        record = self._record_store.find_by_ip(ip)
        if record is None:
            raise IpNotFoundError(f"IP address {ip} not found in the database.")

        self._deny_list.discard(ip)
        self._record_store.delete(record)
        # No-op when both stores share a session; otherwise commits the staged entry removal.
        self._deny_list.commit()
        logger.info(f"Deleted record ip={ip}")
