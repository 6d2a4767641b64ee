from collections.abc import Callable
from datetime import datetime

from geo_gateway.errors import AlreadyDeniedError, InvalidIpError, IpNotFoundError, NotInDenyListError
from geo_gateway.logger import logger
from geo_gateway.models.common import DenyEntry, utcnow
from geo_gateway.stores.base import DenyListStore, RecordStore
from geo_gateway.validators import normalize_ip


class DenyListService:
    """Adds, removes and queries deny-list entries.

    An entry can only exist for an IP that already has a stored GeoRecord.
    Freshness of that record plays no part here.
    """

    def __init__(
        self,
        record_store: RecordStore,
        deny_list_store: DenyListStore,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._record_store = record_store
        self._deny_list_store = deny_list_store
        self._clock = clock

    def add(self, ip: str) -> DenyEntry:
        ip = normalize_ip(ip)

        if self._record_store.find_by_ip(ip) is None:
            raise IpNotFoundError(f"IP address {ip} not found in the database.")
        if self._deny_list_store.find_by_ip(ip) is not None:
            raise AlreadyDeniedError(f"IP {ip} is already in the deny-list.")

        entry = self._deny_list_store.upsert(DenyEntry(ip=ip, denied_at=self._clock()))
        logger.info(f"Added IP to deny-list ip={ip}")
        return entry

    def remove(self, ip: str, cascade_flush: bool = True) -> None:
        """Remove the deny-list entry for `ip`.

        With `cascade_flush=False` the deletion is staged but not committed;
        the caller batches several removals and calls `commit()` once.
        """
        ip = normalize_ip(ip)

        if self._record_store.find_by_ip(ip) is None:
            raise IpNotFoundError(f"IP address {ip} not found in the database.")

        entry = self._deny_list_store.find_by_ip(ip)
        if entry is None:
            raise NotInDenyListError(f"IP {ip} is not in the deny-list.")

        self._deny_list_store.delete(entry, commit_now=cascade_flush)
        logger.info(f"Removed IP from deny-list ip={ip} committed={cascade_flush}")

    def is_denied(self, ip: str) -> bool:
        try:
            ip = normalize_ip(ip)
        except InvalidIpError:
            return False
        return self._deny_list_store.find_by_ip(ip) is not None

    def discard(self, ip: str) -> None:
        """Stage removal of the entry for an already-normalized `ip`, if any.

        Used by record deletion so that no entry outlives its record; the
        caller commits.
        """
        entry = self._deny_list_store.find_by_ip(ip)
        if entry is not None:
            self._deny_list_store.delete(entry, commit_now=False)

    def commit(self) -> None:
        self._deny_list_store.commit()
