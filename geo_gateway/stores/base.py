from abc import ABC, abstractmethod

from geo_gateway.models.common import DenyEntry, GeoRecord


class RecordStore(ABC):
    """Persistence for GeoRecords keyed by canonical IP string.

    Implementations must make `upsert` and `delete` atomic per key; the
    services do no locking of their own.
    """

    @abstractmethod
    def find_by_ip(self, ip: str) -> GeoRecord | None:
        raise NotImplementedError

    @abstractmethod
    def upsert(self, record: GeoRecord) -> GeoRecord:
        """Create the record or overwrite the stored one with the same IP."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, record: GeoRecord) -> None:
        raise NotImplementedError


class DenyListStore(ABC):
    """Persistence for deny-list entries keyed by canonical IP string."""

    @abstractmethod
    def find_by_ip(self, ip: str) -> DenyEntry | None:
        raise NotImplementedError

    @abstractmethod
    def upsert(self, entry: DenyEntry) -> DenyEntry:
        raise NotImplementedError

    @abstractmethod
    def delete(self, entry: DenyEntry, commit_now: bool = True) -> None:
        """Remove `entry`; with `commit_now=False` the change waits for `commit()`."""
        raise NotImplementedError

    @abstractmethod
    def commit(self) -> None:
        raise NotImplementedError
