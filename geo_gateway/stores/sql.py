from sqlalchemy import select
from sqlalchemy.orm import Session

from geo_gateway.models.common import DenyEntry, GeoRecord
from geo_gateway.models.tables import DenyEntryRow, GeoRecordRow
from geo_gateway.stores.base import DenyListStore, RecordStore


class SqlRecordStore(RecordStore):
    """RecordStore backed by the `geo_records` table."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _get_row(self, ip: str) -> GeoRecordRow | None:
        return self._session.scalars(select(GeoRecordRow).where(GeoRecordRow.ip == ip)).first()

    def find_by_ip(self, ip: str) -> GeoRecord | None:
        row = self._get_row(ip)
        return GeoRecord.model_validate(row) if row else None

    def upsert(self, record: GeoRecord) -> GeoRecord:
        row = self._get_row(record.ip)
        if row is None:
            row = GeoRecordRow(ip=record.ip)
            self._session.add(row)

        for field, value in record.model_dump(exclude={"ip"}).items():
            setattr(row, field, value)

        self._session.commit()
        return GeoRecord.model_validate(row)

    def delete(self, record: GeoRecord) -> None:
        row = self._get_row(record.ip)
        if row is None:
            return
        self._session.delete(row)
        self._session.commit()


class SqlDenyListStore(DenyListStore):
    """DenyListStore backed by the `deny_entries` table.

    Sharing the session with SqlRecordStore puts a deferred delete here and a
    record delete there into the same transaction.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def _get_row(self, ip: str) -> DenyEntryRow | None:
        return self._session.scalars(select(DenyEntryRow).where(DenyEntryRow.ip == ip)).first()

    def find_by_ip(self, ip: str) -> DenyEntry | None:
        row = self._get_row(ip)
        return DenyEntry.model_validate(row) if row else None

    def upsert(self, entry: DenyEntry) -> DenyEntry:
        row = self._get_row(entry.ip)
        if row is None:
            row = DenyEntryRow(ip=entry.ip)
            self._session.add(row)
        row.denied_at = entry.denied_at

        self._session.commit()
        return DenyEntry.model_validate(row)

    def delete(self, entry: DenyEntry, commit_now: bool = True) -> None:
        row = self._get_row(entry.ip)
        if row is None:
            return
        self._session.delete(row)
        if commit_now:
            self._session.commit()
        else:
            self._session.flush()

    def commit(self) -> None:
        self._session.commit()
