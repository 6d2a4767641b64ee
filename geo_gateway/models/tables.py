from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from geo_gateway.database import Base


class GeoRecordRow(Base):
    __tablename__ = "geo_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # 45 chars fits the longest textual IPv6 form.
    ip: Mapped[str] = mapped_column(String(45), unique=True, index=True)
    kind: Mapped[str | None] = mapped_column(String(16))
    continent_code: Mapped[str | None] = mapped_column(String(8))
    continent_name: Mapped[str | None] = mapped_column(String(255))
    country_code: Mapped[str | None] = mapped_column(String(8))
    country_name: Mapped[str | None] = mapped_column(String(255))
    region_code: Mapped[str | None] = mapped_column(String(32))
    region_name: Mapped[str | None] = mapped_column(String(255))
    city: Mapped[str | None] = mapped_column(String(255))
    postal_code: Mapped[str | None] = mapped_column(String(32))
    latitude: Mapped[float | None] = mapped_column(Float)
    longitude: Mapped[float | None] = mapped_column(Float)
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<GeoRecordRow {self.ip}>"


class DenyEntryRow(Base):
    """Deny-list entry, linked to a GeoRecordRow by IP only (no foreign key)."""

    __tablename__ = "deny_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ip: Mapped[str] = mapped_column(String(45), unique=True, index=True)
    denied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<DenyEntryRow {self.ip}>"
