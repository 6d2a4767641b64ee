from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo; stored timestamps are always UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class GeoAttributes(BaseModel):
    """Normalized geolocation attributes returned by an IP provider.

    This is the provider-independent shape every client maps its payload
    into before the lookup service merges it into a stored GeoRecord.
    """

    kind: str | None = None
    continent_code: str | None = None
    continent_name: str | None = None
    country_code: str | None = None
    country_name: str | None = None
    region_code: str | None = None
    region_name: str | None = None
    city: str | None = None
    postal_code: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_lat_lon(cls, value: Any) -> float | None:
        """Allow latitude/longitude to be provided as strings, numbers, or null.

        Providers may return these fields as strings; this validator normalizes them
        into floats while gracefully handling missing or invalid values.
        """
        if value is None:
            return None
        try:
            # For general GPS and mapping, 5-6 decimal places (e.g., 34.052235)
            return round(float(value), 6)
        except (TypeError, ValueError):
            return None

    @field_validator(
        "kind",
        "continent_code",
        "continent_name",
        "country_code",
        "country_name",
        "region_code",
        "region_name",
        "city",
        "postal_code",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: Any) -> str | None:
        if value is None:
            return None
        value_str = str(value).strip()
        return value_str or None


class GeoRecord(GeoAttributes):
    """Cached geolocation attributes for one IP address."""

    model_config = ConfigDict(from_attributes=True)

    ip: str
    fetched_at: datetime

    @field_validator("fetched_at")
    @classmethod
    def _fetched_at_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class DenyEntry(BaseModel):
    """A marker that blocks lookups for one IP address."""

    model_config = ConfigDict(from_attributes=True)

    ip: str
    denied_at: datetime

    @field_validator("denied_at")
    @classmethod
    def _denied_at_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
