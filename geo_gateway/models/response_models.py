from typing import Any

from pydantic import BaseModel, Field

from geo_gateway.models.common import GeoRecord


class HealthResponse(BaseModel):
    """Response model for the health check endpoint."""

    status: str


class MessageResponse(BaseModel):
    """Plain acknowledgement for single-item write operations."""

    message: str


class ItemError(BaseModel):
    code: str
    message: str


class BulkLookupItem(BaseModel):
    """Outcome of one IP in a bulk lookup: either `record` or `error` is set.

    `ip` echoes the value from the request, even when it is not a valid address.
    """

    ip: Any
    record: GeoRecord | None = None
    error: ItemError | None = None


class BulkLookupResult(BaseModel):
    results: list[BulkLookupItem] = Field(default_factory=list)


class BulkDeleteResult(BaseModel):
    deleted: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class DenyAddSkipped(BaseModel):
    invalid_format: list[Any] = Field(default_factory=list)
    not_found: list[str] = Field(default_factory=list)
    already_denied: list[str] = Field(default_factory=list)


class BulkDenyAddResult(BaseModel):
    added: list[str] = Field(default_factory=list)
    skipped: DenyAddSkipped = Field(default_factory=DenyAddSkipped)


class DenyRemoveSkipped(BaseModel):
    invalid_format: list[Any] = Field(default_factory=list)
    not_found: list[str] = Field(default_factory=list)
    not_in_deny_list: list[str] = Field(default_factory=list)


class BulkDenyRemoveResult(BaseModel):
    removed: list[str] = Field(default_factory=list)
    skipped: DenyRemoveSkipped = Field(default_factory=DenyRemoveSkipped)
