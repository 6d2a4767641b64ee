from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.orm import Session

from geo_gateway.clients.base import BaseIPLookupClient
from geo_gateway.clients.factory import IpLookupProviderFactory
from geo_gateway.config import Settings, get_settings
from geo_gateway.database import get_db, init_database
from geo_gateway.errors import AppError
from geo_gateway.exception_handlers import (
    app_error_exception_handler,
    pydantic_validation_exception_handler,
    unhandled_exception_handler,
)
from geo_gateway.logger import logger
from geo_gateway.models.common import GeoRecord
from geo_gateway.models.request_models import BulkIpRequest, DenyListAddRequest
from geo_gateway.models.response_models import (
    BulkDeleteResult,
    BulkDenyAddResult,
    BulkDenyRemoveResult,
    BulkLookupResult,
    HealthResponse,
    MessageResponse,
)
from geo_gateway.services.bulk import BulkService
from geo_gateway.services.deny_list import DenyListService
from geo_gateway.services.lookup import LookupService
from geo_gateway.stores.sql import SqlDenyListStore, SqlRecordStore


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    init_database(settings.database_url)
    logger.info(f"Started IP Geolocation Gateway provider={settings.provider.value}")
    yield


app = FastAPI(
    title="IP Geolocation Gateway",
    version="0.1.0",
    description="Cached IP geolocation lookups with a deny-list and bulk operations.",
    lifespan=lifespan,
)

app.add_exception_handler(AppError, app_error_exception_handler)
app.add_exception_handler(RequestValidationError, pydantic_validation_exception_handler)
app.add_exception_handler(ValidationError, pydantic_validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


def get_provider_client(settings: Annotated[Settings, Depends(get_settings)]) -> BaseIPLookupClient:
    """Dependency to provide the configured upstream provider client."""
    return IpLookupProviderFactory(settings)()


def get_deny_list_service(db: Annotated[Session, Depends(get_db)]) -> DenyListService:
    return DenyListService(SqlRecordStore(db), SqlDenyListStore(db))


def get_lookup_service(
    db: Annotated[Session, Depends(get_db)],
    deny_list: Annotated[DenyListService, Depends(get_deny_list_service)],
    provider_client: Annotated[BaseIPLookupClient, Depends(get_provider_client)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> LookupService:
    return LookupService(
        SqlRecordStore(db),
        deny_list,
        provider_client,
        freshness_window=settings.freshness_window,
    )


def get_bulk_service(
    lookup: Annotated[LookupService, Depends(get_lookup_service)],
    deny_list: Annotated[DenyListService, Depends(get_deny_list_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> BulkService:
    return BulkService(lookup, deny_list, lookup_concurrency=settings.bulk_lookup_concurrency)


@app.get(
    "/health",
    tags=["health"],
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
)
async def health() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(status="ok")


@app.get(
    "/api/ip/{ip}",
    response_model=GeoRecord,
    tags=["ip"],
    summary="Look up geolocation information for an IP address.",
)
async def ip_lookup(
    ip: str,
    request: Request,
    lookup: Annotated[LookupService, Depends(get_lookup_service)],
) -> GeoRecord:
    """Return the stored record for `ip`, refreshing it from the provider when stale."""
    logger.info(f"Performing IP lookup path={request.url.path} method={request.method} ip={ip}")
    return await lookup.resolve(ip)


@app.delete(
    "/api/ip/{ip}",
    response_model=MessageResponse,
    tags=["ip"],
    summary="Delete the stored record for an IP address.",
)
def ip_delete(ip: str, lookup: Annotated[LookupService, Depends(get_lookup_service)]) -> MessageResponse:
    """Delete the record; a deny-list entry for the same IP goes with it."""
    lookup.delete(ip)
    return MessageResponse(message=f"IP {ip} deleted successfully")


@app.post(
    "/api/ip/bulk",
    response_model=BulkLookupResult,
    tags=["ip bulk"],
    summary="Look up geolocation information for multiple IP addresses.",
)
async def ip_bulk_lookup(
    body: BulkIpRequest,
    bulk: Annotated[BulkService, Depends(get_bulk_service)],
) -> BulkLookupResult:
    return await bulk.bulk_lookup(body.ips)


@app.post(
    "/api/ip/bulk-delete",
    response_model=BulkDeleteResult,
    tags=["ip bulk"],
    summary="Delete stored records for multiple IP addresses.",
)
def ip_bulk_delete(
    body: BulkIpRequest,
    bulk: Annotated[BulkService, Depends(get_bulk_service)],
) -> BulkDeleteResult:
    return bulk.bulk_delete(body.ips)


@app.post(
    "/api/deny-list",
    response_model=MessageResponse,
    tags=["deny-list"],
    summary="Add an IP address to the deny-list.",
)
def deny_list_add(
    body: DenyListAddRequest,
    deny_list: Annotated[DenyListService, Depends(get_deny_list_service)],
) -> MessageResponse:
    """Only IPs that already have a stored record can be denied."""
    entry = deny_list.add(body.ip)
    return MessageResponse(message=f"IP {entry.ip} added to deny-list")


@app.delete(
    "/api/deny-list/{ip}",
    response_model=MessageResponse,
    tags=["deny-list"],
    summary="Remove an IP address from the deny-list.",
)
def deny_list_remove(
    ip: str,
    deny_list: Annotated[DenyListService, Depends(get_deny_list_service)],
) -> MessageResponse:
    deny_list.remove(ip)
    return MessageResponse(message=f"IP {ip} removed from deny-list")


@app.post(
    "/api/deny-list/bulk",
    response_model=BulkDenyAddResult,
    tags=["deny-list bulk"],
    summary="Add multiple IP addresses to the deny-list.",
)
def deny_list_bulk_add(
    body: BulkIpRequest,
    bulk: Annotated[BulkService, Depends(get_bulk_service)],
) -> BulkDenyAddResult:
    return bulk.bulk_deny_add(body.ips)


@app.post(
    "/api/deny-list/bulk-delete",
    response_model=BulkDenyRemoveResult,
    tags=["deny-list bulk"],
    summary="Remove multiple IP addresses from the deny-list.",
)
def deny_list_bulk_remove(
    body: BulkIpRequest,
    bulk: Annotated[BulkService, Depends(get_bulk_service)],
) -> BulkDenyRemoveResult:
    return bulk.bulk_deny_remove(body.ips)
