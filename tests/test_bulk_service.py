from datetime import timedelta
from http import HTTPStatus

import httpx
import pytest
from sqlalchemy.orm import Session

from geo_gateway.clients.ipstack_client import IpStack
from geo_gateway.errors import InvalidInputError, ProviderLookupError, UpstreamServiceError
from geo_gateway.models.common import GeoAttributes, GeoRecord
from geo_gateway.services.bulk import BulkService
from geo_gateway.services.deny_list import DenyListService
from geo_gateway.services.lookup import LookupService
from geo_gateway.stores.sql import SqlRecordStore
from tests.common import FakeClock, MockResponse, RawJsonResponse, StubProvider, make_fake_async_client

A = "134.201.250.155"
B = "131.101.150.139"
C = "8.8.8.8"


def _seed(record_store: SqlRecordStore, clock: FakeClock, *ips: str) -> None:
    for ip in ips:
        record_store.upsert(GeoRecord(ip=ip, city=f"city-{ip}", fetched_at=clock.now))


@pytest.mark.asyncio
@pytest.mark.parametrize("ips", [[], None, "8.8.8.8", {"ips": ["8.8.8.8"]}])
async def test_bulk_lookup_rejects_empty_or_non_list(bulk: BulkService, provider: StubProvider, ips: object) -> None:
    with pytest.raises(InvalidInputError):
        await bulk.bulk_lookup(ips)

    assert provider.calls == []


@pytest.mark.parametrize("ips", [[], None, "8.8.8.8"])
def test_sync_bulk_operations_reject_empty_or_non_list(bulk: BulkService, ips: object) -> None:
    for operation in (bulk.bulk_delete, bulk.bulk_deny_add, bulk.bulk_deny_remove):
        with pytest.raises(InvalidInputError):
            operation(ips)


@pytest.mark.asyncio
async def test_bulk_lookup_mixed_valid_and_invalid(bulk: BulkService) -> None:
    result = await bulk.bulk_lookup([A, "not-an-ip"])

    assert [item.ip for item in result.results] == [A, "not-an-ip"]
    assert result.results[0].record is not None
    assert result.results[0].record.ip == A
    assert result.results[0].error is None
    assert result.results[1].record is None
    assert result.results[1].error.code == "invalid_ip"


@pytest.mark.asyncio
async def test_bulk_lookup_reports_per_item_errors_in_order(
    bulk: BulkService,
    provider: StubProvider,
    record_store: SqlRecordStore,
    deny_list: DenyListService,
    clock: FakeClock,
) -> None:
    _seed(record_store, clock, C)
    deny_list.add(C)
    provider.outcomes = {
        A: UpstreamServiceError("Request to IP provider failed"),
        B: ProviderLookupError("IP provider error: IP not found"),
    }
    ips = [A, B, C, "2001:4860:4860::8888", 17]

    result = await bulk.bulk_lookup(ips)

    assert [item.ip for item in result.results] == ips
    codes = [item.error.code if item.error else None for item in result.results]
    assert codes == ["upstream_error", "provider_not_found", "ip_denied", None, "invalid_ip"]
    assert result.results[3].record.kind == "ipv6"
    # Denied and invalid items never reach the provider.
    assert sorted(provider.calls) == sorted([A, B, "2001:4860:4860::8888"])


@pytest.mark.asyncio
async def test_bulk_lookup_serves_fresh_records_without_provider(
    bulk: BulkService, provider: StubProvider, record_store: SqlRecordStore, clock: FakeClock
) -> None:
    _seed(record_store, clock, A, B)

    result = await bulk.bulk_lookup([B, A])

    assert provider.calls == []
    assert [item.record.city for item in result.results] == [f"city-{B}", f"city-{A}"]


@pytest.mark.asyncio
async def test_bulk_lookup_many_items_keeps_input_order(bulk: BulkService, provider: StubProvider) -> None:
    ips = [f"10.0.0.{i}" for i in range(1, 21)]
    provider.outcomes = {ip: GeoAttributes(city=f"c{n}") for n, ip in enumerate(ips)}

    result = await bulk.bulk_lookup(ips)

    assert [item.ip for item in result.results] == ips
    assert [item.record.city for item in result.results] == [f"c{n}" for n in range(20)]
    assert len(provider.calls) == 20


def test_bulk_delete(
    bulk: BulkService, record_store: SqlRecordStore, deny_list: DenyListService, clock: FakeClock
) -> None:
    _seed(record_store, clock, A, B)
    deny_list.add(B)

    result = bulk.bulk_delete([A, "bad-ip", C, B])

    assert result.deleted == [A, B]
    assert result.errors == ["Invalid IP address format: bad-ip", f"IP not found in database: {C}"]
    assert record_store.find_by_ip(A) is None
    assert record_store.find_by_ip(B) is None
    assert deny_list.is_denied(B) is False


def test_bulk_delete_duplicate_ip_reports_second_as_not_found(
    bulk: BulkService, record_store: SqlRecordStore, clock: FakeClock
) -> None:
    _seed(record_store, clock, A)

    result = bulk.bulk_delete([A, A])

    assert result.deleted == [A]
    assert result.errors == [f"IP not found in database: {A}"]


def test_bulk_deny_add_classifies_every_ip(
    bulk: BulkService, record_store: SqlRecordStore, deny_list: DenyListService, clock: FakeClock
) -> None:
    _seed(record_store, clock, A, C)
    deny_list.add(C)

    result = bulk.bulk_deny_add([A, B, C, "nope"])

    assert result.added == [A]
    assert result.skipped.not_found == [B]
    assert result.skipped.already_denied == [C]
    assert result.skipped.invalid_format == ["nope"]
    assert deny_list.is_denied(A) is True


def test_bulk_deny_add_ignores_freshness(
    bulk: BulkService, record_store: SqlRecordStore, deny_list: DenyListService, clock: FakeClock
) -> None:
    record_store.upsert(GeoRecord(ip=A, fetched_at=clock.now - timedelta(days=90)))

    result = bulk.bulk_deny_add([A])

    assert result.added == [A]


def test_bulk_deny_remove_classifies_every_ip(
    bulk: BulkService,
    record_store: SqlRecordStore,
    deny_list: DenyListService,
    clock: FakeClock,
    db_session: Session,
) -> None:
    _seed(record_store, clock, A, C)
    deny_list.add(A)

    result = bulk.bulk_deny_remove([A, B, C, "1.2.3", A])

    assert result.removed == [A]
    assert result.skipped.not_found == [B]
    assert result.skipped.not_in_deny_list == [C, A]
    assert result.skipped.invalid_format == ["1.2.3"]

    # The batch was committed: a rollback must not bring the entry back.
    db_session.rollback()
    assert deny_list.is_denied(A) is False


def test_bulk_deny_remove_commits_once(
    bulk: BulkService,
    record_store: SqlRecordStore,
    deny_list: DenyListService,
    deny_list_store,
    clock: FakeClock,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _seed(record_store, clock, A, B)
    deny_list.add(A)
    deny_list.add(B)

    commits: list[None] = []
    original_commit = deny_list_store.commit

    def _counting_commit() -> None:
        commits.append(None)
        original_commit()

    monkeypatch.setattr(deny_list_store, "commit", _counting_commit)

    result = bulk.bulk_deny_remove([A, B])

    assert result.removed == [A, B]
    assert len(commits) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("response", "code"),
    [
        (RawJsonResponse(status_code=HTTPStatus.OK, body=["unexpected"]), "upstream_error"),
        (RawJsonResponse(status_code=HTTPStatus.OK, body=None), "upstream_error"),
        (MockResponse(status_code=HTTPStatus.OK, payload={"success": False, "error": "bad key"}), "provider_not_found"),
    ],
)
async def test_bulk_lookup_malformed_provider_body_is_an_item_error(
    monkeypatch: pytest.MonkeyPatch,
    record_store: SqlRecordStore,
    deny_list: DenyListService,
    clock: FakeClock,
    response: MockResponse,
    code: str,
) -> None:
    """A garbled provider answer fails only its own item and the batch still completes."""
    fake_client, _ = make_fake_async_client(response)
    monkeypatch.setattr(httpx, "AsyncClient", fake_client)
    lookup = LookupService(record_store, deny_list, IpStack(access_key="secret"), clock=clock)
    bulk = BulkService(lookup, deny_list, lookup_concurrency=2)

    result = await bulk.bulk_lookup([C, "not-an-ip"])

    assert [item.ip for item in result.results] == [C, "not-an-ip"]
    assert result.results[0].record is None
    assert result.results[0].error.code == code
    assert result.results[1].error.code == "invalid_ip"
    assert record_store.find_by_ip(C) is None
