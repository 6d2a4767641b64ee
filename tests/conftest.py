from collections.abc import Iterator
from datetime import timedelta

import pytest
from sqlalchemy.orm import Session

from geo_gateway.database import Base, create_db_engine
from geo_gateway.models import tables  # noqa: F401
from geo_gateway.services.bulk import BulkService
from geo_gateway.services.deny_list import DenyListService
from geo_gateway.services.lookup import LookupService
from geo_gateway.stores.sql import SqlDenyListStore, SqlRecordStore
from tests.common import FakeClock, StubProvider

FRESHNESS_WINDOW = timedelta(hours=24)


@pytest.fixture
def db_session() -> Iterator[Session]:
    """Session bound to a fresh in-memory SQLite database."""
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(engine)
    session = Session(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def provider() -> StubProvider:
    return StubProvider()


@pytest.fixture
def record_store(db_session: Session) -> SqlRecordStore:
    return SqlRecordStore(db_session)


@pytest.fixture
def deny_list_store(db_session: Session) -> SqlDenyListStore:
    return SqlDenyListStore(db_session)


@pytest.fixture
def deny_list(record_store: SqlRecordStore, deny_list_store: SqlDenyListStore, clock: FakeClock) -> DenyListService:
    return DenyListService(record_store, deny_list_store, clock=clock)


@pytest.fixture
def lookup(
    record_store: SqlRecordStore,
    deny_list: DenyListService,
    provider: StubProvider,
    clock: FakeClock,
) -> LookupService:
    return LookupService(record_store, deny_list, provider, freshness_window=FRESHNESS_WINDOW, clock=clock)


@pytest.fixture
def bulk(lookup: LookupService, deny_list: DenyListService) -> BulkService:
    return BulkService(lookup, deny_list, lookup_concurrency=2)
