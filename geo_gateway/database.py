from collections.abc import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    pass


SessionFactory = sessionmaker(autoflush=True, expire_on_commit=False)


def create_db_engine(url: str) -> Engine:
    """Build an engine for `url`.

    In-memory SQLite gets a single shared connection so that every session
    sees the same database.
    """
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url)


def init_database(url: str) -> Engine:
    # Import for side effects: registers the tables on Base.metadata.
    from geo_gateway.models import tables  # noqa: F401

    engine = create_db_engine(url)
    Base.metadata.create_all(engine)
    SessionFactory.configure(bind=engine)
    return engine


def get_db() -> Iterator[Session]:
    """Dependency yielding one session per request."""
    db = SessionFactory()
    try:
        yield db
    finally:
        db.close()
