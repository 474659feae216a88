"""Helpers for configuring SQLAlchemy engine and session factories."""

from __future__ import annotations

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker

from ..config import as_sqlalchemy_url, get_settings
from . import Base


def get_engine(database_url: str | None = None, **kwargs: object) -> Engine:
    """Create a SQLAlchemy engine.

    Args:
        database_url: Optional database URL. When ``None`` the configured
            ``DATABASE_URL`` is used.
        **kwargs: Additional keyword arguments forwarded to
            :func:`sqlalchemy.create_engine`.
    """

    url = as_sqlalchemy_url(database_url or get_settings().database_url)
    engine = create_engine(url, **kwargs)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _configure_sqlite(dbapi_connection, _connection_record):  # pragma: no cover - dialect hook
            dbapi_connection.execute("PRAGMA foreign_keys=ON")

    return engine


def get_sessionmaker(database_url: str | None = None, **kwargs: object) -> sessionmaker[Session]:
    """Return a session factory bound to a fresh engine."""

    engine = get_engine(database_url=database_url, **kwargs)
    return sessionmaker(bind=engine, expire_on_commit=False, future=True)


def create_schema(factory: sessionmaker[Session]) -> None:
    """Create all tables for the bound engine (idempotent)."""

    Base.metadata.create_all(factory.kw["bind"])


def ping(factory: sessionmaker[Session]) -> bool:
    """Return ``True`` when the database answers ``SELECT 1``."""

    try:
        with factory() as session:
            session.execute(text("SELECT 1"))
    except Exception:
        return False
    return True


__all__ = [
    "Base",
    "create_schema",
    "get_engine",
    "get_sessionmaker",
    "ping",
]
