"""Database engine, session factory and declarative base."""

import logging
from functools import lru_cache
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from bond_master.core.config import get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the given URL.

    SQLite engines are configured so that every transaction starts with
    ``BEGIN IMMEDIATE``, which serialises writers the same way the
    PostgreSQL ``LOCK TABLE`` barrier does.
    """
    settings = get_settings()
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["timeout"] = settings.lock_timeout_seconds

    engine = create_async_engine(database_url, echo=echo, connect_args=connect_args)
    if engine.dialect.name == "sqlite":
        configure_sqlite(engine)
    return engine


def configure_sqlite(engine: AsyncEngine) -> None:
    """Take over transaction control from the sqlite driver."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
        # the driver must not emit its own BEGIN
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


@lru_cache
def get_engine() -> AsyncEngine:
    """Get the cached application engine."""
    settings = get_settings()
    return create_engine(settings.database_url, echo=settings.database_echo)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build a session factory bound to an engine."""
    return async_sessionmaker(engine, expire_on_commit=False)


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the cached application session factory."""
    return create_session_factory(get_engine())


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding a session.

    Services own their transaction boundaries; anything left open when the
    request ends is rolled back when the session closes.
    """
    async with get_session_factory()() as session:
        yield session


async def init_models(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    # imported for its side effect of registering the mapped tables
    from bond_master.models import db_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")
