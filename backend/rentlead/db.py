from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import settings


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """
    pysqlite's implicit BEGIN handling breaks SAVEPOINT; take over transaction
    start so begin_nested() works (duplicate-lead and outbox inserts rely on it).

    Transactions start IMMEDIATE: a deferred BEGIN that later upgrades to a
    write lock fails straight away with "database is locked" when another
    writer holds it, while BEGIN IMMEDIATE waits out the busy timeout.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def is_lock_error(exc: BaseException) -> bool:
    """True for SQLite's busy/locked errors, which are safe to retry."""
    if not isinstance(exc, OperationalError):
        return False
    msg = str(exc.orig).lower()
    return "database is locked" in msg or "database table is locked" in msg


_connect_args = {"timeout": settings.SQLITE_BUSY_TIMEOUT_S} if settings.LEADS_DB_URL.startswith("sqlite") else {}
engine: AsyncEngine = create_async_engine(settings.LEADS_DB_URL, echo=False, future=True, connect_args=_connect_args)
if settings.LEADS_DB_URL.startswith("sqlite"):
    enable_sqlite_savepoints(engine)

# Canonical async session factory
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency that yields a session.
    """
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def async_session() -> AsyncIterator[AsyncSession]:
    """
    Convenience context manager used in jobs and scripts.
    """
    async with AsyncSessionLocal() as session:
        yield session
