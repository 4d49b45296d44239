"""Async engine, session factory and FastAPI session dependency."""

from __future__ import annotations

from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from pustak_api.core.settings import settings


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Let SQLAlchemy own BEGIN so SAVEPOINTs work on (aio)sqlite connections.

    Transactions start with ``BEGIN IMMEDIATE``: the write lock is taken up front,
    so a second writer waits out the driver's busy timeout instead of failing
    when it tries to upgrade a shared lock.
    """

    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):  # noqa: ANN001
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):  # noqa: ANN001
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str | None = None, *, echo: bool | None = None) -> AsyncEngine:
    url = database_url or settings.database_url
    connect_args = {"timeout": settings.database_busy_timeout_seconds} if url.startswith("sqlite") else {}
    engine = create_async_engine(
        url,
        echo=settings.database_echo if echo is None else echo,
        future=True,
        connect_args=connect_args,
    )
    enable_sqlite_savepoints(engine)
    return engine


engine = build_engine()
async_session = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session
