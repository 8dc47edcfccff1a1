"""Database engine and session management."""

from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from review_engine.config import settings
from review_engine.models import Base


def build_engine(url: str, **kwargs: Any) -> AsyncEngine:
    """Create an async engine.

    SQLite transactions open with ``BEGIN IMMEDIATE`` so the write lock is held
    from the first read: a batch's ownership check, stats read and append run
    as one unit, the way ``SELECT ... FOR UPDATE`` serializes them elsewhere.
    """
    bind = create_async_engine(url, **kwargs)
    if make_url(url).get_backend_name() == "sqlite":

        @event.listens_for(bind.sync_engine, "connect")
        def _disable_pysqlite_begin(dbapi_connection, connection_record) -> None:
            # Stop the driver from emitting its own deferred BEGIN
            dbapi_connection.isolation_level = None

        @event.listens_for(bind.sync_engine, "begin")
        def _begin_immediate(conn) -> None:
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return bind


engine = build_engine(settings.database_url, echo=settings.debug)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for FastAPI dependency injection."""
    async with async_session() as session:
        yield session


async def init_db(bind: AsyncEngine = engine) -> None:
    """Create tables if they don't exist, making the SQLite directory first."""
    url = make_url(str(bind.url))
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
