"""
Database lifecycle and unit-of-work helpers.

The engine and session factory live on a `Database` object that the
application creates in its lifespan and disposes on shutdown. Routes receive
sessions through the `get_db` dependency; services receive the session as an
argument and never reach for a global.

Transaction semantics per backend:
  - PostgreSQL runs at READ COMMITTED. Admission takes row locks
    (SELECT ... FOR UPDATE) so every statement issued after the lock sees the
    latest committed bookings. lock_timeout / statement_timeout bound the wait.
  - SQLite has no row locks; every transaction starts with BEGIN IMMEDIATE so
    the write lock is taken before the first read. The busy timeout bounds the
    wait. Foreign keys are switched on per connection, as PostgreSQL enforces
    them.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import DBAPIError, IntegrityError, ProgrammingError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from coursebook.core.config import Settings, get_settings
from coursebook.core.exceptions import StoreUnavailable
from coursebook.core.logging import get_logger
from coursebook.core.metrics import store_unavailable
from coursebook.db.base import Base

logger = get_logger(__name__)


def _configure_sqlite(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _connection_record):
        # Hand transaction control to SQLAlchemy instead of the sqlite3 module
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """Owns the connection pool for one database URL."""

    def __init__(self, url: str, settings: Optional[Settings] = None, echo: Optional[bool] = None):
        settings = settings or get_settings()
        self.url = make_url(url)
        self.is_sqlite = self.url.get_backend_name() == "sqlite"

        engine_kwargs: dict = {"echo": settings.DB_ECHO if echo is None else echo}
        if self.is_sqlite:
            engine_kwargs["connect_args"] = {"timeout": settings.DB_LOCK_TIMEOUT_MS / 1000}
        else:
            engine_kwargs.update(
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_timeout=settings.DB_POOL_TIMEOUT,
                pool_recycle=settings.DB_POOL_RECYCLE,
                pool_pre_ping=True,
            )
            if self.url.get_driver_name() == "asyncpg":
                engine_kwargs["connect_args"] = {
                    "server_settings": {
                        "lock_timeout": str(settings.DB_LOCK_TIMEOUT_MS),
                        "statement_timeout": str(settings.DB_STATEMENT_TIMEOUT_MS),
                    }
                }

        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        if self.is_sqlite:
            _configure_sqlite(self.engine)

        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("database_disposed", backend=self.url.get_backend_name())


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session from the application's Database."""
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session


@asynccontextmanager
async def store_errors() -> AsyncIterator[None]:
    """
    Translate driver-level outages into StoreUnavailable.

    Constraint violations and SQL errors are left alone: they are not outages
    and retrying them cannot help.
    """
    try:
        yield
    except (IntegrityError, ProgrammingError):
        raise
    except (DBAPIError, OSError, asyncio.TimeoutError) as exc:
        store_unavailable.inc()
        logger.warning("store_unavailable", error_type=type(exc).__name__, error=str(exc))
        raise StoreUnavailable() from exc


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Run the body as one transaction on `db`.

    Commits on success. Any exception rolls back, so a rejected or failed
    admission never leaves a partial write behind.
    """
    async with store_errors():
        try:
            yield db
            await db.commit()
        except Exception:
            await _rollback_quietly(db)
            raise


async def _rollback_quietly(db: AsyncSession) -> None:
    try:
        await db.rollback()
    except DBAPIError as exc:
        # The original error is re-raised by the caller; this one only explains
        # why the connection could not be cleaned up.
        logger.warning("rollback_failed", error=str(exc))
