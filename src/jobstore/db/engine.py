"""Async SQLAlchemy engine and session creation."""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from jobstore.config import Settings, settings as default_settings


def create_db_engine(config: Settings | None = None) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    The driver is selected by the URL scheme (``sqlite+aiosqlite``,
    ``postgresql+asyncpg``). SQLite does not support pool_size / max_overflow.
    """
    config = config or default_settings
    engine_kwargs: dict = {"echo": False}
    if not config.is_sqlite:
        engine_kwargs.update(pool_size=config.pool_size, max_overflow=config.max_overflow)
    engine = create_async_engine(config.database_url, **engine_kwargs)
    if config.is_sqlite:
        _enable_sqlite_transactions(engine)
    return engine


def _enable_sqlite_transactions(engine: AsyncEngine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT and transactional DDL behave.

    The sqlite3 driver otherwise defers BEGIN until the first DML statement.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
