import os
from typing import Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, AsyncEngine, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import NullPool, StaticPool


engine: Optional[AsyncEngine] = None
AsyncSessionLocal: Optional[sessionmaker] = None
Base = declarative_base()


def _normalize_url(database_url: str) -> str:
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace(
            "postgresql://", "postgresql+asyncpg://", 1
        )
    return database_url


def _enable_sqlite_write_locks(new_engine: AsyncEngine) -> None:
    """Make every SQLite transaction take the database write lock up front.

    pysqlite only opens a transaction on the first DML statement, so a
    read-then-write sequence would read outside of any lock. Disabling its
    implicit handling and emitting ``BEGIN IMMEDIATE`` serialises writers from
    their first read.
    """

    @event.listens_for(new_engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(new_engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str) -> AsyncEngine:
    """Create an engine for ``database_url`` with the pool suited to its backend."""

    database_url = _normalize_url(database_url)
    engine_kwargs = {"echo": False}

    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite:
        # In-memory SQLite must reuse the same connection to persist schema/data.
        if ":memory:" in database_url:
            engine_kwargs["poolclass"] = StaticPool
        else:
            # File-backed SQLite: one connection per session so writers lock each other.
            engine_kwargs["poolclass"] = NullPool
        engine_kwargs["connect_args"] = {"timeout": 30}
    else:
        engine_kwargs["pool_pre_ping"] = True

    new_engine = create_async_engine(database_url, **engine_kwargs)
    if is_sqlite:
        _enable_sqlite_write_locks(new_engine)
    return new_engine


def get_engine() -> AsyncEngine:
    """Return a lazily created SQLAlchemy engine.

    The engine is created on first use using the ``DATABASE_URL`` environment
    variable. Importing this module has no side effects so tests can set the
    environment variable at runtime. A ``RuntimeError`` is raised only if the
    function is called without ``DATABASE_URL`` being configured.
    """

    global engine, AsyncSessionLocal

    if engine is None:
        database_url = os.getenv("DATABASE_URL")
        if not database_url:
            raise RuntimeError("DATABASE_URL environment variable is required")

        engine = build_engine(database_url)
        AsyncSessionLocal = sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False
        )

    return engine


def session_factory() -> sessionmaker:
    """Return the process-wide session factory, creating the engine if needed."""

    if AsyncSessionLocal is None:
        get_engine()

    assert AsyncSessionLocal is not None  # for type checkers
    return AsyncSessionLocal


async def get_session() -> AsyncSession:
    """Provide a database session for FastAPI dependencies."""

    async with session_factory()() as session:
        yield session
