import os
import sys
import asyncio

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# main.py validates CORS settings at import time.
os.environ.setdefault("ALLOWED_ORIGINS", "http://testserver")
os.environ.setdefault("DISABLE_RATE_LIMITS", "true")
os.environ.setdefault("APP_ENV", "test")


@pytest.fixture(scope="session")
def session_loop():
    """Single event loop for all sync fixtures that need to run async DB code."""

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    yield loop
    loop.close()

# Ensure all SQLAlchemy models are registered with the declarative Base so
# metadata.create_all creates every table when the test database is initialised.
from foosball import db, models  # noqa: F401

# Honour any externally provided DATABASE_URL (e.g. CI may point at Postgres)
# but fall back to an in-memory SQLite database so local runs remain isolated.
DEFAULT_DB_URL = os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True, scope="session")
def ensure_database(session_loop):
    """Ensure the test database starts clean and honours DATABASE_URL."""

    mp = pytest.MonkeyPatch()
    desired_url = os.getenv("DATABASE_URL") or DEFAULT_DB_URL
    mp.setenv("DATABASE_URL", desired_url)

    if desired_url.startswith("sqlite") and ":memory:" not in desired_url:
        path = desired_url.split("///")[-1]
        if os.path.exists(path):
            os.remove(path)

    db.engine = None
    db.AsyncSessionLocal = None
    yield
    if db.engine is not None:
        session_loop.run_until_complete(db.engine.dispose())
        db.engine = None

    if db.AsyncSessionLocal is not None:
        db.AsyncSessionLocal = None
    mp.undo()


async def _reset_schema(engine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(db.Base.metadata.drop_all)
        await conn.run_sync(db.Base.metadata.create_all)


@pytest.fixture(autouse=True)
def reset_schema(session_loop):
    """Reset the schema before each test."""

    engine = db.engine or db.get_engine()
    session_loop.run_until_complete(_reset_schema(engine))
    yield


async def add_players(*rows):
    """Insert ``(name, rating)`` or ``(name, rating, role)`` tuples; return their ids."""

    ids = []
    async with db.session_factory()() as session:
        for row in rows:
            name, rating = row[0], row[1]
            role = row[2] if len(row) > 2 else "forward"
            player = models.Player(name=name, role=role, rating=rating)
            session.add(player)
            await session.flush()
            ids.append(player.id)
        await session.commit()
    return ids


async def fetch_players(ids):
    async with db.session_factory()() as session:
        players = []
        for pid in ids:
            players.append(await session.get(models.Player, pid))
        return players


# Expose for test modules without turning tests/ into a package
import builtins

builtins.add_players = add_players
builtins.fetch_players = fetch_players
