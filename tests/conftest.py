"""Shared test fixtures: a migrated SQLite event log.

The database file is session-scoped (created and migrated with the packaged
Alembic config once per run).  Each test gets its own engine and a store
that is emptied before and after the test.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from modkit.hub.db.engine import create_engine, create_session_factory
from modkit.hub.db.migrations import upgrade_database
from modkit.hub.settings import _get_settings_cached
from modkit.hub.store.sql import SqlEventStore


def _set_env(key: str, value: str) -> None:
    """Set an env var and invalidate the settings cache."""
    os.environ[key] = value
    _get_settings_cached.cache_clear()


# ---------------------------------------------------------------------------
# Session-scoped: database file and schema migration
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """aiosqlite URL of a temporary database with Alembic migrations applied."""
    path = tmp_path_factory.mktemp("db") / "modkit_test.db"
    url = f"sqlite+aiosqlite:///{path}"
    _set_env("MODKIT_DATABASE_URL", url)

    upgrade_database(url, configure_logging=False)
    return url


# ---------------------------------------------------------------------------
# Function-scoped: engine and store
# ---------------------------------------------------------------------------


@pytest.fixture
async def session_factory(db_url: str) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Session factory on a fresh engine; the engine is disposed after the test."""
    engine = create_engine(db_url)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture
async def store(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[SqlEventStore]:
    """Event store over an empty log."""
    event_store = SqlEventStore(session_factory)
    await event_store.reset()
    yield event_store
    await event_store.reset()
