"""Integration smoke tests for the migrated event log.

Verifies the Alembic migration + SQLite fixture pipeline works end-to-end.
"""

from __future__ import annotations

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from modkit.hub.models import Event, EventKind
from modkit.hub.store.sql import SqlEventStore

pytestmark = pytest.mark.integration


async def test_alembic_migrations_applied(session_factory: async_sessionmaker[AsyncSession]):
    """The Events table and its index should exist."""
    async with session_factory() as db:
        result = await db.execute(text("SELECT type, name FROM sqlite_master WHERE name NOT LIKE 'sqlite_%'"))
        objects = {(row[0], row[1]) for row in result}

    assert ("table", "Events") in objects
    assert ("table", "alembic_version") in objects
    assert ("index", "ix_events_kind_timestamp") in objects


async def test_events_columns(session_factory: async_sessionmaker[AsyncSession]):
    async with session_factory() as db:
        result = await db.execute(text('PRAGMA table_info("Events")'))
        columns = [row[1] for row in result]

    assert columns == ["id", "kind", "timestamp", "device", "data"]


async def test_store_isolation_write(store: SqlEventStore):
    """Rows written in a test are visible within it."""
    await store.write_event(Event(kind=EventKind.MAIL_DELIVERED, timestamp=1))
    assert len(await store.get_all_events()) == 1


async def test_store_isolation_clean_state(store: SqlEventStore):
    """Previous test's rows should have been removed."""
    assert await store.get_all_events() == []
