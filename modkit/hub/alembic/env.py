"""Alembic environment for the event log.

URL resolution order: ``config.attributes["database_url"]`` (set by
``modkit.hub.db.migrations`` for app startup and tests), then
``MODKIT_DATABASE_URL``.  Migrations always run on a synchronous driver.
"""

from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from modkit.hub.db.engine import sync_url
from modkit.hub.db.tables import Base
from modkit.hub.settings import ModkitSettings

config = context.config

if config.config_file_name is not None and config.attributes.get("configure_logging", True):
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# SQLite cannot ALTER most things in place, so every migration is batched.
_OPTIONS = {"target_metadata": target_metadata, "compare_type": True, "render_as_batch": True}


def _database_url() -> str:
    return sync_url(config.attributes.get("database_url") or ModkitSettings().database_url)


def _offline() -> None:
    """Emit SQL to stdout instead of touching a database."""
    context.configure(url=_database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"}, **_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def _online() -> None:
    engine = create_engine(_database_url(), poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            context.configure(connection=connection, **_OPTIONS)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    _offline()
else:
    _online()
