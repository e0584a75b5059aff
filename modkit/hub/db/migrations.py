"""Programmatic access to the packaged Alembic migrations.

Both alembic.ini and the alembic/ directory live inside the package, so this
works whether running from source or from an installed package.  Used by the
CLI ``db`` commands, by the app lifespan (``MODKIT_AUTO_MIGRATE``) and by the
test fixtures.
"""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config

INI_PATH = Path(__file__).parent.parent / "alembic.ini"


def alembic_config(database_url: str | None = None, *, configure_logging: bool = True) -> Config:
    """Build an Alembic Config from the package's alembic.ini.

    *database_url* overrides ``MODKIT_DATABASE_URL``.  Pass
    ``configure_logging=False`` when loguru already owns logging, so the ini
    file's handlers are not installed.
    """
    cfg = Config(str(INI_PATH))
    if database_url is not None:
        cfg.attributes["database_url"] = database_url
    cfg.attributes["configure_logging"] = configure_logging
    return cfg


def upgrade_database(
    database_url: str | None = None, revision: str = "head", *, configure_logging: bool = True
) -> None:
    """Apply migrations up to *revision* (blocking)."""
    command.upgrade(alembic_config(database_url, configure_logging=configure_logging), revision)
