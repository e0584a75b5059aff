"""Async SQLAlchemy engine and session factory.

The default store is a local SQLite file driven through ``aiosqlite``
(``sqlite+aiosqlite:///modkit.db``).  Any other async SQLAlchemy URL works;
server databases get pooled connections.
"""

from __future__ import annotations

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine


def create_engine(database_url: str, **kwargs: object) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    For server databases the pool is tuned for a small single-box service:

    - **pool_size=5**: baseline connections kept open.
    - **max_overflow=10**: burst capacity above pool_size.
    - **pool_pre_ping=True**: test connections before checkout to handle
      server-side disconnects.
    - **pool_recycle=3600**: recycle connections after 1 hour.

    SQLite picks its own pool class, so only ``echo`` is defaulted there.
    All defaults can be overridden via *kwargs*.
    """
    defaults: dict[str, object] = {"echo": False}
    if not is_sqlite(database_url):
        defaults.update(
            {
                "pool_size": 5,
                "max_overflow": 10,
                "pool_pre_ping": True,
                "pool_recycle": 3600,
            }
        )
    defaults.update(kwargs)
    return create_async_engine(database_url, **defaults)  # type: ignore[arg-type]


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to *engine*.

    ``expire_on_commit=False`` so that ORM instances remain usable after
    commit without triggering lazy loads (implicit IO is forbidden in async
    code).
    """
    return async_sessionmaker(engine, expire_on_commit=False)


def is_sqlite(database_url: str) -> bool:
    return make_url(database_url).get_backend_name() == "sqlite"


def sync_url(database_url: str) -> str:
    """Return the synchronous-driver form of an async URL (used by Alembic)."""
    url = make_url(database_url)
    driver = url.get_driver_name()
    if driver in ("aiosqlite", "asyncpg"):
        backend = url.get_backend_name()
        url = url.set(drivername=backend if backend == "sqlite" else f"{backend}+psycopg")
    return url.render_as_string(hide_password=False)
