"""FastAPI dependency injection for the hub singletons.

Usage in route handlers::

    @router.get("/things")
    async def list_things(registry: Registry) -> list[str]:
        ...

The lifespan stores every singleton on ``app.state``.  Dependencies take an
``HTTPConnection`` so the same aliases work for HTTP and websocket routes.
They raise HTTP 503 if a singleton is missing (lifespan not run, or already
torn down).
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, HTTPException, status
from starlette.requests import HTTPConnection

from modkit.hub.protocol import MessageHandler
from modkit.hub.registry import BroadcastRegistry
from modkit.hub.settings import ModkitSettings
from modkit.hub.store.base import EventStore


def _state(conn: HTTPConnection, name: str) -> Any:
    value = getattr(conn.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Hub is not running ({name} unavailable).",
        )
    return value


def get_registry(conn: HTTPConnection) -> BroadcastRegistry:
    return _state(conn, "registry")


def get_store(conn: HTTPConnection) -> EventStore:
    return _state(conn, "store")


def get_handler(conn: HTTPConnection) -> MessageHandler:
    return _state(conn, "handler")


def get_app_settings(conn: HTTPConnection) -> ModkitSettings:
    """Settings the running app was started with (not re-read from env)."""
    return _state(conn, "settings")


# -- Annotated type aliases for concise route signatures ---------------------

Registry = Annotated[BroadcastRegistry, Depends(get_registry)]
"""Annotated dependency: the subscriber registry."""

Store = Annotated[EventStore, Depends(get_store)]
"""Annotated dependency: the event log."""

Handler = Annotated[MessageHandler, Depends(get_handler)]
"""Annotated dependency: the websocket message handler."""

Settings = Annotated[ModkitSettings, Depends(get_app_settings)]
"""Annotated dependency: the app's settings."""
