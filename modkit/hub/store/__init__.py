"""Event store implementations."""

from modkit.hub.store.base import (
    EventStore,
    MailStatusNotFoundError,
    StoreConnectionError,
    StoreDecodeError,
    StoreError,
)
from modkit.hub.store.sql import SqlEventStore

__all__ = [
    "EventStore",
    "MailStatusNotFoundError",
    "SqlEventStore",
    "StoreConnectionError",
    "StoreDecodeError",
    "StoreError",
]
