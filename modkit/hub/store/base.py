"""Event store interface.

The event log is append-only.  Besides writes it answers two queries: the full
history and the latest mail status.  The current mail status is never kept as
separate mutable state -- it is read back from the log on demand, so it can
not drift from what was actually recorded.

Errors are split so callers can branch on them: "nothing recorded yet"
(``MailStatusNotFoundError``) is not the same as "database unreachable"
(``StoreConnectionError``).
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from modkit.hub.models.events import Event


class StoreError(Exception):
    """Base class for event store failures."""


class StoreConnectionError(StoreError):
    """The database could not be reached or the statement failed."""


class StoreDecodeError(StoreError):
    """A stored row could not be decoded back into an ``Event``."""


class MailStatusNotFoundError(StoreError):
    """No MailDelivered / MailPickedUp event has been recorded yet."""

    def __init__(self) -> None:
        super().__init__("A mail status event (MailDelivered/MailPickedUp) could not be found in the database")


@runtime_checkable
class EventStore(Protocol):
    """Async protocol for the append-only event log."""

    async def write_event(self, event: Event) -> None:
        """Append *event*.  ``EventHistory`` events are silently not stored."""
        ...

    async def get_all_events(self, *, strict: bool = False) -> list[Event]:
        """Return every stored event in insertion order.

        Unreadable rows are skipped unless *strict*, in which case the first
        one raises ``StoreDecodeError``.
        """
        ...

    async def get_mail_status(self) -> Event:
        """Return the latest mail-status event.  Raises ``MailStatusNotFoundError``."""
        ...

    async def reset(self) -> None:
        """Delete every stored event."""
        ...
