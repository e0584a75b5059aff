"""In-process broadcast registry.

Tracks connected subscribers and fans events out to them.  Ephemeral -- empty
on process restart; clients that are not connected when an event happens
never see it (history is available through ``EventHistory`` requests).

A single ``asyncio.Lock`` guards the client map.  Nothing slow happens while
it is held: enqueueing on an unbounded memory stream never blocks, and device
I/O always runs outside the registry.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import anyio
from loguru import logger

from modkit.hub.context import Client

if TYPE_CHECKING:
    from anyio.streams.memory import MemoryObjectSendStream

    from modkit.hub.models.events import Event


class ShuttingDownError(RuntimeError):
    """Raised when attempting to register a client during shutdown."""


class AlreadyAttachedError(RuntimeError):
    """Raised when a second connection tries to attach to a client id."""


class BroadcastRegistry:
    """Registry of subscribers and their outbound channels.

    Broadcasts are at-most-once per attached client per call, with no retry.
    Each client's channel is FIFO, so a client sees events in the order they
    were broadcast; there is no ordering across clients.
    """

    def __init__(self) -> None:
        self._clients: dict[str, Client] = {}
        self._lock = asyncio.Lock()
        self._shutting_down = False

    # -- Mutation --------------------------------------------------------------

    async def register(self, client_id: str) -> Client:
        """Register *client_id* without a channel.  Re-registering replaces the entry."""
        if self._shutting_down:
            raise ShuttingDownError
        client = Client(client_id=client_id)
        async with self._lock:
            previous = self._clients.get(client_id)
            self._clients[client_id] = client
        if previous is not None and previous.sender is not None:
            previous.sender.close()
        logger.debug("Registry: register client {}", client_id)
        return client

    async def attach(self, client_id: str, sender: MemoryObjectSendStream[str]) -> None:
        """Attach the outbound channel of a live connection.

        Raises ``LookupError`` if the client is not registered and
        ``AlreadyAttachedError`` if another connection already holds it.
        """
        async with self._lock:
            client = self._clients.get(client_id)
            if client is None:
                msg = f"Client '{client_id}' is not registered"
                raise LookupError(msg)
            if client.sender is not None:
                msg = f"Client '{client_id}' is already connected"
                raise AlreadyAttachedError(msg)
            client.sender = sender
        logger.info("Registry: client {} attached", client_id)

    async def unregister(self, client_id: str, sender: MemoryObjectSendStream[str] | None = None) -> bool:
        """Remove *client_id*.  No-op (returns ``False``) if it is not registered.

        With *sender*, the client is only removed while that channel is still
        the one attached, so a closing connection never drops a newer entry
        registered under the same id.
        """
        async with self._lock:
            client = self._clients.get(client_id)
            if client is None or (sender is not None and client.sender is not sender):
                return False
            del self._clients[client_id]
        if client.sender is not None:
            client.sender.close()
        logger.info("Registry: client {} unregistered", client_id)
        return True

    # -- Delivery --------------------------------------------------------------

    async def broadcast(self, event: Event) -> int:
        """Send *event* to every attached client.  Returns the number reached.

        A client whose channel is gone is logged and skipped; the others are
        still served.
        """
        message = event.to_wire()
        delivered = 0
        async with self._lock:
            for client_id, client in self._clients.items():
                if client.sender is None:
                    continue
                if _offer(client_id, client.sender, message):
                    delivered += 1
        logger.debug("Registry: broadcast {} to {} clients", event.kind, delivered)
        return delivered

    # -- Query -----------------------------------------------------------------

    def get(self, client_id: str) -> Client | None:
        return self._clients.get(client_id)

    def is_registered(self, client_id: str) -> bool:
        return client_id in self._clients

    def all_clients(self) -> list[Client]:
        """Return a snapshot of all registered clients."""
        return list(self._clients.values())

    @property
    def active_count(self) -> int:
        return len(self._clients)

    # -- Lifecycle -------------------------------------------------------------

    def begin_shutdown(self) -> None:
        """Mark the registry as shutting down.  New registrations are refused."""
        self._shutting_down = True
        logger.info("Registry: shutdown initiated, refusing new clients")

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    async def close_all(self) -> int:
        """Close every outbound channel so forwarding tasks finish.  Returns the count closed."""
        async with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()
        closed = 0
        for client in clients:
            if client.sender is not None:
                client.sender.close()
                closed += 1
        return closed


def _offer(client_id: str, sender: MemoryObjectSendStream[str], message: str) -> bool:
    try:
        sender.send_nowait(message)
    except (anyio.BrokenResourceError, anyio.ClosedResourceError):
        logger.warning("Registry: channel of client {} is gone, skipping", client_id)
        return False
    return True
