"""Subscriber context.

A ``Client`` is created when a subscriber registers over HTTP and lives in the
BroadcastRegistry until it unregisters or its websocket closes.  Its outbound
channel is attached only once the websocket handshake completes; until then
the client is known but receives nothing.

Outbound channels are anyio memory object streams with an unbounded buffer.
A subscriber whose socket stalls keeps accumulating frames in memory until it
disconnects.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream


@dataclass
class Client:
    """A registered subscriber."""

    client_id: str

    sender: MemoryObjectSendStream[str] | None = None
    """Outbound channel; the connection's forwarding task drains the other end."""

    @property
    def attached(self) -> bool:
        return self.sender is not None


def open_channel() -> tuple[MemoryObjectSendStream[str], MemoryObjectReceiveStream[str]]:
    """Create an unbounded outbound channel for one subscriber."""
    return anyio.create_memory_object_stream[str](max_buffer_size=math.inf)
