"""SQL event store.

Persists events into the ``Events`` table through an async SQLAlchemy session
factory.  The engine's connection pool makes the store safe to share between
the watchdog and every websocket connection; each call opens its own short
session.

Every SQLAlchemy failure is re-raised as ``StoreConnectionError`` so callers
only deal with the store's own error types.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from loguru import logger
from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from modkit.hub.db.tables import NONE_MARKER, EventRow
from modkit.hub.models.enums import DeviceType, EventKind
from modkit.hub.models.events import Event, dump_bundle
from modkit.hub.store.base import MailStatusNotFoundError, StoreConnectionError, StoreDecodeError

if TYPE_CHECKING:
    from sqlalchemy import Delete, Select
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

MAIL_STATUS_KINDS = (EventKind.MAIL_DELIVERED.value, EventKind.MAIL_PICKED_UP.value)


class SqlEventStore:
    """SQLAlchemy implementation of the EventStore protocol."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # -- Write -----------------------------------------------------------------

    async def write_event(self, event: Event) -> None:
        # A history reply only repeats rows that are already stored; writing
        # it would make the log grow with copies of itself.
        if event.kind == EventKind.EVENT_HISTORY:
            return

        row = EventRow(**encode_event(event))
        try:
            async with self._session_factory() as db:
                db.add(row)
                await db.commit()
        except SQLAlchemyError as e:
            raise StoreConnectionError(str(e)) from e
        logger.debug("Store: wrote {} event (id={})", event.kind, row.id)

    # -- Read ------------------------------------------------------------------

    async def get_all_events(self, *, strict: bool = False) -> list[Event]:
        rows = await self._fetch(select(EventRow).order_by(EventRow.id))
        events: list[Event] = []
        for row in rows:
            try:
                events.append(decode_row(row))
            except StoreDecodeError as e:
                if strict:
                    raise
                logger.warning("Store: skipping unreadable row: {}", e)
        return events

    async def get_mail_status(self) -> Event:
        stmt = (
            select(EventRow)
            .where(EventRow.kind.in_(MAIL_STATUS_KINDS))
            .order_by(EventRow.timestamp.desc(), EventRow.id.desc())
            .limit(1)
        )
        rows = await self._fetch(stmt)
        if not rows:
            raise MailStatusNotFoundError
        return decode_row(rows[0])

    # -- Maintenance -----------------------------------------------------------

    async def reset(self) -> None:
        await self._execute(delete(EventRow))
        logger.warning("Store: all events deleted")

    # -- Internals -------------------------------------------------------------

    async def _fetch(self, stmt: Select[tuple[EventRow]]) -> list[EventRow]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise StoreConnectionError(str(e)) from e

    async def _execute(self, stmt: Delete) -> None:
        try:
            async with self._session_factory() as db:
                await db.execute(stmt)
                await db.commit()
        except SQLAlchemyError as e:
            raise StoreConnectionError(str(e)) from e


# -- Row codec -----------------------------------------------------------------


def encode_event(event: Event) -> dict[str, object]:
    """Map an event onto ``EventRow`` column values."""
    return {
        "kind": event.kind.value,
        "timestamp": event.timestamp,
        "device": event.device.value if event.device is not None else NONE_MARKER,
        "data": json.dumps(dump_bundle(event.data)) if event.data is not None else NONE_MARKER,
    }


def decode_row(row: EventRow) -> Event:
    """Rebuild an event from a stored row.  Raises ``StoreDecodeError``."""
    try:
        device = None if row.device == NONE_MARKER else DeviceType(row.device)
        data = None if row.data == NONE_MARKER else json.loads(row.data)
        return Event(kind=EventKind(row.kind), timestamp=row.timestamp, device=device, data=data)
    except (ValueError, ValidationError) as e:
        msg = f"Could not decode event row {row.id}: {e}"
        raise StoreDecodeError(msg) from e
