"""Websocket message protocol.

``MessageHandler.handle`` turns one inbound frame into exactly one response
event.  The steps, in order:

1. decode the frame as UTF-8 text,
2. parse it as an ``Event`` (client timestamps are dropped),
3. reject outgoing kinds -- clients must not forge hub events such as
   ``MailDelivered`` -- and requests carrying a bundle their kind does not
   take, such as a smuggled ``EventHistory``,
4. stamp the server time,
5. record the request (best effort, failures are only logged),
6. dispatch to the handler of its kind.

Every failure along the way becomes an ``Error`` event.  The only exception
that escapes is ``AssertionError`` for an incoming kind with no handler,
which is a bug in this module rather than a bad request.
"""

from __future__ import annotations

import hmac
from typing import TYPE_CHECKING

from anyio import to_thread
from loguru import logger

from modkit.hub.devices.base import DeviceError
from modkit.hub.models.bundle import Bundle, PinCheckBundle, PinResultBundle
from modkit.hub.models.enums import EventKind
from modkit.hub.models.events import Event, EventDecodeError, EventHistoryBundle
from modkit.hub.store.base import MailStatusNotFoundError, StoreError

if TYPE_CHECKING:
    from modkit.hub.devices.base import DeviceSet
    from modkit.hub.store.base import EventStore

WRONG_DIRECTION_MSG = (
    "this Event type should only be sent from the server, not from the client. Try another event type."
)
MISSING_DEVICE_MSG = 'Please provide a device type to poll ("device": "Camera" for example)'
MISSING_PIN_MSG = 'Please provide a pin to check ("data": {"PinCheck": {"pin": 1234}})'
NO_MAIL_STATUS_MSG = "No mail has been delivered or picked up yet"

# Requests carry no bundle except a PinCheck, which carries its pin.
_REQUEST_BUNDLES: dict[EventKind, type[Bundle]] = {EventKind.PIN_CHECK: PinCheckBundle}


class MessageHandler:
    """Answers client requests.  One instance is shared by all connections."""

    def __init__(self, store: EventStore, devices: DeviceSet, access_pin: int) -> None:
        self._store = store
        self._devices = devices
        self._access_pin = access_pin

    async def handle(self, raw: str | bytes) -> Event:
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                logger.error("Protocol: could not decode websocket frame as UTF-8")
                return Event.error(f"Message is not valid UTF-8: {e}")

        logger.debug("Protocol: got message {!r}", raw)

        try:
            event = Event.from_client(raw)
        except EventDecodeError as e:
            logger.warning("Protocol: could not parse message into an event: {}", e)
            return Event.error(str(e))

        if event.kind.is_outgoing():
            logger.warning("Protocol: rejected client-sent {} event", event.kind)
            return Event.error(WRONG_DIRECTION_MSG)

        if event.data is not None and not isinstance(event.data, _REQUEST_BUNDLES.get(event.kind, ())):
            logger.warning("Protocol: rejected {} request carrying {} data", event.kind, event.data.tag)
            return Event.error(f"Bad message: {event.kind} requests cannot carry {event.data.tag} data")

        event = event.stamped()
        await self._record(event)
        return await self._dispatch(event)

    async def _record(self, event: Event) -> None:
        try:
            await self._store.write_event(event)
        except StoreError as e:
            logger.error("Protocol: incoming {} event was not recorded: {}", event.kind, e)

    async def _dispatch(self, event: Event) -> Event:
        match event.kind:
            case EventKind.HEALTH_CHECK:
                return Event.new(EventKind.HEALTH_CHECK)
            case EventKind.POLL_DEVICE:
                return await self._poll_device(event)
            case EventKind.PIN_CHECK:
                return self._check_pin(event)
            case EventKind.EVENT_HISTORY:
                return await self._event_history()
            case EventKind.MAIL_STATUS:
                return await self._mail_status()
            case _:
                # Outgoing kinds were rejected above, so an incoming kind
                # without a branch here was added without a handler.
                msg = f"Incoming {event.kind} event has no handler"
                raise AssertionError(msg)

    # -- Handlers --------------------------------------------------------------

    async def _poll_device(self, event: Event) -> Event:
        if event.device is None:
            return Event.error(MISSING_DEVICE_MSG)
        try:
            bundle = await to_thread.run_sync(self._devices.poll, event.device)
        except DeviceError as e:
            logger.warning("Protocol: polling {} failed: {}", event.device, e)
            return Event.error(str(e))
        return Event.new(EventKind.POLL_DEVICE_RESULT, event.device, bundle)

    def _check_pin(self, event: Event) -> Event:
        if not isinstance(event.data, PinCheckBundle):
            return Event.error(MISSING_PIN_MSG)
        authorized = hmac.compare_digest(str(event.data.pin), str(self._access_pin))
        logger.info("Protocol: pin check {}", "accepted" if authorized else "rejected")
        return Event.new(EventKind.PIN_RESULT, data=PinResultBundle(authorized=authorized))

    async def _event_history(self) -> Event:
        try:
            events = await self._store.get_all_events()
        except StoreError as e:
            logger.error("Protocol: could not read event history: {}", e)
            return Event.error(f"Could not read event history: {e}")
        return Event.new(EventKind.EVENT_HISTORY, data=EventHistoryBundle(events=events))

    async def _mail_status(self) -> Event:
        try:
            return await self._store.get_mail_status()
        except MailStatusNotFoundError:
            return Event.error(NO_MAIL_STATUS_MSG)
        except StoreError as e:
            logger.error("Protocol: could not read mail status: {}", e)
            return Event.error(f"Could not read mail status: {e}")
