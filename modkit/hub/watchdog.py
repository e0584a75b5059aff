"""Watchdog loop -- turns contact sensor edges into mailbox events.

Every tick the door sensor is polled and compared with the last reading:

- **closed -> open**: ``DoorOpened(open=true)`` goes out at once, then a clip
  is recorded and announced as ``PollDeviceResult(Camera)``.
- **open -> closed**: ``DoorOpened(open=false)`` goes out at once, then a mail
  status event is derived from the log.  Each open/close cycle is assumed to
  be exactly one mail interaction, so the status alternates: after
  ``MailDelivered`` comes ``MailPickedUp`` and vice versa.  An empty log
  starts with ``MailDelivered``.

The door event is broadcast before anything slow happens, so subscribers
always see it ahead of the derived events of the same tick.  Derived events
are broadcast first and persisted second; a store failure loses the record,
never the notification.

The first successful reading only seeds the state.  A failed poll counts as
"no change".  Recording runs on a worker thread so the event loop (and every
websocket connection) keeps running while the camera is busy.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from anyio import to_thread
from loguru import logger

from modkit.hub.devices.base import DeviceError
from modkit.hub.models.bundle import ContactSensorBundle
from modkit.hub.models.enums import DeviceType, EventKind
from modkit.hub.models.events import Event
from modkit.hub.store.base import MailStatusNotFoundError, StoreError

if TYPE_CHECKING:
    from modkit.hub.devices.base import Device
    from modkit.hub.devices.camera import Camera
    from modkit.hub.registry import BroadcastRegistry
    from modkit.hub.store.base import EventStore


class Watchdog:
    """Polls the door sensor and publishes the events it implies."""

    def __init__(
        self,
        sensor: Device,
        camera: Camera | None,
        registry: BroadcastRegistry,
        store: EventStore,
        *,
        interval: float = 1.0,
        video_seconds: float = 5.0,
    ) -> None:
        self._sensor = sensor
        self._camera = camera
        self._registry = registry
        self._store = store
        self._interval = interval
        self._video_seconds = video_seconds

        self._door_open: bool | None = None
        self._stop = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def door_open(self) -> bool | None:
        """Last known door state, ``None`` until the first successful poll."""
        return self._door_open

    # -- Lifecycle -------------------------------------------------------------

    def start(self) -> None:
        if self._task is not None:
            return
        self._stop.clear()
        self._task = asyncio.create_task(self.run(), name="modkit-watchdog")

    async def stop(self) -> None:
        """Ask the loop to finish its current tick and wait for it."""
        self._stop.set()
        if self._task is None:
            return
        task, self._task = self._task, None
        try:
            await asyncio.wait_for(task, timeout=self._interval + self._video_seconds + 5)
        except TimeoutError:
            logger.warning("Watchdog: did not stop in time, cancelling")
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def run(self) -> None:
        logger.info("Watchdog: watching {} every {}s", self._sensor.name, self._interval)
        while not self._stop.is_set():
            try:
                await self.tick()
            except Exception:
                logger.exception("Watchdog: tick failed")
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stop.wait(), timeout=self._interval)
        logger.info("Watchdog: stopped")

    # -- State machine ---------------------------------------------------------

    async def tick(self) -> list[Event]:
        """Run one polling cycle.  Returns the events published, in order."""
        is_open = self._read_door()
        if is_open is None:
            return []
        if self._door_open is None:
            self._door_open = is_open
            logger.info("Watchdog: initial door state is {}", "open" if is_open else "closed")
            return []
        if is_open == self._door_open:
            return []

        self._door_open = is_open
        door_event = Event.new(EventKind.DOOR_OPENED, DeviceType.CONTACT_SENSOR, ContactSensorBundle(open=is_open))
        await self._publish(door_event)

        if is_open:
            logger.info("Watchdog: door opened")
            self._activate_sensor()
            derived = await self._record_clip()
        else:
            logger.info("Watchdog: door closed")
            derived = await self._infer_mail_status()

        queued = [derived] if derived is not None else []
        for event in queued:
            await self._publish(event)
        return [door_event, *queued]

    def _read_door(self) -> bool | None:
        try:
            bundle = self._sensor.poll()
        except DeviceError as e:
            logger.warning("Watchdog: sensor poll failed: {}", e)
            return None
        if not isinstance(bundle, ContactSensorBundle):
            logger.error("Watchdog: {} returned {} data, expected ContactSensor", self._sensor.name, bundle.tag)
            return None
        return bundle.open

    def _activate_sensor(self) -> None:
        try:
            self._sensor.on_activate()
        except DeviceError as e:
            logger.warning("Watchdog: {} activation hook failed: {}", self._sensor.name, e)

    async def _record_clip(self) -> Event | None:
        if self._camera is None:
            return None
        try:
            bundle = await to_thread.run_sync(self._camera.record, self._video_seconds)
        except DeviceError as e:
            logger.error("Watchdog: video capture failed: {}", e)
            return None
        logger.info("Watchdog: recorded {}", bundle.file_name)
        return Event.new(EventKind.POLL_DEVICE_RESULT, DeviceType.CAMERA, bundle)

    async def _infer_mail_status(self) -> Event:
        try:
            latest = await self._store.get_mail_status()
        except MailStatusNotFoundError:
            kind = EventKind.MAIL_DELIVERED
        except StoreError as e:
            logger.error("Watchdog: could not read mail status, assuming delivery: {}", e)
            kind = EventKind.MAIL_DELIVERED
        else:
            kind = EventKind.MAIL_PICKED_UP if latest.kind == EventKind.MAIL_DELIVERED else EventKind.MAIL_DELIVERED
        logger.info("Watchdog: mail status is now {}", kind)
        return Event.new(kind)

    async def _publish(self, event: Event) -> None:
        await self._registry.broadcast(event)
        try:
            await self._store.write_event(event)
        except StoreError as e:
            logger.error("Watchdog: {} event was not recorded: {}", event.kind, e)
