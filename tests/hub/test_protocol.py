"""Tests for MessageHandler: one inbound frame in, one response event out."""

from __future__ import annotations

import json
import time
from pathlib import Path

import pytest

from modkit.hub.devices import DeviceSet, SimulatedContactSensor, write_door_state
from modkit.hub.models import (
    CameraBundle,
    ContactSensorBundle,
    DeviceType,
    ErrorBundle,
    Event,
    EventHistoryBundle,
    EventKind,
    PinResultBundle,
)
from modkit.hub.protocol import (
    MISSING_DEVICE_MSG,
    MISSING_PIN_MSG,
    NO_MAIL_STATUS_MSG,
    WRONG_DIRECTION_MSG,
    MessageHandler,
)
from modkit.hub.store import SqlEventStore, StoreConnectionError

PIN = 6245


@pytest.fixture
def handler(store: SqlEventStore, devices: DeviceSet) -> MessageHandler:
    return MessageHandler(store, devices, PIN)


def _frame(**fields: object) -> str:
    return json.dumps(fields)


def _error_msg(event: Event) -> str:
    assert event.kind == EventKind.ERROR
    assert isinstance(event.data, ErrorBundle)
    return event.data.msg


# ---------------------------------------------------------------------------
# Decoding and validation
# ---------------------------------------------------------------------------


async def test_health_check(handler: MessageHandler) -> None:
    response = await handler.handle(_frame(kind="HealthCheck"))

    assert response.kind == EventKind.HEALTH_CHECK
    assert response.device is None
    assert response.data is None


async def test_bytes_frame(handler: MessageHandler) -> None:
    response = await handler.handle(b'{"kind": "HealthCheck"}')
    assert response.kind == EventKind.HEALTH_CHECK


async def test_invalid_utf8(handler: MessageHandler) -> None:
    response = await handler.handle(b"\xff\xfe")
    assert "UTF-8" in _error_msg(response)


@pytest.mark.parametrize("frame", ["{", '"HealthCheck"', '{"kind": "Teleport"}'])
async def test_bad_message(handler: MessageHandler, store: SqlEventStore, frame: str) -> None:
    response = await handler.handle(frame)

    assert _error_msg(response).startswith("Bad message")
    assert await store.get_all_events() == []


@pytest.mark.parametrize(
    "kind", ["MailDelivered", "MailPickedUp", "DoorOpened", "PollDeviceResult", "PinResult", "Error"]
)
async def test_outgoing_kind_rejected_and_not_recorded(
    handler: MessageHandler, store: SqlEventStore, kind: str
) -> None:
    response = await handler.handle(_frame(kind=kind))

    assert _error_msg(response) == WRONG_DIRECTION_MSG
    assert await store.get_all_events() == []


@pytest.mark.parametrize(
    ("kind", "data"),
    [
        ("HealthCheck", {"EventHistory": {"events": [{"kind": "MailDelivered", "timestamp": 9999999999}]}}),
        ("PollDevice", {"Light": {"on": True}}),
        ("EventHistory", {"EventHistory": {"events": []}}),
        ("MailStatus", {"Error": {"msg": "nothing to see"}}),
        ("PinCheck", {"PinResult": {"authorized": True}}),
    ],
)
async def test_request_with_foreign_bundle_rejected_and_not_recorded(
    handler: MessageHandler, store: SqlEventStore, kind: str, data: dict
) -> None:
    response = await handler.handle(_frame(kind=kind, data=data))

    assert _error_msg(response).startswith("Bad message")
    assert await store.get_all_events() == []


async def test_request_is_recorded_with_server_time(handler: MessageHandler, store: SqlEventStore) -> None:
    before = int(time.time())
    await handler.handle(_frame(kind="HealthCheck", timestamp=5))

    (recorded,) = await store.get_all_events()
    assert recorded.kind == EventKind.HEALTH_CHECK
    assert recorded.timestamp >= before


async def test_store_failure_does_not_block_response(devices: DeviceSet) -> None:
    class BrokenStore:
        async def write_event(self, event: Event) -> None:
            raise StoreConnectionError("disk full")

    handler = MessageHandler(BrokenStore(), devices, PIN)  # type: ignore[arg-type]

    response = await handler.handle(_frame(kind="HealthCheck"))
    assert response.kind == EventKind.HEALTH_CHECK


# ---------------------------------------------------------------------------
# PollDevice
# ---------------------------------------------------------------------------


async def test_poll_requires_device(handler: MessageHandler) -> None:
    response = await handler.handle(_frame(kind="PollDevice"))
    assert _error_msg(response) == MISSING_DEVICE_MSG


async def test_poll_contact_sensor(handler: MessageHandler, sensor_file: Path) -> None:
    write_door_state(sensor_file, is_open=True)

    response = await handler.handle(_frame(kind="PollDevice", device="ContactSensor"))

    assert response.kind == EventKind.POLL_DEVICE_RESULT
    assert response.device == DeviceType.CONTACT_SENSOR
    assert response.data == ContactSensorBundle(open=True)


async def test_poll_camera_writes_image(handler: MessageHandler, img_dir: Path) -> None:
    response = await handler.handle(_frame(kind="PollDevice", device="Camera"))

    assert response.kind == EventKind.POLL_DEVICE_RESULT
    assert isinstance(response.data, CameraBundle)
    assert response.data.file_name.endswith(".jpg")
    assert (img_dir / response.data.file_name).is_file()


async def test_poll_camera_missing_image_dir(handler: MessageHandler, img_dir: Path) -> None:
    img_dir.rmdir()

    response = await handler.handle(_frame(kind="PollDevice", device="Camera"))

    assert _error_msg(response).startswith("IO error")


async def test_poll_device_not_installed(store: SqlEventStore, sensor_file: Path) -> None:
    handler = MessageHandler(store, DeviceSet([SimulatedContactSensor(sensor_file)]), PIN)

    response = await handler.handle(_frame(kind="PollDevice", device="Light"))

    assert _error_msg(response) == "You provided `Light` which is not a valid device type"


# ---------------------------------------------------------------------------
# PinCheck
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(("pin", "authorized"), [(6245, True), (1111, False)])
async def test_pin_check(handler: MessageHandler, pin: int, authorized: bool) -> None:
    response = await handler.handle(_frame(kind="PinCheck", data={"PinCheck": {"pin": pin}}))

    assert response.kind == EventKind.PIN_RESULT
    assert response.data == PinResultBundle(authorized=authorized)


async def test_pin_check_requires_pin(handler: MessageHandler) -> None:
    response = await handler.handle(_frame(kind="PinCheck"))
    assert _error_msg(response) == MISSING_PIN_MSG


# ---------------------------------------------------------------------------
# EventHistory / MailStatus
# ---------------------------------------------------------------------------


async def test_event_history(handler: MessageHandler, store: SqlEventStore) -> None:
    await store.write_event(Event(kind=EventKind.MAIL_DELIVERED, timestamp=100))
    await handler.handle(_frame(kind="HealthCheck"))

    response = await handler.handle(_frame(kind="EventHistory"))

    assert response.kind == EventKind.EVENT_HISTORY
    assert isinstance(response.data, EventHistoryBundle)
    # The history request itself is never part of the log.
    assert [e.kind for e in response.data.events] == [EventKind.MAIL_DELIVERED, EventKind.HEALTH_CHECK]

    again = await handler.handle(_frame(kind="EventHistory"))
    assert again.data == response.data


async def test_mail_status_empty(handler: MessageHandler) -> None:
    response = await handler.handle(_frame(kind="MailStatus"))
    assert _error_msg(response) == NO_MAIL_STATUS_MSG


async def test_mail_status_latest(handler: MessageHandler, store: SqlEventStore) -> None:
    await store.write_event(Event(kind=EventKind.MAIL_DELIVERED, timestamp=100))
    await store.write_event(Event(kind=EventKind.MAIL_PICKED_UP, timestamp=200))
    await store.write_event(Event(kind=EventKind.MAIL_DELIVERED, timestamp=300))

    response = await handler.handle(_frame(kind="MailStatus"))

    assert response == Event(kind=EventKind.MAIL_DELIVERED, timestamp=300)


async def test_read_failures_become_errors(devices: DeviceSet) -> None:
    class UnreadableStore:
        async def write_event(self, event: Event) -> None:
            pass

        async def get_all_events(self, *, strict: bool = False) -> list[Event]:
            raise StoreConnectionError("database is locked")

        async def get_mail_status(self) -> Event:
            raise StoreConnectionError("database is locked")

    handler = MessageHandler(UnreadableStore(), devices, PIN)  # type: ignore[arg-type]

    history = await handler.handle(_frame(kind="EventHistory"))
    status = await handler.handle(_frame(kind="MailStatus"))

    assert "database is locked" in _error_msg(history)
    assert "database is locked" in _error_msg(status)
