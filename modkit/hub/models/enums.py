"""Shared enumerations used across the event hub."""

from __future__ import annotations

from enum import StrEnum
from typing import assert_never

# -- Devices -----------------------------------------------------------------


class DeviceType(StrEnum):
    """Physical device kinds.  Values are the exact wire / column strings."""

    CAMERA = "Camera"
    LIGHT = "Light"
    CONTACT_SENSOR = "ContactSensor"


# -- Events ------------------------------------------------------------------


class EventKind(StrEnum):
    """Event kinds carried over the websocket and stored in the event log."""

    # Incoming (client -> hub)
    HEALTH_CHECK = "HealthCheck"
    POLL_DEVICE = "PollDevice"
    EVENT_HISTORY = "EventHistory"
    PIN_CHECK = "PinCheck"
    MAIL_STATUS = "MailStatus"

    # Outgoing (hub -> client)
    MAIL_DELIVERED = "MailDelivered"
    MAIL_PICKED_UP = "MailPickedUp"
    DOOR_OPENED = "DoorOpened"
    POLL_DEVICE_RESULT = "PollDeviceResult"
    PIN_RESULT = "PinResult"
    ERROR = "Error"

    def is_outgoing(self) -> bool:
        """Whether only the hub may originate events of this kind.

        Every member is listed explicitly; a new kind that is not classified
        here fails type checking at ``assert_never``.
        """
        match self:
            case (
                EventKind.MAIL_DELIVERED
                | EventKind.MAIL_PICKED_UP
                | EventKind.DOOR_OPENED
                | EventKind.POLL_DEVICE_RESULT
                | EventKind.PIN_RESULT
                | EventKind.ERROR
            ):
                return True
            case (
                EventKind.HEALTH_CHECK
                | EventKind.POLL_DEVICE
                | EventKind.EVENT_HISTORY
                | EventKind.PIN_CHECK
                | EventKind.MAIL_STATUS
            ):
                return False
            case _:
                assert_never(self)

    def is_incoming(self) -> bool:
        return not self.is_outgoing()

    def is_mail_status(self) -> bool:
        return self in (EventKind.MAIL_DELIVERED, EventKind.MAIL_PICKED_UP)
