"""Data bundles attached to events.

A bundle is a tagged variant.  On the wire (and in the ``data`` column) it is
externally tagged, one key naming the variant::

    {"ContactSensor": {"open": true}}
    {"PinCheck": {"pin": 6245}}

Each variant is a frozen pydantic model carrying its wire ``tag`` and, for
device payloads, the ``DeviceType`` it belongs to.  The recursive
``EventHistory`` variant lives in ``models/events.py`` next to ``Event``.
"""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict

from modkit.hub.models.enums import DeviceType


class Bundle(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    tag: ClassVar[str]
    device: ClassVar[DeviceType | None] = None


# -- Device payloads ---------------------------------------------------------


class ContactSensorBundle(Bundle):
    """Contact sensor reading.  ``open`` is ``True`` while the door is open."""

    tag: ClassVar[str] = "ContactSensor"
    device: ClassVar[DeviceType | None] = DeviceType.CONTACT_SENSOR

    open: bool


class CameraBundle(Bundle):
    """Result of a capture: the file written into the image directory."""

    tag: ClassVar[str] = "Camera"
    device: ClassVar[DeviceType | None] = DeviceType.CAMERA

    file_name: str


class LightBundle(Bundle):
    tag: ClassVar[str] = "Light"
    device: ClassVar[DeviceType | None] = DeviceType.LIGHT

    on: bool


# -- Protocol payloads -------------------------------------------------------


class ErrorBundle(Bundle):
    tag: ClassVar[str] = "Error"

    msg: str


class PinCheckBundle(Bundle):
    tag: ClassVar[str] = "PinCheck"

    pin: int


class PinResultBundle(Bundle):
    tag: ClassVar[str] = "PinResult"

    authorized: bool


LEAF_BUNDLES: tuple[type[Bundle], ...] = (
    ContactSensorBundle,
    CameraBundle,
    LightBundle,
    ErrorBundle,
    PinCheckBundle,
    PinResultBundle,
)
