"""Device capability interface.

The hub never touches a concrete driver.  Every physical device (contact
sensor, camera, light) implements the ``Device`` protocol and is looked up by
``DeviceType`` through a ``DeviceSet``.

Device methods are blocking (GPIO reads, subprocesses, image encoding).  Async
callers run them through ``anyio.to_thread.run_sync``.

Every failure is raised as a ``DeviceError`` subclass.  Callers treat them all
alike: log and carry on, or wrap the message in an Error event.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from modkit.hub.models.bundle import Bundle
from modkit.hub.models.enums import DeviceType

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class DeviceError(Exception):
    """Base class for device failures."""


class NoConnectionError(DeviceError):
    def __init__(self, name: str) -> None:
        super().__init__(f"No device `{name}` connected")


class CommunicationError(DeviceError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"Communication error: {detail}")


class DeviceNotFoundError(DeviceError):
    def __init__(self, device_type: DeviceType | str | None) -> None:
        super().__init__(f"You provided `{device_type}` which is not a valid device type")


class GpioError(DeviceError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"GPIO Error: {detail}")


class ImageError(DeviceError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"Image error: {detail}")


class DeviceIOError(DeviceError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"IO error: {detail}")


# ---------------------------------------------------------------------------
# Capability
# ---------------------------------------------------------------------------


@runtime_checkable
class Device(Protocol):
    """A pollable physical device."""

    name: str
    device_type: DeviceType

    def poll(self) -> Bundle:
        """Read the device and return its data bundle.  Raises ``DeviceError``."""
        ...

    def is_active(self) -> bool:
        """Whether the device is currently in its active state (door open, light on)."""
        ...

    def on_activate(self) -> None:
        """Hook run when the watchdog sees the device become active."""
        ...

    def close(self) -> None:
        """Release pins / handles.  Safe to call more than once."""
        ...


class DeviceSet:
    """The devices installed in the box, keyed by type."""

    def __init__(self, devices: Iterable[Device]) -> None:
        self._devices: dict[DeviceType, Device] = {d.device_type: d for d in devices}

    def get(self, device_type: DeviceType) -> Device:
        try:
            return self._devices[device_type]
        except KeyError:
            raise DeviceNotFoundError(device_type) from None

    def poll(self, device_type: DeviceType) -> Bundle:
        """Poll the device of *device_type* (blocking)."""
        return self.get(device_type).poll()

    def __contains__(self, device_type: object) -> bool:
        return device_type in self._devices

    def close(self) -> None:
        for device in self._devices.values():
            device.close()
