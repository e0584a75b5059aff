"""Door contact sensor drivers.

Off the Pi, the door is simulated by a small text file: ``1`` means open,
anything else means closed.  ``modkit door open|close`` writes it.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from modkit.hub.devices.base import DeviceIOError, GpioError
from modkit.hub.models.bundle import ContactSensorBundle
from modkit.hub.models.enums import DeviceType


def write_door_state(path: Path, is_open: bool) -> None:
    """Set the simulated door state."""
    path.write_text("1" if is_open else "0", encoding="utf-8")


class SimulatedContactSensor:
    """Contact sensor backed by a state file."""

    device_type = DeviceType.CONTACT_SENSOR

    def __init__(self, path: Path, name: str = "Door Sensor") -> None:
        self.name = name
        self._path = path

    def poll(self) -> ContactSensorBundle:
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise DeviceIOError(f"cannot read simulated sensor state from {self._path}: {e}") from e
        return ContactSensorBundle(open=text.strip() == "1")

    def is_active(self) -> bool:
        return self.poll().open

    def on_activate(self) -> None:
        logger.info("===== {} is activated =====", self.name)

    def close(self) -> None:
        pass


class GpioContactSensor:
    """Reed switch on a pulled-up GPIO input.

    The switch ties the pin to ground while the door is shut, so a high pin
    means open.
    """

    device_type = DeviceType.CONTACT_SENSOR

    def __init__(self, pin: int, name: str = "Door Sensor") -> None:
        self.name = name
        try:
            from gpiozero import InputDevice
            from gpiozero.exc import GPIOZeroError
        except ImportError as e:
            raise GpioError("gpiozero is not installed; install the `hardware` extra") from e
        try:
            # pull_up=True inverts gpiozero's active state: active == pin low.
            self._input = InputDevice(pin, pull_up=True)
        except GPIOZeroError as e:
            raise GpioError(f"cannot claim pin {pin}: {e}") from e

    def poll(self) -> ContactSensorBundle:
        return ContactSensorBundle(open=not self._input.is_active)

    def is_active(self) -> bool:
        return self.poll().open

    def on_activate(self) -> None:
        logger.info("===== {} is activated =====", self.name)

    def close(self) -> None:
        self._input.close()
