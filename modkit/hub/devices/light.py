"""Capture light drivers."""

from __future__ import annotations

from loguru import logger

from modkit.hub.devices.base import GpioError
from modkit.hub.models.bundle import LightBundle
from modkit.hub.models.enums import DeviceType


class SimulatedLight:
    """In-memory light, used when hardware is disabled."""

    device_type = DeviceType.LIGHT

    def __init__(self, name: str = "Light") -> None:
        self.name = name
        self._on = False

    def set(self, on: bool) -> None:
        logger.debug("{}: switched {} (simulated)", self.name, "on" if on else "off")
        self._on = on

    def poll(self) -> LightBundle:
        return LightBundle(on=self._on)

    def is_active(self) -> bool:
        return self._on

    def on_activate(self) -> None:
        self.set(True)

    def close(self) -> None:
        self._on = False


class GpioLight:
    """Light strip switched by a GPIO output."""

    device_type = DeviceType.LIGHT

    def __init__(self, pin: int, name: str = "Light") -> None:
        self.name = name
        try:
            from gpiozero import LED
            from gpiozero.exc import GPIOZeroError
        except ImportError as e:
            raise GpioError("gpiozero is not installed; install the `hardware` extra") from e
        try:
            self._led = LED(pin)
        except GPIOZeroError as e:
            raise GpioError(f"cannot claim pin {pin}: {e}") from e

    def set(self, on: bool) -> None:
        logger.trace("{}: setting pin {}", self.name, "high" if on else "low")
        if on:
            self._led.on()
        else:
            self._led.off()

    def poll(self) -> LightBundle:
        return LightBundle(on=self._led.is_lit)

    def is_active(self) -> bool:
        return self._led.is_lit

    def on_activate(self) -> None:
        self.set(True)

    def close(self) -> None:
        self._led.close()
