"""Device drivers and the capability interface the hub depends on."""

from modkit.hub.devices.base import (
    CommunicationError,
    Device,
    DeviceError,
    DeviceIOError,
    DeviceNotFoundError,
    DeviceSet,
    GpioError,
    ImageError,
    NoConnectionError,
)
from modkit.hub.devices.camera import Camera, PiCamera, SimulatedCamera
from modkit.hub.devices.contact_sensor import GpioContactSensor, SimulatedContactSensor, write_door_state
from modkit.hub.devices.light import GpioLight, SimulatedLight

__all__ = [
    "Camera",
    "CommunicationError",
    "Device",
    "DeviceError",
    "DeviceIOError",
    "DeviceNotFoundError",
    "DeviceSet",
    "GpioContactSensor",
    "GpioError",
    "GpioLight",
    "ImageError",
    "NoConnectionError",
    "PiCamera",
    "SimulatedCamera",
    "SimulatedContactSensor",
    "SimulatedLight",
    "write_door_state",
]
