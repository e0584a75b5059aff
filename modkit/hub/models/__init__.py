"""Data models for the event hub."""

from modkit.hub.models.api import HealthResponse, RegisterResponse
from modkit.hub.models.bundle import (
    Bundle,
    CameraBundle,
    ContactSensorBundle,
    ErrorBundle,
    LightBundle,
    PinCheckBundle,
    PinResultBundle,
)
from modkit.hub.models.enums import DeviceType, EventKind
from modkit.hub.models.events import Event, EventDecodeError, EventHistoryBundle

__all__ = [
    # Bundles
    "Bundle",
    "CameraBundle",
    "ContactSensorBundle",
    # Enums
    "DeviceType",
    "ErrorBundle",
    # Events
    "Event",
    "EventDecodeError",
    "EventHistoryBundle",
    "EventKind",
    "HealthResponse",
    "LightBundle",
    "PinCheckBundle",
    "PinResultBundle",
    # API schemas
    "RegisterResponse",
]
