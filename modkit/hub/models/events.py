"""Protocol event models.

``Event`` is the single unit exchanged with subscribers and stored in the
event log.  Wire frame::

    {"kind": "DoorOpened", "timestamp": 1700000000,
     "device": "ContactSensor", "data": {"ContactSensor": {"open": true}}}

Timestamps are assigned by the hub.  Frames coming from a client go through
``Event.from_client`` which discards any client-supplied timestamp.
"""

from __future__ import annotations

import json
import time
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_serializer, field_validator, model_validator

from modkit.hub.models.bundle import LEAF_BUNDLES, Bundle, ErrorBundle
from modkit.hub.models.enums import DeviceType, EventKind


class EventDecodeError(ValueError):
    """Raised when a wire frame or stored payload cannot be decoded into an Event."""


def now_timestamp() -> int:
    """Current time as integer seconds since the epoch."""
    return int(time.time())


# -- Bundle codec ------------------------------------------------------------


def parse_bundle(raw: Any) -> Bundle:
    """Decode an externally tagged bundle (``{"Tag": {...}}``)."""
    if isinstance(raw, Bundle):
        return raw
    if not isinstance(raw, dict) or len(raw) != 1:
        msg = "data must be an object with exactly one bundle variant key"
        raise ValueError(msg)
    ((tag, body),) = raw.items()
    bundle_type = BUNDLE_TYPES.get(tag)
    if bundle_type is None:
        msg = f"unknown bundle variant {tag!r}"
        raise ValueError(msg)
    try:
        return bundle_type.model_validate(body)
    except ValidationError as e:
        msg = f"invalid {tag} bundle: {e}"
        raise ValueError(msg) from None


def dump_bundle(bundle: Bundle) -> dict[str, Any]:
    return {bundle.tag: bundle.model_dump(mode="json")}


# -- Event -------------------------------------------------------------------


class Event(BaseModel):
    """An immutable hub event: kind, server timestamp, optional device and bundle."""

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    timestamp: int = Field(default_factory=now_timestamp)
    device: DeviceType | None = None
    data: Bundle | None = None

    @field_validator("data", mode="before")
    @classmethod
    def _parse_data(cls, value: Any) -> Bundle | None:
        if value is None:
            return None
        return parse_bundle(value)

    @field_serializer("data")
    def _dump_data(self, data: Bundle | None) -> dict[str, Any] | None:
        if data is None:
            return None
        return dump_bundle(data)

    @model_validator(mode="after")
    def _check_device_matches_data(self) -> Event:
        if self.device is not None and self.data is not None and self.data.device is not None:
            if self.data.device != self.device:
                msg = f"{self.data.tag} data cannot be attached to a {self.device} event"
                raise ValueError(msg)
        return self

    # -- Construction ----------------------------------------------------------

    @classmethod
    def new(
        cls,
        kind: EventKind,
        device: DeviceType | None = None,
        data: Bundle | None = None,
    ) -> Event:
        """Build an event stamped with the current time."""
        return cls(kind=kind, timestamp=now_timestamp(), device=device, data=data)

    @classmethod
    def error(cls, msg: str) -> Event:
        return cls.new(EventKind.ERROR, data=ErrorBundle(msg=msg))

    def stamped(self) -> Event:
        """Return a copy carrying the current server time."""
        return self.model_copy(update={"timestamp": now_timestamp()})

    # -- Wire format -----------------------------------------------------------

    def to_wire(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_wire(cls, text: str | bytes) -> Event:
        """Parse a frame produced by ``to_wire``, keeping its timestamp."""
        try:
            return cls.model_validate_json(text)
        except ValidationError as e:
            raise EventDecodeError(_describe(e)) from e

    @classmethod
    def from_client(cls, text: str) -> Event:
        """Parse a client frame.  Any ``timestamp`` it carries is ignored."""
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            msg = f"Bad message: {e}"
            raise EventDecodeError(msg) from e
        if not isinstance(raw, dict):
            msg = "Bad message: expected a JSON object"
            raise EventDecodeError(msg)
        raw.pop("timestamp", None)
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            raise EventDecodeError(_describe(e)) from e


class EventHistoryBundle(Bundle):
    """A replay of stored events, answering an ``EventHistory`` request."""

    tag: ClassVar[str] = "EventHistory"

    events: list[Event] = Field(default_factory=list)


BUNDLE_TYPES: dict[str, type[Bundle]] = {cls.tag: cls for cls in (*LEAF_BUNDLES, EventHistoryBundle)}


def _describe(error: ValidationError) -> str:
    details = "; ".join(f"{'.'.join(str(p) for p in err['loc']) or 'event'}: {err['msg']}" for err in error.errors())
    return f"Bad message: {details}"
