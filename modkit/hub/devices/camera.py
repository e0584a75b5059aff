"""Camera drivers.

Captures land in the configured image directory, named after the capture
time (``<unix-seconds>.jpg`` for stills).  The capture light is switched on
for the duration of every capture.

``PiCamera`` shells out to ``raspistill`` / ``raspivid``.  ``SimulatedCamera``
renders placeholder frames with Pillow so the rest of the pipeline can run
anywhere.
"""

from __future__ import annotations

import subprocess
import time
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol

from loguru import logger
from PIL import Image

from modkit.hub.devices.base import CommunicationError, DeviceIOError, ImageError, NoConnectionError
from modkit.hub.models.bundle import CameraBundle
from modkit.hub.models.enums import DeviceType


class Switchable(Protocol):
    def set(self, on: bool) -> None: ...


class Camera(ABC):
    """Shared capture flow.  Subclasses write the actual files."""

    device_type = DeviceType.CAMERA
    still_suffix = "jpg"
    clip_suffix = "gif"

    def __init__(self, img_dir: Path, light: Switchable, name: str = "Camera") -> None:
        self.name = name
        self._img_dir = img_dir
        self._light = light

    # -- Device protocol -------------------------------------------------------

    def poll(self) -> CameraBundle:
        return self.capture()

    def is_active(self) -> bool:
        return False

    def on_activate(self) -> None:
        self.capture()

    def close(self) -> None:
        pass

    # -- Capture ---------------------------------------------------------------

    def capture(self) -> CameraBundle:
        """Take a still image."""
        path = self._next_path(self.still_suffix)
        with self._lit():
            logger.debug("{}: capturing still into {}", self.name, path)
            self._write_still(path)
        return CameraBundle(file_name=path.name)

    def record(self, seconds: float) -> CameraBundle:
        """Record a clip of *seconds* length.  Blocks for the whole recording."""
        path = self._next_path(self.clip_suffix)
        with self._lit():
            logger.debug("{}: recording {}s clip into {}", self.name, seconds, path)
            self._write_clip(path, seconds)
        return CameraBundle(file_name=path.name)

    @abstractmethod
    def _write_still(self, path: Path) -> None: ...

    @abstractmethod
    def _write_clip(self, path: Path, seconds: float) -> None: ...

    # -- Helpers ---------------------------------------------------------------

    def _next_path(self, suffix: str) -> Path:
        if not self._img_dir.exists():
            raise DeviceIOError(f"path {self._img_dir} does not exist")
        if not self._img_dir.is_dir():
            raise DeviceIOError(f"path {self._img_dir} is not a directory")
        return self._img_dir / f"{int(time.time())}.{suffix}"

    @contextmanager
    def _lit(self) -> Iterator[None]:
        self._light.set(True)
        try:
            yield
        finally:
            self._light.set(False)


class SimulatedCamera(Camera):
    """Writes small synthetic frames instead of real footage."""

    FRAME_SIZE = (50, 50)

    def _frame(self, index: int = 0) -> Image.Image:
        width, height = self.FRAME_SIZE
        img = Image.new("RGB", self.FRAME_SIZE)
        img.putpixel(((width // 2 + index) % width, height // 2), (255, 255, 255))
        return img

    def _write_still(self, path: Path) -> None:
        try:
            self._frame().save(path, format="JPEG")
        except (OSError, ValueError) as e:
            raise ImageError(str(e)) from e

    def _write_clip(self, path: Path, seconds: float) -> None:
        frames = [self._frame(i) for i in range(max(1, int(seconds)))]
        try:
            frames[0].save(path, format="GIF", save_all=True, append_images=frames[1:], duration=1000, loop=0)
        except (OSError, ValueError) as e:
            raise ImageError(str(e)) from e


class PiCamera(Camera):
    """Raspberry Pi camera module driven through the raspicam tools."""

    clip_suffix = "h264"
    WIDTH = 800
    HEIGHT = 550

    def _write_still(self, path: Path) -> None:
        self._run(
            "raspistill",
            ["--drc", "high", "--width", str(self.WIDTH), "--height", str(self.HEIGHT)]
            + ["--timeout", "1", "-o", str(path)],
        )

    def _write_clip(self, path: Path, seconds: float) -> None:
        millis = str(int(seconds * 1000))
        self._run(
            "raspivid",
            ["--width", str(self.WIDTH), "--height", str(self.HEIGHT), "--timeout", millis, "-o", str(path)],
        )

    def _run(self, program: str, args: list[str]) -> None:
        try:
            subprocess.run([program, *args], check=True, capture_output=True)  # noqa: S603
        except FileNotFoundError:
            raise NoConnectionError(program) from None
        except subprocess.CalledProcessError as e:
            stderr = e.stderr.decode(errors="replace").strip() if e.stderr else ""
            raise CommunicationError(f"{program} exited with {e.returncode}: {stderr}") from e
