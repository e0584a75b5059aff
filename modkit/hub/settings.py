"""Service configuration loaded from MODKIT_* environment variables."""

from __future__ import annotations

import secrets
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_IMG_DIR = Path.home() / "modkit_images"


class ModkitSettings(BaseSettings):
    """Mailbox hub settings.

    All fields are read from environment variables with the ``MODKIT_`` prefix.
    For example, ``MODKIT_LOG_LEVEL=DEBUG`` maps to ``log_level``.
    """

    model_config = SettingsConfigDict(
        env_prefix="MODKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"
    log_file: Path | None = None
    """Optional file receiving WARNING and above, rotated daily."""

    # -- Event store -----------------------------------------------------------
    database_url: str = "sqlite+aiosqlite:///modkit.db"
    """Async SQLAlchemy URL of the event log."""

    auto_migrate: bool = True
    """Apply pending Alembic migrations when the hub starts."""

    # -- Devices ---------------------------------------------------------------
    hardware: bool = False
    """Drive the real GPIO pins and Pi camera.  Simulators are used otherwise."""

    img_dir: Path = DEFAULT_IMG_DIR
    """Directory receiving captured images and clips.  Must already exist."""

    sensor_file: Path = Path("sensor.txt")
    """Simulated contact sensor: the file holds ``1`` while the door is open."""

    contact_sensor_pin: int = 18
    light_pin: int = 21

    # -- Watchdog --------------------------------------------------------------
    poll_interval: float = 1.0
    """Seconds between two contact sensor polls."""

    video_seconds: float = 5.0
    """Length of the clip recorded when the door opens."""

    # -- Auth ------------------------------------------------------------------
    access_pin: int | None = None
    """Shared numeric PIN checked by ``PinCheck`` requests.  Generated if empty."""

    # -- Server ----------------------------------------------------------------
    host: str = "127.0.0.1"
    port: int = 3012

    # -- Helpers ---------------------------------------------------------------

    def resolve_access_pin(self) -> int:
        """Return the configured PIN or generate a random four-digit one."""
        if self.access_pin is not None:
            return self.access_pin
        return 1000 + secrets.randbelow(9000)


def get_settings() -> ModkitSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``_get_settings_cached.cache_clear()`` in tests to
    force a re-read after overriding env vars.
    """
    return _get_settings_cached()


@lru_cache(maxsize=1)
def _get_settings_cached() -> ModkitSettings:
    return ModkitSettings()
