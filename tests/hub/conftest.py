"""Shared fixtures for hub tests."""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from modkit.hub.app import app
from modkit.hub.devices import DeviceSet, SimulatedCamera, SimulatedContactSensor, SimulatedLight, write_door_state
from modkit.hub.protocol import MessageHandler
from modkit.hub.registry import BroadcastRegistry
from modkit.hub.settings import _get_settings_cached
from modkit.hub.store.sql import SqlEventStore


@pytest.fixture
def img_dir(tmp_path: Path) -> Path:
    path = tmp_path / "images"
    path.mkdir()
    return path


@pytest.fixture
def sensor_file(tmp_path: Path) -> Path:
    path = tmp_path / "sensor.txt"
    write_door_state(path, is_open=False)
    return path


@pytest.fixture
def devices(img_dir: Path, sensor_file: Path) -> DeviceSet:
    """Simulated devices: closed door, light off, camera writing into *img_dir*."""
    light = SimulatedLight()
    return DeviceSet([SimulatedContactSensor(sensor_file), light, SimulatedCamera(img_dir, light)])


@pytest.fixture
def app_client(
    tmp_path: Path, img_dir: Path, sensor_file: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[TestClient]:
    """TestClient running the full lifespan against temporary files.

    Uses its own database file, migrated by the lifespan on startup.
    """
    monkeypatch.setenv("MODKIT_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'hub.db'}")
    monkeypatch.setenv("MODKIT_IMG_DIR", str(img_dir))
    monkeypatch.setenv("MODKIT_SENSOR_FILE", str(sensor_file))
    monkeypatch.setenv("MODKIT_ACCESS_PIN", "6245")
    monkeypatch.setenv("MODKIT_POLL_INTERVAL", "0.02")
    monkeypatch.setenv("MODKIT_VIDEO_SECONDS", "1")
    monkeypatch.setenv("MODKIT_HARDWARE", "false")
    _get_settings_cached.cache_clear()

    with TestClient(app) as client:
        yield client

    _get_settings_cached.cache_clear()


@pytest.fixture
async def client(store: SqlEventStore, devices: DeviceSet) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to a fresh registry and the test store.

    The app lifespan does NOT run under ``ASGITransport``, so the state
    fields it would set are pre-set here and cleared afterwards.
    """
    app.state.registry = BroadcastRegistry()
    app.state.store = store
    app.state.handler = MessageHandler(store, devices, 6245)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.state.registry = None
    app.state.store = None
    app.state.handler = None
