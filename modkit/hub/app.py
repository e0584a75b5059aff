from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from anyio import to_thread
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRouter
from loguru import logger

from modkit.hub.db.engine import create_engine, create_session_factory
from modkit.hub.db.migrations import upgrade_database
from modkit.hub.devices import (
    Camera,
    Device,
    DeviceSet,
    GpioContactSensor,
    GpioLight,
    PiCamera,
    SimulatedCamera,
    SimulatedContactSensor,
    SimulatedLight,
    write_door_state,
)
from modkit.hub.log import setup_logging
from modkit.hub.models.api import HealthResponse
from modkit.hub.protocol import MessageHandler
from modkit.hub.registry import BroadcastRegistry
from modkit.hub.settings import ModkitSettings, get_settings
from modkit.hub.store.sql import SqlEventStore
from modkit.hub.watchdog import Watchdog


def _create_devices(settings: ModkitSettings) -> tuple[DeviceSet, Device, Camera]:
    """Build the device set: real GPIO / Pi camera drivers, or simulators."""
    if settings.hardware:
        sensor = GpioContactSensor(settings.contact_sensor_pin)
        light = GpioLight(settings.light_pin)
        camera = PiCamera(settings.img_dir, light)
    else:
        if not settings.sensor_file.exists():
            write_door_state(settings.sensor_file, is_open=False)
        sensor = SimulatedContactSensor(settings.sensor_file)
        light = SimulatedLight()
        camera = SimulatedCamera(settings.img_dir, light)
    return DeviceSet([sensor, light, camera]), sensor, camera


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)

    access_pin = settings.resolve_access_pin()
    if settings.access_pin is None:
        logger.warning("No MODKIT_ACCESS_PIN set -- generated pin: {}", access_pin)

    logger.info("Mailbox hub starting (host={}, port={})", settings.host, settings.port)
    logger.info("Images: {} (hardware={})", settings.img_dir, settings.hardware)

    # -- Event store -----------------------------------------------------------
    if settings.auto_migrate:
        await to_thread.run_sync(lambda: upgrade_database(settings.database_url, configure_logging=False))
        logger.info("Event store: migrations applied")

    engine = create_engine(settings.database_url)
    store = SqlEventStore(create_session_factory(engine))
    logger.info("Event store: {}", engine.url.render_as_string(hide_password=True))

    # -- Devices / registry / watchdog -----------------------------------------
    registry = BroadcastRegistry()
    devices, sensor, camera = _create_devices(settings)
    watchdog = Watchdog(
        sensor,
        camera,
        registry,
        store,
        interval=settings.poll_interval,
        video_seconds=settings.video_seconds,
    )

    _app.state.settings = settings
    _app.state.registry = registry
    _app.state.store = store
    _app.state.handler = MessageHandler(store, devices, access_pin)
    _app.state.watchdog = watchdog

    watchdog.start()

    yield

    # -- Shutdown --------------------------------------------------------------
    logger.info("Mailbox hub shutting down (clients={})", registry.active_count)

    # 1. No new events.
    await watchdog.stop()

    # 2. Stop accepting new clients and end every forwarding task.
    registry.begin_shutdown()
    closed = await registry.close_all()
    logger.info("Closed {} outbound channels", closed)

    # 3. Release pins and pooled connections.
    devices.close()
    await engine.dispose()
    logger.info("Event store: disposed")


app = FastAPI(title="Modkit Mailbox Hub", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# API router -- HTTP endpoints live under /api, the websocket under /ws
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")


@api.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    registry: BroadcastRegistry | None = getattr(request.app.state, "registry", None)
    return HealthResponse(clients=registry.active_count if registry is not None else 0)


from modkit.hub.routers.clients import router as clients_router  # noqa: E402
from modkit.hub.routers.clients import ws_router  # noqa: E402

api.include_router(clients_router)

app.include_router(api)
app.include_router(ws_router)
