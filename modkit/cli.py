import click


@click.group()
def main() -> None:
    """Modkit - smart mailbox hub."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: from MODKIT_HOST or 127.0.0.1).")
@click.option("--port", default=None, type=int, help="Bind port (default: from MODKIT_PORT or 3012).")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development.")
def hub(host: str | None, port: int | None, reload: bool) -> None:
    """Start the mailbox hub server."""
    import uvicorn

    from modkit.hub.settings import ModkitSettings

    settings = ModkitSettings()

    uvicorn.run(
        "modkit.hub.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
        # The watchdog may be in the middle of a clip when shutdown starts.
        timeout_graceful_shutdown=int(settings.poll_interval + settings.video_seconds) + 10,
    )


# ---------------------------------------------------------------------------
# Simulated door
# ---------------------------------------------------------------------------


@main.group()
def door() -> None:
    """Drive the simulated contact sensor (MODKIT_SENSOR_FILE)."""


@door.command("open")
def door_open() -> None:
    """Mark the simulated door as open."""
    _write_door(is_open=True)


@door.command("close")
def door_close() -> None:
    """Mark the simulated door as closed."""
    _write_door(is_open=False)


def _write_door(*, is_open: bool) -> None:
    from modkit.hub.devices import write_door_state
    from modkit.hub.settings import ModkitSettings

    path = ModkitSettings().sensor_file
    try:
        write_door_state(path, is_open=is_open)
    except OSError as e:
        raise click.ClickException(f"Cannot write {path}: {e}") from e
    click.echo(f"Door {'opened' if is_open else 'closed'} ({path}).")


# ---------------------------------------------------------------------------
# Database management
# ---------------------------------------------------------------------------


def _alembic(action: str, *args: str, **kwargs: object) -> None:
    """Run an ``alembic.command`` against the packaged migrations."""
    from alembic import command

    from modkit.hub.db.migrations import alembic_config

    getattr(command, action)(alembic_config(), *args, **kwargs)


@main.group()
def db() -> None:
    """Manage the event log database (MODKIT_DATABASE_URL)."""


@db.command()
@click.option("--revision", default="head", show_default=True, help="Target revision.")
def upgrade(revision: str) -> None:
    """Apply migrations up to REVISION."""
    _alembic("upgrade", revision)
    click.echo(f"Event log schema at {revision}.")


@db.command()
@click.option("--revision", default="-1", show_default=True, help="Target revision (-1 is one step back).")
def downgrade(revision: str) -> None:
    """Revert migrations down to REVISION."""
    _alembic("downgrade", revision)
    click.echo(f"Event log schema at {revision}.")


@db.command()
def current() -> None:
    """Print the applied revision."""
    _alembic("current", verbose=True)


@db.command()
def history() -> None:
    """List every migration."""
    _alembic("history", verbose=True)


@db.command()
@click.confirmation_option(prompt="Delete every recorded event?")
def reset() -> None:
    """Delete every event from the log."""
    import asyncio

    from modkit.hub.db.engine import create_engine, create_session_factory
    from modkit.hub.settings import ModkitSettings
    from modkit.hub.store.sql import SqlEventStore

    async def _reset() -> None:
        engine = create_engine(ModkitSettings().database_url)
        try:
            await SqlEventStore(create_session_factory(engine)).reset()
        finally:
            await engine.dispose()

    asyncio.run(_reset())
    click.echo("Event log cleared.")


if __name__ == "__main__":
    main()
