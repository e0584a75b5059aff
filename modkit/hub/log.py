"""Logging configuration using loguru.

Routes stdlib logging (uvicorn, sqlalchemy, alembic, gpiozero) into loguru so
the hub has one format.  On the box itself the hub usually runs unattended,
so an optional rotating file sink keeps a week of warnings and errors.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

_QUIET_LOGGERS = ("uvicorn.access", "aiosqlite", "sqlalchemy.engine", "PIL", "gpiozero")


class _InterceptHandler(logging.Handler):
    """Forward stdlib log records to loguru, keeping the original call site."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", log_file: Path | None = None) -> None:
    """Install the stderr sink (and the file sink if *log_file* is given).

    Call once at process startup, before uvicorn starts.
    """
    level = level.upper()

    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)
    if log_file is not None:
        logger.add(
            log_file,
            level="WARNING",
            format=LOG_FORMAT,
            rotation="00:00",
            retention="7 days",
            encoding="utf-8",
            enqueue=True,
        )

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info("Logging initialised (level={}, file={})", level, log_file)
