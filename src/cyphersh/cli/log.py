"""Logging setup for the shell.

All modules log through loguru's ``logger``.  The CLI installs a single
sink on the shell's error stream whose level follows the number of
``-v`` flags, and forwards the neo4j driver's standard-library log
records into the same sink.
"""

from __future__ import annotations

import logging
from typing import TextIO

from loguru import logger

LEVELS: tuple[str, ...] = ("WARNING", "INFO", "DEBUG", "TRACE")

PLAIN_FORMAT: str = "{message}"
DETAILED_FORMAT: str = (
    "<green>{time:HH:mm:ss.SSS}</green> <level>{level: <7}</level> "
    "<cyan>{name}</cyan>: {message}"
)

DRIVER_LOGGER_NAME: str = "neo4j"


def level_for(verbosity: int) -> str:
    """Map a ``-v`` count to a loguru level name."""
    return LEVELS[max(0, min(verbosity, len(LEVELS) - 1))]


class InterceptHandler(logging.Handler):
    """Route standard-library log records into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def configure_logging(verbosity: int, sink: TextIO, *, colorize: bool) -> int:
    """Replace loguru's handlers with one on *sink*; return its handler id.

    Below DEBUG the messages carry no prefix, matching plain shell
    diagnostics; from DEBUG on they show time, level and module.
    """
    level = level_for(verbosity)
    logger.remove()
    handler_id = logger.add(
        sink,
        level=level,
        format=DETAILED_FORMAT if verbosity >= 2 else PLAIN_FORMAT,
        colorize=colorize,
        backtrace=False,
        diagnose=False,
    )

    driver_logger = logging.getLogger(DRIVER_LOGGER_NAME)
    driver_logger.handlers = [InterceptHandler()]
    driver_logger.setLevel(logging.DEBUG if verbosity >= 2 else logging.WARNING)
    driver_logger.propagate = False
    return handler_id


def shutdown_logging(handler_id: int) -> None:
    """Remove the shell sink and detach the driver log forwarding."""
    try:
        logger.remove(handler_id)
    except ValueError:
        logger.debug("Log handler {} already removed", handler_id)
    driver_logger = logging.getLogger(DRIVER_LOGGER_NAME)
    driver_logger.handlers = [
        handler for handler in driver_logger.handlers if not isinstance(handler, InterceptHandler)
    ]
