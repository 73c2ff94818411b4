"""Loguru setup for the PRC client.

Library code logs through ``get_logger(__name__)`` or one of the bound
loggers below; nothing is printed until ``setup_logging`` installs sinks.
Records carrying a ``name`` extra come from this package; everything else
comes from intercepted third-party loggers (httpx, httpcore, redis).

Bound context:
- ``bind_subscription``: subscription id and the entity types it polls
- ``bind_request``: HTTP method and route of a failed API call
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from loguru import logger

from prc_client.config import Settings, get_settings

if TYPE_CHECKING:
    from loguru import Logger, Record

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Third-party loggers routed into loguru, and their level outside of debug runs
LIBRARY_LOGGERS: dict[str, int] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "redis": logging.WARNING,
}

_FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{extra[name]}:{function}:{line} | {extra} | {message}"
)


class InterceptHandler(logging.Handler):
    """Forwards stdlib records into loguru at the matching level."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so loguru reports the library call site
        frame = logging.currentframe()
        depth = 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _from_package(record: Record) -> bool:
    return "name" in record["extra"]


def _from_library(record: Record) -> bool:
    return "name" not in record["extra"]


def _console_format(source: str) -> str:
    return (
        "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | "
        f"<cyan>{source}</cyan> - <level>{{message}}</level>"
    )


def resolve_level(level: LogLevel, *, verbose: bool = False, quiet: bool = False) -> LogLevel:
    """Apply the CLI flags to the configured level (--verbose wins over --quiet)."""
    if verbose:
        return "DEBUG"
    if quiet:
        return "WARNING"
    return level


def setup_logging(
    settings: Settings | None = None,
    *,
    verbose: bool = False,
    quiet: bool = False,
) -> LogLevel:
    """Install stderr (and optional rotating file) sinks.

    Args:
        settings: Source of the base level and file options; defaults to get_settings()
        verbose: Force DEBUG
        quiet: Force WARNING

    Returns:
        The effective console level
    """
    settings = settings or get_settings()

    level = resolve_level(settings.log_level, verbose=verbose, quiet=quiet)

    logger.remove()
    for source, only in (("{extra[name]}", _from_package), ("{name}", _from_library)):
        logger.add(
            sys.stderr,
            level=level,
            format=_console_format(source),
            colorize=True,
            backtrace=True,
            diagnose=False,
            filter=only,
        )

    file_config = settings.logging
    if file_config.log_file:
        # The file keeps DEBUG detail whatever the console shows
        logger.add(
            Path(file_config.log_file),
            level="DEBUG",
            format=_FILE_FORMAT,
            rotation=file_config.rotation,
            retention=file_config.retention,
            compression="gz",
            serialize=file_config.serialize,
            filter=_from_package,
        )

    intercept_library_logging(level)
    return level


def intercept_library_logging(level: LogLevel) -> None:
    """Route the HTTP and redis library loggers through loguru."""
    debug = level in ("TRACE", "DEBUG")
    for name, quiet_level in LIBRARY_LOGGERS.items():
        library_logger = logging.getLogger(name)
        library_logger.handlers = [InterceptHandler()]
        library_logger.propagate = False
        library_logger.setLevel(logging.DEBUG if debug and name != "redis" else quiet_level)


def get_logger(name: str) -> Logger:
    """Logger for a package module: ``logger = get_logger(__name__)``."""
    return logger.bind(name=name)


def bind_subscription(subscription_id: str, entity_types: list[str] | None = None) -> Logger:
    """Logger carrying a subscription's id and its comma-joined entity types."""
    return logger.bind(
        name="subscription",
        subscription=subscription_id,
        entities=",".join(entity_types or []),
    )


def bind_request(method: str, route: str) -> Logger:
    """Logger carrying the method and route of an API call."""
    return logger.bind(name="request", method=method, route=route)


def reset_logging() -> None:
    """Drop all sinks and hand library loggers back to stdlib (for tests)."""
    logger.remove()
    for name in LIBRARY_LOGGERS:
        library_logger = logging.getLogger(name)
        library_logger.handlers = []
        library_logger.propagate = True
        library_logger.setLevel(logging.NOTSET)
