"""Logging configuration for the command line entry point."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from refiler.config.models import LoggingSettings

_PACKAGE_LOGGER = "refiler"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(
    settings: LoggingSettings,
    *,
    verbose: bool = False,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Install Rich console logging and optional rotating file logging.

    Handlers installed by a previous call are replaced, so the function can be
    called once per CLI invocation.

    Args:
        settings: Logging section of the resolved configuration.
        verbose: Force ``DEBUG`` regardless of the configured level.
        console: Console used by the Rich handler; stderr by default.

    Returns:
        logging.Logger: The package logger.
    """
    logger = logging.getLogger(_PACKAGE_LOGGER)
    level = logging.DEBUG if verbose else logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
    )
    rich_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(rich_handler)

    if settings.file:
        log_path = Path(settings.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=max(1, settings.max_size_mb) * 1024 * 1024,
            backupCount=max(0, settings.backup_count),
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging"]
