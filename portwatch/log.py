"""Logging setup shared by the CLI entry points."""

from __future__ import annotations

import logging
import sys
from pathlib import Path


def setup_logger(
    name: str = "portwatch",
    level: int | str = logging.WARNING,
    log_file: Path | None = None,
    console: bool = True,
) -> logging.Logger:
    """Configure and return the package logger.

    Args:
        name: Logger name. Module loggers under this prefix inherit the handlers.
        level: Console log level.
        log_file: Optional file that also receives DEBUG records.
        console: Attach a stderr handler. Watch mode turns this off because
                 stderr writes would tear the curses screen.

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG if log_file else level)

    # Remove existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(fmt="[%(levelname)s] %(message)s"))
        logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    logger.propagate = False
    return logger
