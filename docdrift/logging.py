"""
Logging for DocDrift

Every module logs through a child of the `docdrift` logger, so one call to
configure_logging controls the whole pipeline.

Key Components:
    - get_logger: Child logger for a subsystem ("snapshot", "drift", ...)
    - configure_logging: Console (rich) and optional file handlers

Design Decisions:
    - Console records go to stderr so `detect --json` keeps stdout clean
    - Per-file degradations log at WARNING, milestones at INFO, cache hits
      and fallbacks at DEBUG (shown with --verbose)
"""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "docdrift"
FILE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def get_logger(subsystem: Optional[str] = None) -> logging.Logger:
    """Return the `docdrift` logger, or its child for one subsystem."""
    if not subsystem:
        return logging.getLogger(ROOT_LOGGER)
    return logging.getLogger(f"{ROOT_LOGGER}.{subsystem}")


def configure_logging(
    verbose: bool = False,
    log_file: Optional[Path] = None,
    console: Optional[Console] = None,
) -> logging.Logger:
    """
    Attach DocDrift's handlers, replacing any installed by an earlier call.

    Args:
        verbose: Log DEBUG records instead of INFO and up
        log_file: Also append plain-text records to this file
        console: Console for rich output; defaults to one on stderr

    Returns:
        The configured `docdrift` logger
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = get_logger()
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(_console_handler(console or Console(stderr=True), level, verbose))
    if log_file is not None:
        logger.addHandler(_file_handler(log_file, level))
    return logger


def _console_handler(console: Console, level: int, verbose: bool) -> RichHandler:
    handler = RichHandler(console=console, show_time=False, show_path=verbose, markup=False)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def _file_handler(path: Path, level: int) -> logging.FileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


__all__ = ["configure_logging", "get_logger"]
