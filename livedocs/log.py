"""Logging setup for livedocs commands."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

_LOGGER_NAME = "livedocs"
LOG_FILE_NAME = "livedocs.log"


def configure_logging(
    *,
    verbose: bool = False,
    console: Console | None = None,
    log_folder: Path | None = None,
) -> logging.Logger:
    """Attach a Rich console handler, and a file sink when ``log_folder`` is given."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when the CLI runs more than once.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    rich_handler = RichHandler(console=console, show_path=verbose, markup=False, rich_tracebacks=verbose)
    rich_handler.setLevel(level)
    rich_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(rich_handler)

    if log_folder is not None:
        log_folder.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_folder / LOG_FILE_NAME, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging"]
