"""Provides the centralized logging configuration for the package.

Library modules only ever create loggers via 'get_logger()'; nothing is configured on import. Applications (or tests)
that want to see the output call 'setup_logging()' once at startup: all 'pixel_wfc.*' loggers then write WARNING and
above to the console and, if a log directory is given, everything down to the file log level into a rotating log file.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys

from pixel_wfc.constants import LOG_FILE_BACKUP_COUNT, LOG_FILE_MAX_BYTES, LOG_FILE_NAME, LOGGER_NAME


def setup_logging(
    log_dir: Path | str | None = None,
    log_level: int = logging.DEBUG,
    console_level: int = logging.WARNING,
) -> Path | None:
    """Configures the package root logger.

    Clears any handlers attached by an earlier call, so the function can safely be called again to reconfigure.

    Args:
        log_dir: Directory to write the rotating log file to. No file handler is attached if None.
        log_level: Level for the file handler.
        console_level: Level for the console (stderr) handler.

    Returns:
        The path of the log file, or None if only console logging was configured.
    """
    root_logger = logging.getLogger(LOGGER_NAME)
    root_logger.setLevel(min(log_level, console_level))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(fmt="%(levelname)-8s | %(name)-28s | %(message)s"))
    root_logger.addHandler(console_handler)

    if log_dir is None:
        return None

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = log_path / LOG_FILE_NAME

    file_handler = RotatingFileHandler(
        log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUP_COUNT, encoding="utf-8"
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d | %(levelname)-8s | %(name)-28s | %(funcName)-22s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(file_handler)

    root_logger.info("Logging to %s", log_file.absolute())
    return log_file


def get_logger(name: str) -> logging.Logger:
    """Returns a logger nested under the package root logger.

    Args:
        name: Module name (typically __name__).
    """
    if name == LOGGER_NAME or name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
