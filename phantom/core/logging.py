"""Logging setup for Phantom Catalog.

Every module logs to a child of the ``phantom`` logger. Console output goes
to stderr so that command-line JSON on stdout stays machine readable.
``PHANTOM_LOG_LEVEL`` overrides the level picked by the caller.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

__all__ = ["LOG_FORMAT", "logger", "resolve_level", "setup_logging"]

logger = logging.getLogger("phantom")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%H:%M:%S"
_CONSOLE = "phantom.console"
_FILE = "phantom.file"


def resolve_level(level: int | str) -> int:
    """Turn a level name ("debug", "WARNING") or number into a logging level.

    Unknown names fall back to INFO.
    """
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.INFO


def _named_handler(name: str) -> logging.Handler | None:
    return next((h for h in logger.handlers if h.get_name() == name), None)


def setup_logging(level: int | str = logging.INFO, log_file: Path | None = None) -> None:
    """Configure the ``phantom`` logger.

    Safe to call repeatedly: the console handler is created once and later
    calls only adjust its level; a file handler is added for a new path.

    Args:
        level: Console level, as a number or a name.
        log_file: Optional file that receives everything down to DEBUG.
    """
    env_level = os.getenv("PHANTOM_LOG_LEVEL")
    effective = resolve_level(env_level) if env_level else resolve_level(level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=_DATE_FORMAT)

    console = _named_handler(_CONSOLE)
    if console is None:
        console = logging.StreamHandler(sys.stderr)
        console.set_name(_CONSOLE)
        console.setFormatter(formatter)
        logger.addHandler(console)
    console.setLevel(effective)

    file_handler = _named_handler(_FILE)
    if log_file is not None and (
        file_handler is None or Path(getattr(file_handler, "baseFilename", "")).resolve() != log_file.resolve()
    ):
        if file_handler is not None:
            logger.removeHandler(file_handler)
            file_handler.close()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.set_name(_FILE)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.setLevel(logging.DEBUG if file_handler is not None else effective)
