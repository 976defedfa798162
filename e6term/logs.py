"""Log-file setup.

The terminal belongs to the UI, so records only ever go to a file.
"""

from __future__ import annotations

import logging
from pathlib import Path

LOGGER_NAME = "e6term"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
SEPARATOR = "-" * 60


def setup_logging(path: str | Path, level: int = logging.INFO) -> logging.Handler:
    """Attach an appending file handler to the package logger and return it."""
    log_path = Path(path)
    if log_path.parent != Path("."):
        log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger = logging.getLogger(LOGGER_NAME)
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    handler.stream.write(SEPARATOR + "\n")
    handler.flush()
    return handler


__all__ = ["LOGGER_NAME", "LOG_FORMAT", "setup_logging"]
