# mdrich/logging/logger.py
"""
Unified logging setup for mdrich.

All modules use:
    from mdrich.logging.logger import get_logger
    logger = get_logger(__name__)

Configuration happens once, in the CLI entrypoint, via configure_logging().
Log lines go to stdout and, optionally, to an append-mode log file.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, TextIO, Union

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
DEFAULT_DATEFMT = "%Y/%m/%d %H:%M:%S"

# Marks handlers installed here so repeated calls replace rather than stack them
_HANDLER_ATTR = "_mdrich_handler"


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def configure_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    fmt: str = DEFAULT_FORMAT,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Configure the root logger.

    Safe to call multiple times - handlers installed by a previous call are
    removed first, so output is never duplicated.

    Args:
        level: Logging level (name or number)
        log_file: Optional path of a log file opened in append mode
        fmt: Log record format
        stream: Console stream (default: sys.stdout)

    Returns:
        The root logger
    """
    root = logging.getLogger()

    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_ATTR, False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(fmt, datefmt=DEFAULT_DATEFMT)

    console = logging.StreamHandler(stream or sys.stdout)
    console.setFormatter(formatter)
    setattr(console, _HANDLER_ATTR, True)
    root.addHandler(console)

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_ATTR, True)
        root.addHandler(file_handler)

    root.setLevel(_resolve_level(level))
    return root


def get_logger(name: str) -> logging.Logger:
    """
    Modules call this to get a logger.

    Do NOT configure logging here - configuration happens in configure_logging().
    """
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]
