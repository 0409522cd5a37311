"""
utils/logger.py
---------------
Centralized logging configuration.
All modules should use `get_logger(__name__)` to obtain a logger instance.
"""

import logging
import os
import sys
from typing import Optional

from config import LOG_FILE, LOG_LEVEL

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_initialized = False
_file_handler: Optional[logging.FileHandler] = None


def _init_logging() -> None:
    """Configure the root logger once."""
    global _initialized
    if _initialized:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, _DATE_FORMAT))
    root = logging.getLogger()
    root.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    root.addHandler(handler)
    _initialized = True
    if LOG_FILE:
        _set_file(LOG_FILE)


def _set_file(file_path: str) -> None:
    global _file_handler
    root = logging.getLogger()
    if _file_handler is not None:
        root.removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None
    if not file_path:
        return
    directory = os.path.dirname(file_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    _file_handler = logging.FileHandler(file_path, encoding="utf-8")
    _file_handler.setFormatter(logging.Formatter(_LOG_FORMAT, _DATE_FORMAT))
    root.addHandler(_file_handler)


def configure_logging(
    enabled: bool = True,
    file_path: Optional[str] = None,
    level: Optional[str] = None,
) -> None:
    """
    Apply the ``logging`` section of a database configuration.

    Args:
        enabled: When False, all log output is switched off.
        file_path: Also append records to this file (directories are created).
        level: Root level name such as 'DEBUG'; unchanged when None.
    """
    _init_logging()
    root = logging.getLogger()
    if level:
        root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if file_path:
        _set_file(file_path)
    logging.disable(logging.NOTSET if enabled else logging.CRITICAL)


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger instance.

    Args:
        name: Usually ``__name__`` of the calling module.

    Returns:
        A configured logging.Logger.
    """
    _init_logging()
    return logging.getLogger(name)
