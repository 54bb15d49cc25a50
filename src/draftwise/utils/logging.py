"""Logging setup shared by the command line and embedding applications."""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = ["setup_logging", "get_log_path", "LOG_FORMAT"]

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_LOG_FILE_NAME = "draftwise.log"
_DEFAULT_LOG_DIR = Path.home() / ".draftwise" / "logs"
# Third-party loggers that are chatty at DEBUG.
_QUIET_LOGGERS: tuple[str, ...] = ("asyncio", "httpx", "httpcore", "openai")

_active_log_path: Path | None = None


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Route root logging to a rotating ``draftwise.log`` and, optionally, stderr.

    The first call wins; later calls return the existing log path unless
    ``force`` is set. ``DRAFTWISE_LOG_DIR`` is consulted when ``log_dir`` is
    not given.
    """

    global _active_log_path
    if _active_log_path is not None and not force:
        return _active_log_path

    directory = Path(log_dir or os.environ.get("DRAFTWISE_LOG_DIR") or _DEFAULT_LOG_DIR).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / _LOG_FILE_NAME

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=_DATE_FORMAT)
    handlers: list[logging.Handler] = [_file_handler(log_path, level, max_bytes, backup_count)]
    if console:
        # stdout carries command output
        handlers.append(logging.StreamHandler())
        handlers[-1].setLevel(max(level, logging.WARNING))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _active_log_path = log_path
    return log_path


def get_log_path() -> Path | None:
    """Return the file configured by :func:`setup_logging`, if any."""

    return _active_log_path


def _file_handler(path: Path, level: int, max_bytes: int, backup_count: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setLevel(level)
    return handler
