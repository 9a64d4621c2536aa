# === FILE: media_scout/logger.py ===
"""Project-wide logging configuration for **MediaScout**.

Highlights
----------
* Unified format for console and optional run-log file (with rotation).
* A separate append-only diagnostics sink (``error.log``) that receives
  every non-fatal failure as a ``[timestamp] message`` line, see
  :func:`attach_error_log`.
* Module-level :data:`logger`, configured for console output on import::

      from media_scout.logger import logger
      logger.info("Scan of %d site(s) started", n)
"""
from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Union

_DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_ERROR_LOG_FORMAT: Final[str] = "[%(asctime)s] %(message)s"
_LOGGER_NAME: Final[str] = "MediaScout"

_LevelT = Union[int, str]


# -- handlers ---------------------------------------------------------------- #


def _stdout_handler(fmt: str) -> logging.StreamHandler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _file_handler(file: Path | str, fmt: str) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=str(file),
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(fmt))
    return handler


class _IsoFormatter(logging.Formatter):
    """Formatter with ISO-8601 UTC timestamps for the diagnostics sink."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ErrorLogHandler(logging.FileHandler):
    """Append-only diagnostics sink; marker class so it can be found and replaced."""


# -- configuration ----------------------------------------------------------- #


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = _DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """Set up the ``MediaScout`` logger: stdout always, plus a rotating run log when *log_file* is given.

    With *replace_handlers* every handler is dropped first, including the
    diagnostics sink, which :func:`start_scan` re-attaches per run.
    """
    lg = logging.getLogger(_LOGGER_NAME)
    lg.setLevel(level)

    if replace_handlers:
        for handler in list(lg.handlers):
            lg.removeHandler(handler)
            handler.close()

    lg.addHandler(_stdout_handler(log_format))

    if log_file is not None:
        lg.addHandler(_file_handler(log_file, log_format))

    lg.propagate = False
    return lg


def attach_error_log(path: str | Path) -> logging.Handler:
    """Route WARNING and above to the append-only diagnostics file at *path*.

    A previously attached diagnostics handler is closed and replaced, so a
    process only ever writes to one ``error.log`` at a time.
    """
    lg = logging.getLogger(_LOGGER_NAME)
    for handler in list(lg.handlers):
        if isinstance(handler, ErrorLogHandler):
            lg.removeHandler(handler)
            handler.close()

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    handler = ErrorLogHandler(str(target), mode="a", encoding="utf-8")
    handler.setLevel(logging.WARNING)
    handler.setFormatter(_IsoFormatter(_ERROR_LOG_FORMAT))
    lg.addHandler(handler)
    return handler


def init_logging(
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = _DEFAULT_FORMAT,
) -> logging.Logger:
    """Shortcut used by the CLI: replace handlers and configure in one call."""
    return configure(level=level, log_file=log_file, log_format=log_format, replace_handlers=True)


# --------------------------------------------------------------------------- #
# Ready‑to‑use instance                                                       #
# --------------------------------------------------------------------------- #

logger: logging.Logger = init_logging()

__all__ = ["logger", "configure", "init_logging", "attach_error_log", "ErrorLogHandler"]
