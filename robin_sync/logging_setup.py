"""
History log for robin-sync.

Everything goes to one named logger, ``robin_sync.history``, which writes to a
size-rotated file and optionally to stderr. Records carry a short ``tag``
(``SYNC``, ``AUTH``, ``STORE``...) so a single log can be filtered by area.
"""

from __future__ import annotations

import inspect
import logging
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from types import FrameType
from typing import List, Optional

from robin_sync.config import get_env, settings

LOGGER_NAME = "robin_sync.history"
DEFAULT_MAX_BYTES = 5 * 1024 * 1024  # 5 MB per log file
DEFAULT_BACKUP_COUNT = 7
DEFAULT_TAG = "GEN"
LOG_LEVEL_ENV_VAR = "ROBIN_LOG_LEVEL"
LOG_TO_CONSOLE_ENV_VAR = "ROBIN_LOG_TO_CONSOLE"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(tag)s] %(message)s"

# Keyword in the module path -> tag; first match wins.
TAG_MAP = {
    "scheduler": "SYNC",
    "pipeline": "SYNC",
    "credentials": "AUTH",
    "token_exchange": "AUTH",
    "document_store": "STORE",
    "robinhood_client": "API",
    "upload_client": "API",
    "cli": "CLI",
}

_logger: Optional[logging.Logger] = None


class TaggedLogger(logging.LoggerAdapter):
    """Adapter that stamps every record with the adapter's tag unless one is passed."""

    def process(self, msg, kwargs):
        extra = kwargs.setdefault("extra", {})
        extra.setdefault("tag", self.extra.get("tag", DEFAULT_TAG))
        return msg, kwargs


class UtcFormatter(logging.Formatter):
    converter = time.gmtime

    def __init__(self) -> None:
        super().__init__(LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%SZ")


def get_tag_for_module(module_name: str) -> str:
    lowered = module_name.lower()
    return next((tag for key, tag in TAG_MAP.items() if key in lowered), DEFAULT_TAG)


def tag_for_frame(frame: Optional[FrameType]) -> str:
    """Tag for the module that owns ``frame``."""
    module_name = frame.f_globals.get("__name__", "unknown") if frame is not None else "unknown"
    return get_tag_for_module(module_name)


def _level_from(level: Optional[str]) -> int:
    name = str(level or get_env(LOG_LEVEL_ENV_VAR, default=settings.ROBIN_LOG_LEVEL)).upper()
    numeric = logging.getLevelName(name)
    if not isinstance(numeric, int):
        print(f"robin-sync logger: unknown log level '{name}', defaulting to INFO.", file=sys.stderr)
        return logging.INFO
    return numeric


def _rotating_file_handler(path: Path, max_bytes: int, backup_count: int) -> Optional[logging.Handler]:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    except OSError as exc:
        print(f"robin-sync logger: unable to access log file {path}: {exc}", file=sys.stderr)
        return None


def _console_handler() -> Optional[logging.Handler]:
    if not bool(get_env(LOG_TO_CONSOLE_ENV_VAR, default=settings.ROBIN_LOG_TO_CONSOLE)):
        return None
    return logging.StreamHandler()


def _detach_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def configure_logging(
    *,
    log_path: Optional[Path] = None,
    level: Optional[str] = None,
    max_bytes: Optional[int] = None,
    backup_count: Optional[int] = None,
    force: bool = False,
) -> logging.Logger:
    """Attach the rotating file handler (and console handler) to the history logger.

    Calling again without ``force`` or ``log_path`` only adjusts the level, so
    modules can call this freely without duplicating handlers.
    """
    global _logger
    logger = logging.getLogger(LOGGER_NAME)

    if _logger is not None and not force and log_path is None:
        if level is not None:
            logger.setLevel(_level_from(level))
        return logger

    _detach_handlers(logger)
    logger.setLevel(_level_from(level))
    logger.propagate = False

    handlers: List[Optional[logging.Handler]] = [
        _rotating_file_handler(
            Path(log_path) if log_path is not None else settings.log_path,
            max_bytes or DEFAULT_MAX_BYTES,
            backup_count or DEFAULT_BACKUP_COUNT,
        ),
        _console_handler(),
    ]
    formatter = UtcFormatter()
    for handler in filter(None, handlers):
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    _logger = logger
    return logger


def get_logger(tag: str | None = None) -> TaggedLogger:
    """Tagged adapter over the history logger; the tag defaults to the caller's module."""
    if tag is None:
        tag = tag_for_frame(inspect.currentframe().f_back)
    return TaggedLogger(_logger or configure_logging(), {"tag": tag})


def reset_logging() -> None:
    """Drop all handlers so the next call reconfigures from scratch."""
    global _logger
    _detach_handlers(logging.getLogger(LOGGER_NAME))
    _logger = None
