"""Helpers for writing the history log with rotation and tagging support."""

from __future__ import annotations

import inspect
import logging
from typing import Dict

from robin_sync.logging_setup import get_logger, tag_for_frame

_LEVEL_MAP: Dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def log_message(msg: str, level: str = "INFO", tag: str | None = None, **kwargs) -> None:
    """
    Log a message to the rotating history log with optional tagging.

    Accepts **kwargs for standard logging arguments such as exc_info=True.
    """
    if tag is None:
        caller = inspect.currentframe().f_back
        if caller is not None and caller.f_globals.get("__name__") == __name__:
            # called through one of the wrappers below
            caller = caller.f_back
        tag = tag_for_frame(caller)

    logger = get_logger(tag)

    level_name = str(level).upper()
    numeric_level = _LEVEL_MAP.get(level_name)
    if numeric_level is None:
        logger.warning(
            "Received unknown log level '%s'; defaulting to INFO. Message: %s",
            level,
            msg,
        )
        numeric_level = logging.INFO

    logger.log(numeric_level, msg, **kwargs)


def debug(msg: str, tag: str | None = None, **kwargs):
    log_message(msg, level="DEBUG", tag=tag, **kwargs)


def info(msg: str, tag: str | None = None, **kwargs):
    log_message(msg, level="INFO", tag=tag, **kwargs)


def warn(msg: str, tag: str | None = None, **kwargs):
    log_message(msg, level="WARNING", tag=tag, **kwargs)


def error(msg: str, tag: str | None = None, **kwargs):
    log_message(msg, level="ERROR", tag=tag, **kwargs)


def critical(msg: str, tag: str | None = None, **kwargs):
    log_message(msg, level="CRITICAL", tag=tag, **kwargs)
