"""Startup checks run before the daemon starts its first cycle."""

from __future__ import annotations

from typing import Iterable

from robin_sync.application.exceptions import ConfigurationError
from robin_sync.config import get_env
from robin_sync.infrastructure.log_utils import log_message

SECRET_SETTINGS = frozenset({"ROBINHOOD_ACCESS_TOKEN", "ROBINHOOD_REFRESH_TOKEN"})


def _display_value(name: str, value: object) -> str:
    text = str(value)
    if name in SECRET_SETTINGS:
        return f"{text[:4]}... (masked)" if len(text) > 4 else "*** (masked)"
    return text


def check_required_settings(names: Iterable[str]) -> None:
    """Fail fast on the first missing setting and log the ones that are present."""

    for name in names:
        value = get_env(name)
        if value is None or value == "":
            raise ConfigurationError(f"Must set {name} environment variable", missing=name)
        log_message(f"{name} {_display_value(name, value)}", "INFO")


__all__ = ["check_required_settings", "SECRET_SETTINGS"]
