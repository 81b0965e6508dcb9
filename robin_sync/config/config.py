"""
Centralised config for the sync daemon.

Settings are loaded from environment variables (and an optional ``.env``
file) and exposed through the singleton ``settings`` object. Every field has
a default so the package can be imported without any environment present;
commands that need a value check for it at startup.
"""

import os
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_FILE = Path(__file__).resolve()

# Public client id used by the Robinhood web app for the refresh grant.
DEFAULT_CLIENT_ID = "c82SH0WZOsabOXGP2sxqcj34FxkvfnWRZBKlBjFS"


def _discover_project_root(config_file: Path) -> tuple[Path, Path]:
    """Return a project root and env file path without assuming ``.env`` exists.

    Walks the parents looking for a ``.env`` file and falls back to the
    repository root (detected via common project markers) when it is missing.
    """

    parents = list(config_file.parents)

    for parent in parents:
        env_file = parent / ".env"
        if env_file.exists():
            return parent, env_file

    for marker in ("pyproject.toml", ".git"):
        for parent in parents:
            if (parent / marker).exists():
                return parent, parent / ".env"

    fallback_root = parents[1] if len(parents) > 1 else parents[0]
    return fallback_root, fallback_root / ".env"


PROJECT_ROOT, ENV_FILE_PATH = _discover_project_root(CONFIG_FILE)


T = TypeVar("T")


class Settings(BaseSettings):
    """
    Centralised and validated application settings.
    """
    model_config = SettingsConfigDict(
        env_file=ENV_FILE_PATH, env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # --- ROBINHOOD API ---
    ROBINHOOD_API_BASE_URL: str = "https://api.robinhood.com"
    ROBINHOOD_CLIENT_ID: str = DEFAULT_CLIENT_ID
    ROBINHOOD_DEVICE_TOKEN: Optional[str] = None

    # --- CREDENTIAL OVERRIDES (fallback chain) ---
    ROBINHOOD_ACCESS_TOKEN: Optional[SecretStr] = None
    ROBINHOOD_REFRESH_TOKEN: Optional[SecretStr] = None

    # --- UPLOAD ---
    UPLOAD_ENDPOINT: Optional[str] = None

    # --- SCHEDULING & I/O ---
    SYNC_INTERVAL_SECONDS: int = 600
    REQUEST_TIMEOUT_SECONDS: float = 30.0
    TOKEN_STORE_DIR: Path = Path(".")

    # --- LOGGING ---
    ROBIN_LOG_LEVEL: str = "INFO"
    ROBIN_LOG_TO_CONSOLE: bool = True
    ROBIN_LOG_DIR: Optional[Path] = None

    @property
    def token_exchange_url(self) -> str:
        return f"{self.ROBINHOOD_API_BASE_URL.rstrip('/')}/oauth2/token/"

    @property
    def log_path(self) -> Path:
        """
        Path for the main history log file.

        Uses ``ROBIN_LOG_DIR`` when it is writable and otherwise falls back to
        a directory in the user's home. Never raises.
        """
        try:
            if self.ROBIN_LOG_DIR is not None:
                log_dir = Path(self.ROBIN_LOG_DIR)
                log_dir.mkdir(parents=True, exist_ok=True)
                if os.access(log_dir, os.W_OK):
                    return log_dir / "robin_sync.log"
                raise PermissionError(f"No write access to {log_dir}")
            raise FileNotFoundError("ROBIN_LOG_DIR not set")
        except Exception:
            fallback_dir = Path.home() / "robin_sync_logs"
            fallback_dir.mkdir(parents=True, exist_ok=True)
            return fallback_dir / "robin_sync.log"


# Create a single, importable instance of the settings for the entire application.
settings = Settings()


def _coerce_secret(value: Any) -> Any:
    if isinstance(value, SecretStr):
        return value.get_secret_value()
    return value


def _to_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _coerce_type(raw: str, template: Any) -> Any:
    if isinstance(template, bool):
        return _to_bool(raw)
    if isinstance(template, int) and not isinstance(template, bool):
        return int(raw)
    if isinstance(template, float):
        return float(raw)
    if isinstance(template, Path):
        return Path(raw)
    return raw


def get_env(
    name: str,
    default: T | None = None,
    *,
    parser: Callable[[str], T] | None = None,
) -> T | Any | None:
    """Return a configuration value resolving environment overrides consistently.

    The resolution order is:

    1. Explicit environment variable overrides at runtime.
    2. Typed values provided by the Pydantic ``settings`` object.
    3. The supplied ``default`` value.

    Secret values are unwrapped. Empty strings count as absent so that an
    exported-but-blank override does not shadow a real value.
    """

    raw_value = os.environ.get(name)
    if raw_value is not None and raw_value != "":
        if parser is not None:
            return parser(raw_value)
        if hasattr(settings, name):
            template = _coerce_secret(getattr(settings, name))
            try:
                return _coerce_type(raw_value, template)
            except (TypeError, ValueError):
                return template
        return raw_value

    if hasattr(settings, name):
        value = _coerce_secret(getattr(settings, name))
        if value is not None and value != "":
            return value

    return default
