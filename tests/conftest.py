import logging

import pytest

from robin_sync import logging_setup
from robin_sync.domain.entities import TokenPair


@pytest.fixture(autouse=True)
def isolated_logging(tmp_path, monkeypatch):
    """Send the history log to a temp file and keep tests hermetic from the host environment."""
    for name in (
        "ROBINHOOD_ACCESS_TOKEN",
        "ROBINHOOD_REFRESH_TOKEN",
        "ROBINHOOD_DEVICE_TOKEN",
        "UPLOAD_ENDPOINT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ROBIN_LOG_TO_CONSOLE", "false")

    log_path = tmp_path / "logs" / "robin_sync.log"
    logging_setup.configure_logging(log_path=log_path, force=True)
    try:
        yield log_path
    finally:
        logging_setup.reset_logging()
        base_logger = logging.getLogger(logging_setup.LOGGER_NAME)
        for handler in list(base_logger.handlers):
            handler.close()
            base_logger.removeHandler(handler)


@pytest.fixture
def read_log(isolated_logging):
    def _read() -> str:
        base_logger = logging.getLogger(logging_setup.LOGGER_NAME)
        for handler in base_logger.handlers:
            handler.flush()
        if not isolated_logging.exists():
            return ""
        return isolated_logging.read_text(encoding="utf-8")

    return _read


class FakeExchange:
    """Maps refresh tokens to token pairs; anything unmapped fails the exchange."""

    def __init__(self, mapping=None, failures=None):
        self.mapping = dict(mapping or {})
        self.failures = dict(failures or {})
        self.calls = []

    def exchange(self, refresh_token):
        from robin_sync.application.exceptions import ExchangeError

        self.calls.append(refresh_token)
        if refresh_token in self.failures:
            raise self.failures[refresh_token]
        if refresh_token not in self.mapping:
            raise ExchangeError(f"unknown refresh token {refresh_token}", status_code=401)
        return self.mapping[refresh_token]


@pytest.fixture
def fake_exchange_factory():
    return FakeExchange


@pytest.fixture
def no_overrides():
    return lambda: TokenPair()
