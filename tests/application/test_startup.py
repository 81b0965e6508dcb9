import pytest

from robin_sync.application.exceptions import ConfigurationError
from robin_sync.application.startup import check_required_settings


def test_missing_setting_fails_fast():
    with pytest.raises(ConfigurationError, match="Must set UPLOAD_ENDPOINT environment variable") as excinfo:
        check_required_settings(["UPLOAD_ENDPOINT"])

    assert excinfo.value.missing == "UPLOAD_ENDPOINT"


def test_present_settings_are_logged_with_secrets_masked(monkeypatch, read_log):
    monkeypatch.setenv("UPLOAD_ENDPOINT", "https://upload.example.test/positions")
    monkeypatch.setenv("ROBINHOOD_REFRESH_TOKEN", "supersecretrefresh")

    check_required_settings(["UPLOAD_ENDPOINT", "ROBINHOOD_REFRESH_TOKEN"])

    log_text = read_log()
    assert "UPLOAD_ENDPOINT https://upload.example.test/positions" in log_text
    assert "ROBINHOOD_REFRESH_TOKEN supe... (masked)" in log_text
    assert "supersecretrefresh" not in log_text
