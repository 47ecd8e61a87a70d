"""Tests for environment-driven settings."""

from pathlib import Path

import pytest

from shared.config import ActionSettings, get_settings, reset_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    reset_settings()
    yield
    reset_settings()


def test_defaults(monkeypatch):
    monkeypatch.delenv("BARLEY_LOG_LEVEL", raising=False)
    settings = ActionSettings(_env_file=None)

    assert settings.log_level == "INFO"
    assert settings.apt_get_path == "apt-get"
    assert settings.apt_sources_dir == Path("/etc/apt")
    assert settings.temp_dir is None


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("BARLEY_HTTP_TIMEOUT_SECONDS", "5")
    monkeypatch.setenv("BARLEY_TEMP_DIR", str(tmp_path))
    monkeypatch.setenv("BARLEY_HTTP_FOLLOW_REDIRECTS", "false")

    settings = ActionSettings(_env_file=None)

    assert settings.http_timeout_seconds == 5.0
    assert settings.temp_dir == tmp_path
    assert settings.http_follow_redirects is False


def test_get_settings_is_cached_until_reset(monkeypatch):
    monkeypatch.setenv("BARLEY_LOG_LEVEL", "DEBUG")
    first = get_settings()
    assert first.log_level == "DEBUG"
    assert get_settings() is first

    monkeypatch.setenv("BARLEY_LOG_LEVEL", "WARNING")
    reset_settings()
    assert get_settings().log_level == "WARNING"
