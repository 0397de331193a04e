import pytest
from pydantic import ValidationError

from screentutor.app.config.settings import Settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("PROVIDER_TIMEOUT_SECONDS", raising=False)
    s = Settings(_env_file=None)
    assert s.provider_timeout_seconds == 30.0
    assert s.default_max_tokens == 2048
    assert s.health_timeout_seconds == 10.0
    assert s.local_check_timeout_seconds == 5.0
    assert s.health_degraded_threshold_seconds == 5.0


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("PROVIDER_TIMEOUT_SECONDS", "12.5")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    s = Settings(_env_file=None)
    assert s.provider_timeout_seconds == 12.5
    assert s.log_level == "DEBUG"


def test_invalid_log_level():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, log_level="chatty")


def test_timeout_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, provider_timeout_seconds=0)


def test_cors_origins_list():
    s = Settings(_env_file=None, cors_origins="http://a.test, http://b.test,,")
    assert s.cors_origins_list == ["http://a.test", "http://b.test"]
    assert Settings(_env_file=None, cors_origins="").cors_origins_list == []
