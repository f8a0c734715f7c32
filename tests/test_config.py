from __future__ import annotations

from pathlib import Path

import pytest

from config import Config

_KEYS = (
    "GEMINI_API_KEY", "GOOGLE_API_KEY", "VALIDATOR_MODEL", "VALIDATOR_FALLBACK_MODEL",
    "CONFIDENCE_THRESHOLD", "REVALIDATE_SECONDS", "FEED_MAX_ITEMS", "USER_AGENT",
    "VERIFY_SSL", "HOST", "PORT", "LOG_DIR", "LOG_LEVEL", "LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults_without_environment() -> None:
    config = Config.load()

    assert config.validator_enabled is False
    assert config.validator_model == "google-gla:gemini-2.5-pro"
    assert config.validator_fallback_model == "google-gla:gemini-2.5-flash"
    assert config.confidence_threshold == 0.7
    assert config.revalidate_seconds == 1800
    assert config.feed_max_items == 6
    assert config.user_agent == "DCAM-NoticeBoard/1.1"
    assert config.log_dir == Path("log")
    assert config.validate() is None


def test_google_api_key_is_accepted_as_alias(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GOOGLE_API_KEY", "alias-key")

    config = Config.load()

    assert config.gemini_api_key == "alias-key"
    assert config.validator_enabled is True


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "primary-key")
    monkeypatch.setenv("GOOGLE_API_KEY", "alias-key")
    monkeypatch.setenv("FEED_MAX_ITEMS", "3")
    monkeypatch.setenv("VERIFY_SSL", "false")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = Config.load()

    assert config.gemini_api_key == "primary-key"
    assert config.feed_max_items == 3
    assert config.verify_ssl is False
    assert config.log_level == "DEBUG"


def test_malformed_integer_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REVALIDATE_SECONDS", "half an hour")

    with pytest.raises(ValueError, match="REVALIDATE_SECONDS"):
        Config.load()


def test_validate_rejects_out_of_range_values() -> None:
    assert "CONFIDENCE_THRESHOLD" in Config(confidence_threshold=1.5).validate()
    assert "REVALIDATE_SECONDS" in Config(revalidate_seconds=0).validate()
    assert "LOG_FORMAT" in Config(log_format="xml").validate()
