"""Tests for RemedialConfig."""

import pytest
from pydantic import ValidationError

from src.remedial.config import RemedialConfig, get_config, reset_config


def test_defaults(config) -> None:
    assert config.api_base_url == "http://localhost:3000"
    assert config.api_max_attempts == 3
    assert (config.default_start_time, config.default_end_time) == ("09:00", "10:00")
    assert config.fallback_grade_level == "Grade 3"
    assert config.log_json is False


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REMEDIAL_API_BASE_URL", "https://portal.example.edu/")
    monkeypatch.setenv("REMEDIAL_DEFAULT_START_TIME", "13:30")
    monkeypatch.setenv("REMEDIAL_LOG_JSON", "true")

    config = RemedialConfig(_env_file=None)

    assert config.api_base_url == "https://portal.example.edu"
    assert config.default_start_time == "13:30"
    assert config.log_json is True


def test_invalid_values_are_rejected() -> None:
    with pytest.raises(ValidationError):
        RemedialConfig(_env_file=None, default_start_time="9am")
    with pytest.raises(ValidationError):
        RemedialConfig(_env_file=None, api_max_attempts=0)


def test_get_config_is_a_singleton(monkeypatch: pytest.MonkeyPatch) -> None:
    first = get_config()
    assert get_config() is first

    monkeypatch.setenv("REMEDIAL_FALLBACK_GRADE_LEVEL", "Grade 2")
    reset_config()
    assert get_config().fallback_grade_level == "Grade 2"


def test_inverted_default_slot_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REMEDIAL_DEFAULT_START_TIME", "10:00")
    monkeypatch.setenv("REMEDIAL_DEFAULT_END_TIME", "09:00")
    with pytest.raises(ValidationError, match="default_end_time must be later"):
        RemedialConfig(_env_file=None)
