import pytest
from pydantic import ValidationError

from autoqa import config
from autoqa.config import ENV_VARS, Settings, load_settings
from autoqa.models import StepStatus


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS.values():
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "load_dotenv", lambda: None)


def test_defaults_without_api_key():
    settings = load_settings()

    assert settings.mock_mode is True
    assert settings.api_key is None
    assert settings.fallback_outcome == StepStatus.FAILED
    assert settings.step_pause == 0.8


def test_api_key_switches_to_live(monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")

    settings = load_settings()

    assert settings.mock_mode is False
    assert settings.api_key == "sk-test"


def test_environment_values_are_parsed(monkeypatch):
    monkeypatch.setenv("AUTOQA_MOCK_MODE", "false")
    monkeypatch.setenv("AUTOQA_STEP_PAUSE", "0.25")
    monkeypatch.setenv("AUTOQA_FALLBACK_OUTCOME", "passed")

    settings = load_settings()

    assert settings.mock_mode is False
    assert settings.step_pause == 0.25
    assert settings.fallback_outcome == StepStatus.PASSED


def test_overrides_beat_environment(monkeypatch):
    monkeypatch.setenv("AUTOQA_STEP_PAUSE", "2")

    settings = load_settings(step_pause=0, mock_mode=None)

    assert settings.step_pause == 0
    assert settings.mock_mode is True


@pytest.mark.parametrize("value", ["SKIPPED", "maybe"])
def test_fallback_outcome_must_be_terminal(value):
    with pytest.raises(ValidationError):
        Settings(fallback_outcome=value)


def test_negative_pause_rejected():
    with pytest.raises(ValidationError):
        Settings(step_pause=-1)
