import pytest
from pydantic import ValidationError

from config.registry import ENRICHMENT_KEY, bind_model, get_model, is_bound, unbind_model
from config.settings import Settings, settings


def test_settings_defaults():
    fresh = Settings(_env_file=None)
    assert fresh.ENRICHMENT_TIMEOUT_S == 8.0
    assert fresh.LEADERBOARD_DEFAULT_LIMIT == 20
    assert fresh.LEADERBOARD_MAX_LIMIT == 200
    assert fresh.TRANSCRIPT_WINDOW == 12


def test_settings_validate_assignment(monkeypatch):
    with pytest.raises(ValidationError):
        settings.ENRICHMENT_TIMEOUT_S = 0
    monkeypatch.setattr(settings, "ENRICHMENT_TIMEOUT_S", 2.5)
    assert settings.ENRICHMENT_TIMEOUT_S == 2.5


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("ENRICHMENT_PROVIDER", "llm")
    assert Settings(_env_file=None).ENRICHMENT_PROVIDER == "llm"


def test_registry_bind_and_unbind():
    with pytest.raises(KeyError):
        get_model(ENRICHMENT_KEY)
    bind_model(ENRICHMENT_KEY, lambda data: data)
    assert is_bound(ENRICHMENT_KEY)
    assert get_model(ENRICHMENT_KEY)(3) == 3
    unbind_model(ENRICHMENT_KEY)
    assert not is_bound(ENRICHMENT_KEY)
