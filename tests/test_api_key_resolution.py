import pytest

from stylizer.config import DEFAULT_TRAINING_API_URL, Settings, resolve_api_key
from stylizer.providers import OpenAIStylizer, ReplicateTrainer


def test_resolve_api_key_prefers_explicit(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "env-value")
    assert resolve_api_key(" explicit ", "OPENAI_API_KEY") == "explicit"


def test_resolve_api_key_falls_back_to_first_non_empty_env(monkeypatch):
    monkeypatch.setenv("SUPABASE_ANON_KEY", "  ")
    monkeypatch.setenv("SUPABASE_KEY", "anon-value")
    assert resolve_api_key(None, "SUPABASE_ANON_KEY", "SUPABASE_KEY") == "anon-value"


def test_resolve_api_key_returns_empty_when_nothing_set(monkeypatch):
    monkeypatch.delenv("REPLICATE_API_TOKEN", raising=False)
    assert resolve_api_key("", "REPLICATE_API_TOKEN") == ""


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service")
    monkeypatch.setenv("TRAINING_API_URL", "https://functions.example.com/api/")
    monkeypatch.setenv("POLL_INTERVAL_S", "0.5")
    monkeypatch.setenv("MAX_POLLS", "10")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings.from_env()

    assert settings.supabase_url == "https://project.supabase.co"
    assert settings.supabase_service_role_key == "service"
    assert settings.training_api_url == "https://functions.example.com/api"
    assert settings.poll_interval_s == 0.5
    assert settings.max_polls == 10
    assert settings.log_level == "DEBUG"


def test_settings_defaults(monkeypatch):
    for name in ("TRAINING_API_URL", "POLL_INTERVAL_S", "MAX_POLLS"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings.from_env()
    assert settings.training_api_url == DEFAULT_TRAINING_API_URL
    assert settings.poll_interval_s == 5.0
    assert settings.max_polls == 360


def test_settings_rejects_non_numeric_interval(monkeypatch):
    monkeypatch.setenv("POLL_INTERVAL_S", "soon")
    with pytest.raises(ValueError, match="POLL_INTERVAL_S"):
        Settings.from_env()


def test_require_names_missing_setting():
    with pytest.raises(ValueError, match="OPENAI_API_KEY is not set"):
        Settings().require("openai_api_key")
    with pytest.raises(ValueError, match="Missing Supabase environment variables"):
        Settings(supabase_url="https://x.supabase.co").require_supabase_admin()


def test_openai_stylizer_requires_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(ValueError, match="OPENAI_API_KEY"):
        OpenAIStylizer(api_key=None)


def test_trainer_reads_token_from_env(monkeypatch):
    monkeypatch.setenv("REPLICATE_API_TOKEN", "r8-token")
    trainer = ReplicateTrainer(destination="someone/portraits")
    assert trainer.api_token == "r8-token"


def test_trainer_requires_destination(monkeypatch):
    monkeypatch.setenv("REPLICATE_API_TOKEN", "r8-token")
    with pytest.raises(ValueError, match="REPLICATE_DESTINATION"):
        ReplicateTrainer(destination="")
