import pytest

from docrefine.config import (
    DEFAULT_MODELS,
    DEFAULT_OPENAI_BASE_URL,
    LLMProvider,
    ProviderConfig,
    pacing_delay_from_env,
)

ENV_VARS = [
    "DOCREFINE_PROVIDER",
    "DOCREFINE_API_KEY",
    "DOCREFINE_MODEL",
    "DOCREFINE_BASE_URL",
    "DOCREFINE_TIMEOUT",
    "DOCREFINE_PACING_DELAY",
    "GEMINI_API_KEY",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "API_KEY",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_are_unconfigured():
    config = ProviderConfig.from_env()
    assert config.provider == LLMProvider.GEMINI
    assert config.model == DEFAULT_MODELS[LLMProvider.GEMINI]
    assert not config.is_configured()


def test_provider_specific_key(monkeypatch):
    monkeypatch.setenv("DOCREFINE_PROVIDER", "openai")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
    monkeypatch.setenv("DOCREFINE_BASE_URL", "https://api.deepseek.com/v1/")
    monkeypatch.setenv("DOCREFINE_MODEL", "deepseek-chat")

    config = ProviderConfig.from_env()

    assert config.provider == LLMProvider.OPENAI
    assert config.api_key == "sk-openai"
    assert config.model == "deepseek-chat"
    assert config.resolved_base_url() == "https://api.deepseek.com/v1"
    assert config.is_configured()


def test_generic_key_wins(monkeypatch):
    monkeypatch.setenv("DOCREFINE_API_KEY", "generic")
    monkeypatch.setenv("GEMINI_API_KEY", "gemini")
    assert ProviderConfig.from_env().api_key == "generic"


def test_unknown_provider_falls_back_to_gemini(monkeypatch):
    monkeypatch.setenv("DOCREFINE_PROVIDER", "mistral")
    assert ProviderConfig.from_env().provider == LLMProvider.GEMINI


def test_timeout_from_env(monkeypatch):
    monkeypatch.setenv("DOCREFINE_TIMEOUT", "45")
    assert ProviderConfig.from_env().timeout_seconds == 45.0


def test_default_base_url():
    assert ProviderConfig().resolved_base_url() == DEFAULT_OPENAI_BASE_URL


def test_blank_model_is_unconfigured():
    assert not ProviderConfig(api_key="key", model="  ").is_configured()


@pytest.mark.parametrize("key,shown", [("sk-abcdef123456", "...3456"), ("abc", "***"), ("", "")])
def test_redacted_hides_key(key, shown):
    data = ProviderConfig(api_key=key).redacted()
    assert data["api_key"] == shown
    assert data["configured"] is bool(key)


@pytest.mark.parametrize("raw,expected", [("1.5", 1.5), ("-3", 0.0), ("soon", 0.0)])
def test_pacing_delay(monkeypatch, raw, expected):
    monkeypatch.setenv("DOCREFINE_PACING_DELAY", raw)
    assert pacing_delay_from_env() == expected


def test_pacing_delay_default():
    assert pacing_delay_from_env() == 0.0
