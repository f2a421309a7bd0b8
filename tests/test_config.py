"""Tests for ModifierSettings."""

import pytest
from pydantic import ValidationError

from intelligent_modifier.config import DEFAULT_MODEL, DEFAULT_STORE_DIR, ModifierSettings

_ENV_NAMES = [f"MODIFIER_{name.upper()}" for name in ModifierSettings.model_fields] + [
    "ANTHROPIC_API_KEY", "OPENAI_API_KEY",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


class TestModifierSettings:
    """Tests for environment resolution and display."""

    def test_defaults(self):
        settings = ModifierSettings.from_env()
        assert settings.model == DEFAULT_MODEL
        assert settings.store_dir == DEFAULT_STORE_DIR
        assert settings.llm_provider == "auto"
        assert not settings.has_llm_credentials()

    def test_constructor_ignores_environment(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-env")
        assert ModifierSettings().anthropic_api_key is None

    def test_reads_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("MODIFIER_MAPPER_WORKERS", "8")
        monkeypatch.setenv("MODIFIER_ALLOW_LLM_FALLBACK", "true")
        monkeypatch.setenv("MODIFIER_LLM_PROVIDER", "openai")
        monkeypatch.setenv("MODIFIER_STORE_DIR", "")
        settings = ModifierSettings.from_env()
        assert settings.mapper_workers == 8
        assert settings.allow_llm_fallback is True
        assert settings.llm_provider == "openai"
        assert settings.store_dir == DEFAULT_STORE_DIR

    def test_api_keys_only_from_provider_variables(self, monkeypatch):
        monkeypatch.setenv("MODIFIER_ANTHROPIC_API_KEY", "sk-ignored")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
        settings = ModifierSettings.from_env()
        assert settings.anthropic_api_key is None
        assert settings.openai_api_key == "sk-openai"
        assert settings.has_llm_credentials()

    def test_overrides_win_unless_none(self, monkeypatch):
        monkeypatch.setenv("MODIFIER_MODEL", "env-model")
        assert ModifierSettings.from_env(model=None).model == "env-model"
        assert ModifierSettings.from_env(model="cli-model").model == "cli-model"

    def test_invalid_value(self, monkeypatch):
        monkeypatch.setenv("MODIFIER_SUMMARY_SIZE", "0")
        with pytest.raises(ValidationError):
            ModifierSettings.from_env()

    def test_secrets_hidden(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-secret")
        settings = ModifierSettings.from_env()
        assert "anthropic_api_key" not in settings.safe_dump()
        assert "openai_api_key" not in settings.safe_dump()
        assert "sk-secret" not in repr(settings)
