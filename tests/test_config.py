"""
Tests for application settings and the LLM provider configuration.
"""

import os

import pytest

from ghostcode.core.config import (
    Config,
    ConfigError,
    LLMConfig,
    LLMProvider,
    LOCAL_API_KEY,
    load_environment,
)


class TestConfig:
    def test_defaults(self, monkeypatch, tmp_path):
        for name in (
            "HISTORY_MAX_MESSAGES", "HISTORY_MAX_TOKENS", "RETRY_MAX_ATTEMPTS", "ROUTING_DEFAULT_MODEL",
            "FALLBACK_MODELS", "YOLO_MODE",
        ):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("PROJECT_ROOT", str(tmp_path))

        config = Config()
        assert config.history_max_messages == 100
        assert config.history_max_tokens == 10000
        assert config.retry_max_attempts == 3
        assert config.routing_default_model is None
        assert config.rules_path == tmp_path / ".ghostrules"
        assert config.fallback_models == []
        assert not config.yolo_mode

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("HISTORY_MAX_TOKENS", "500")
        monkeypatch.setenv("RETRY_BACKOFF_MULTIPLIER", "1.5")
        monkeypatch.setenv("ROUTING_DEFAULT_MODEL", "gpt-4o")

        config = Config()
        assert config.history_max_tokens == 500
        assert config.retry_backoff_multiplier == 1.5
        assert config.routing_default_model == "gpt-4o"

    def test_fallback_models_list(self, monkeypatch):
        monkeypatch.setenv("FALLBACK_MODELS", "gpt-4o-mini, gpt-4o,,")
        monkeypatch.setenv("YOLO_MODE", "true")

        config = Config()
        assert config.fallback_models == ["gpt-4o-mini", "gpt-4o"]
        assert config.yolo_mode

    @pytest.mark.parametrize("name,value", [
        ("HISTORY_MAX_MESSAGES", "1"),
        ("HISTORY_MAX_TOKENS", "0"),
        ("RETRY_MAX_ATTEMPTS", "0"),
        ("RETRY_BACKOFF_MULTIPLIER", "0.5"),
    ])
    def test_invalid_values(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ConfigError):
            Config()

    def test_load_environment(self, monkeypatch, tmp_path):
        monkeypatch.delenv("GHOSTCODE_TEST_VALUE", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("GHOSTCODE_TEST_VALUE=loaded\n", encoding="utf-8")

        assert load_environment([tmp_path / "missing.env", env_file]) == env_file
        assert os.environ["GHOSTCODE_TEST_VALUE"] == "loaded"
        monkeypatch.delenv("GHOSTCODE_TEST_VALUE")


class TestLLMProvider:
    @pytest.mark.parametrize("name,provider", [
        ("openai", LLMProvider.OPENAI),
        ("Gemini", LLMProvider.GEMINI),
        ("local", LLMProvider.LOCAL_SERVER),
        ("local_server", LLMProvider.LOCAL_SERVER),
        ("something-else", LLMProvider.OPENAI),
    ])
    def test_from_string(self, name, provider):
        assert LLMProvider.from_string(name) is provider


class TestLLMConfig:
    def test_save_and_reload(self, tmp_path):
        config = LLMConfig()
        config.quick_config_openai("sk-test-key", "gpt-4o")
        config.set_temperature(0.2)
        path = config.save_to_env(tmp_path / ".env")

        loaded = LLMConfig.from_env_file(path)
        assert loaded.provider is LLMProvider.OPENAI
        assert loaded.api_key == "sk-test-key"
        assert loaded.model == "gpt-4o"
        assert loaded.base_url == config.base_url
        assert loaded.temperature == 0.2

    def test_default_model_survives_reload(self, tmp_path):
        config = LLMConfig()
        config.quick_config_openai("sk-test-key", None)

        loaded = LLMConfig.from_env_file(config.save_to_env(tmp_path / ".env"))
        assert (loaded.provider, loaded.model, loaded.base_url) == (config.provider, config.model, config.base_url)

    def test_missing_api_key(self):
        with pytest.raises(ConfigError, match="OPENAI_API_KEY"):
            LLMConfig.from_env({"LLM_PROVIDER": "openai"})

    def test_local_provider_needs_no_key(self):
        config = LLMConfig.from_env({"LLM_PROVIDER": "local", "LOCAL_MODEL": "qwen"})
        assert config.provider is LLMProvider.LOCAL_SERVER
        assert config.api_key == LOCAL_API_KEY
        assert config.model == "qwen"

    def test_invalid_numbers(self):
        with pytest.raises(ConfigError):
            LLMConfig.from_env({"OPENAI_API_KEY": "k", "LLM_MAX_TOKENS": "lots"})

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            LLMConfig.from_env_file(tmp_path / "nope.env")

    @pytest.mark.parametrize("value", [-0.1, 2.1])
    def test_temperature_range(self, value):
        with pytest.raises(ConfigError):
            LLMConfig().set_temperature(value)

    def test_max_tokens_positive(self):
        with pytest.raises(ConfigError):
            LLMConfig().set_max_tokens(0)

    def test_set_provider_fills_local_key(self):
        config = LLMConfig(api_key="sk-1")
        config.set_provider(LLMProvider.OLLAMA)

        assert config.provider is LLMProvider.OLLAMA
        assert config.api_key == LOCAL_API_KEY

    def test_status_masks_key(self):
        config = LLMConfig(api_key="sk-abcdefghijkl")
        status = config.get_status_info()

        assert "sk-abcde..." in status
        assert "sk-abcdefghijkl" not in status
