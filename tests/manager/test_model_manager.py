import pytest
from unittest.mock import Mock, patch
from openai import OpenAIError

from nomie.config import AppConfig
from nomie.models.manager import ModelManager
from nomie.models.providers.base import ChatRequest, ModelResponse, ModelError, ModelTimeout


class TestModelManager:
    """Test suite for ModelManager functionality"""

    @pytest.fixture
    def config_dict(self):
        return {
            "providers": {
                "groq": {
                    "type": "openai",
                    "settings": {"base_url": "https://api.groq.com/openai/v1", "api_key_env": "GROQ_API_KEY"},
                },
                "openai": {"type": "openai", "settings": {}},
            },
            "tasks": {
                "recipes": {
                    "provider": "groq",
                    "model": "meta-llama/llama-4-maverick-17b-128e-instruct",
                    "params": {"temperature": 0},
                },
            },
        }

    @pytest.fixture
    def valid_config(self, tmp_path):
        """Create a valid config file for testing"""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("""
providers:
  groq:
    type: openai
    settings:
      base_url: "https://api.groq.com/openai/v1"

tasks:
  recipes:
    provider: groq
    model: "llama"
    params:
      temperature: 0
""")
        return config_file

    @pytest.fixture
    def manager(self, config_dict):
        return ModelManager(config_dict)

    @pytest.fixture
    def messages(self):
        return [
            {"role": "system", "content": "You are a recipe assistant."},
            {"role": "user", "content": [{"type": "text", "text": "eggs"}]},
        ]

    def test_initialization_from_dict(self, manager):
        assert "groq" in manager.config["providers"]
        assert manager._providers == {}

    def test_initialization_from_file(self, valid_config):
        manager = ModelManager(valid_config)
        assert manager.config["tasks"]["recipes"]["model"] == "llama"

    def test_initialization_from_app_config(self, config_dict):
        app_config = AppConfig(providers=config_dict["providers"], tasks=config_dict["tasks"])
        manager = ModelManager(app_config)
        assert manager.config["tasks"]["recipes"]["provider"] == "groq"

    def test_config_file_not_found(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Config not found"):
            ModelManager(tmp_path / "missing.yaml")

    def test_config_missing_providers_section(self):
        with pytest.raises(ValueError, match="missing 'providers'"):
            ModelManager({"tasks": {"recipes": {"provider": "groq", "model": "m"}}})

    def test_config_missing_tasks_section(self, config_dict):
        with pytest.raises(ValueError, match="missing 'tasks'"):
            ModelManager({"providers": config_dict["providers"]})

    def test_task_missing_model(self, config_dict):
        config_dict["tasks"]["recipes"].pop("model")
        with pytest.raises(ValueError, match="missing model"):
            ModelManager(config_dict)

    def test_task_unknown_provider(self, config_dict):
        config_dict["tasks"]["recipes"]["provider"] = "nowhere"
        with pytest.raises(ValueError, match="unknown provider 'nowhere'"):
            ModelManager(config_dict)

    def test_provider_initialization_openai(self, manager):
        with patch('nomie.models.manager.OpenAIProvider') as mock_openai:
            provider = manager._get_provider("groq")

        mock_openai.assert_called_once_with(base_url="https://api.groq.com/openai/v1", api_key_env="GROQ_API_KEY")
        assert provider is mock_openai.return_value

    def test_provider_caching(self, manager):
        with patch('nomie.models.manager.OpenAIProvider') as mock_openai:
            first = manager._get_provider("groq")
            second = manager._get_provider("groq")

        assert first is second
        assert mock_openai.call_count == 1

    def test_unknown_provider_error(self, manager):
        with pytest.raises(ValueError, match="Unknown provider: missing"):
            manager._get_provider("missing")

    def test_unknown_provider_type_error(self, config_dict):
        config_dict["providers"]["groq"]["type"] = "ollama"
        manager = ModelManager(config_dict)

        with pytest.raises(ValueError, match="Unknown provider type: ollama"):
            manager._get_provider("groq")

    def test_call_builds_chat_request(self, manager, messages):
        provider = Mock()
        provider.chat.return_value = ModelResponse(content="Recipe ideas:", raw=None, meta={"model": "llama"})
        manager._providers["groq"] = provider

        response = manager.call("recipes", messages, max_tokens=512)

        assert response.content == "Recipe ideas:"
        request = provider.chat.call_args.args[0]
        assert isinstance(request, ChatRequest)
        assert request.model == "meta-llama/llama-4-maverick-17b-128e-instruct"
        assert request.messages == messages
        assert request.params == {"temperature": 0, "max_tokens": 512}

    def test_unknown_task(self, manager, messages):
        with pytest.raises(ValueError, match="Unknown task: vision"):
            manager.call("vision", messages)

    def test_provider_error_propagates_without_retry(self, manager, messages):
        provider = Mock()
        provider.chat.side_effect = ModelTimeout("timed out")
        manager._providers["groq"] = provider

        with pytest.raises(ModelError):
            manager.call("recipes", messages)

        assert provider.chat.call_count == 1
        stats = manager.get_stats("recipes")
        assert stats["total_calls"] == 1
        assert stats["successful_calls"] == 0

    def test_stats_tracking(self, manager, messages):
        provider = Mock()
        provider.chat.return_value = ModelResponse(content="ok", raw=None, meta={})
        manager._providers["groq"] = provider

        manager.call("recipes", messages)
        manager.call("recipes", messages)

        stats = manager.get_stats()
        assert stats["recipes"]["total_calls"] == 2
        assert stats["recipes"]["successful_calls"] == 2
        assert stats["recipes"]["total_latency_ms"] >= 0
        assert manager.get_stats("other") == {}

    def test_session_cleans_up_clients(self, manager):
        provider = Mock()
        manager._providers["groq"] = provider

        with manager.session() as m:
            assert m is manager

        provider.client.close.assert_called_once()
        assert manager._providers == {}

    def test_cleanup_continues_after_close_failure(self, manager):
        failing, healthy = Mock(), Mock()
        failing.client.close.side_effect = RuntimeError("boom")
        manager._providers.update({"a": failing, "b": healthy})

        manager.cleanup()

        healthy.client.close.assert_called_once()
        assert manager._providers == {}

    def test_provider_construction_failure_is_model_error(self, manager, messages):
        with patch('nomie.models.manager.OpenAIProvider', side_effect=OpenAIError("The api_key client option must be set")):
            with pytest.raises(ModelError, match="Provider 'groq' could not be initialized"):
                manager.call("recipes", messages)

        assert manager._providers == {}

    def test_missing_api_key_is_model_error(self, config_dict, messages, monkeypatch):
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(ModelError, match="could not be initialized"):
            ModelManager(config_dict).call("recipes", messages)
