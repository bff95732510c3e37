"""Tests for promptaction.llm.factory"""

import pytest

from promptaction.config import LLMSettings
from promptaction.exceptions import ConfigurationError
from promptaction.llm.deepseek_client import DEEPSEEK_BASE_URL, DeepseekClient
from promptaction.llm.factory import MISSING_KEY_MESSAGE, create_llm_client
from promptaction.llm.openai_client import OpenAIClient


class TestCreateLLMClient:

    def test_missing_credentials(self):
        with pytest.raises(ConfigurationError) as exc_info:
            create_llm_client(environ={})
        assert str(exc_info.value) == MISSING_KEY_MESSAGE

    def test_openai_preferred_when_both_set(self):
        client = create_llm_client(environ={"OPENAI_API_KEY": "sk-o", "DEEPSEEK_API_KEY": "sk-d"})
        assert isinstance(client, OpenAIClient)
        assert client.config.api_key == "sk-o"
        assert client.config.model == "gpt-4o-mini"

    def test_deepseek_fallback(self):
        client = create_llm_client(environ={"DEEPSEEK_API_KEY": "sk-d"})
        assert isinstance(client, DeepseekClient)
        assert client.config.model == "deepseek-chat"
        assert client.config.base_url == DEEPSEEK_BASE_URL

    def test_explicit_provider(self):
        settings = LLMSettings(provider="deepseek", api_key="sk-d", model="deepseek-reasoner")
        client = create_llm_client(settings, environ={"OPENAI_API_KEY": "sk-o"})
        assert isinstance(client, DeepseekClient)
        assert client.config.api_key == "sk-d"
        assert client.config.model == "deepseek-reasoner"

    def test_explicit_provider_without_key(self):
        with pytest.raises(ConfigurationError):
            create_llm_client(LLMSettings(provider="openai"), environ={"DEEPSEEK_API_KEY": "sk-d"})

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError, match="Unknown LLM provider 'mistral'"):
            create_llm_client(LLMSettings(provider="mistral"), environ={"OPENAI_API_KEY": "sk-o"})

    def test_openai_model_from_env(self):
        client = create_llm_client(environ={"OPENAI_API_KEY": "sk-o", "OPENAI_MODEL": "gpt-4o"})
        assert client.config.model == "gpt-4o"

    def test_temperature_and_timeout(self):
        client = create_llm_client(LLMSettings(timeout=5), environ={"OPENAI_API_KEY": "sk-o"}, temperature=0.3)
        assert client.config.temperature == 0.3
        assert client.config.timeout == 5
