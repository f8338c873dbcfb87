"""Tests for LLMClient provider abstraction."""

import pytest
from unittest.mock import MagicMock

from workboard.common.llm_client import LLMClient


class TestLLMClientInit:
    @pytest.mark.parametrize("provider", ["anthropic", "openai", "google"])
    def test_missing_key_logs_info(self, provider, caplog):
        import logging
        with caplog.at_level(logging.INFO, logger="workboard.common.llm_client"):
            client = LLMClient(provider=provider)
        assert not client.is_available
        assert "API key not provided" in caplog.text

    def test_unsupported_provider_logs_warning(self, caplog):
        import logging
        with caplog.at_level(logging.WARNING, logger="workboard.common.llm_client"):
            client = LLMClient(provider="unsupported_xyz")
        assert not client.is_available
        assert "Unsupported" in caplog.text

    def test_from_config_uses_active_model(self):
        from workboard.common.config import LLMConfig
        client = LLMClient.from_config(LLMConfig(provider="openai"))
        assert client.provider == "openai"
        assert client.model == "gpt-4o-mini"
        assert not client.is_available


class TestLLMClientGenerate:
    def test_generate_raises_when_unavailable(self):
        client = LLMClient(provider="anthropic")
        with pytest.raises(RuntimeError, match="not available"):
            client.generate("test")

    def test_openai_json_mode(self):
        client = LLMClient(provider="openai", model="gpt-4o-mini")
        fake = MagicMock()
        fake.chat.completions.create.return_value.choices = [
            MagicMock(message=MagicMock(content=' {"isTask": true} '))
        ]
        client._client = fake

        out = client.generate("classify", system="json only", json_mode=True)

        assert out == '{"isTask": true}'
        kwargs = fake.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0] == {"role": "system", "content": "json only"}
        assert kwargs["max_tokens"] == 200

    def test_anthropic_passes_system(self):
        client = LLMClient(provider="anthropic", model="claude-haiku-4-5-20251001")
        fake = MagicMock()
        fake.messages.create.return_value.content = [MagicMock(text="{}\n")]
        client._client = fake

        assert client.generate("hi", system="sys") == "{}"
        kwargs = fake.messages.create.call_args.kwargs
        assert kwargs["system"] == "sys"
        assert "response_format" not in kwargs
