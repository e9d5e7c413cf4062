"""Tests for LLM factory and auto-detection."""

from unittest.mock import MagicMock

import pytest

from llm import LLMError, create_cheap_provider, create_llm_provider
from llm.factory import _auto_detect_provider


class TestAutoDetection:
    def test_detects_anthropic_key(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        assert _auto_detect_provider() == "claude"

    def test_explicit_key_prefix(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        assert _auto_detect_provider("sk-ant-explicit") == "claude"

    def test_no_keys_raises(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        with pytest.raises(LLMError, match="No LLM API key found"):
            _auto_detect_provider()


class TestCreateProvider:
    def test_explicit_claude_with_client(self):
        mock_client = MagicMock()
        provider = create_llm_provider(provider="claude", client=mock_client)
        assert provider.provider_name == "claude"
        assert provider.client is mock_client

    def test_unknown_provider(self):
        with pytest.raises(LLMError, match="Unknown provider"):
            create_llm_provider(provider="mistral", client=MagicMock())

    def test_cheap_provider_uses_small_model(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        provider = create_cheap_provider(client=MagicMock())
        assert provider.model == "claude-haiku-4-5"

    def test_cheap_provider_model_override(self):
        provider = create_cheap_provider(provider="claude", model="claude-sonnet-4-6", client=MagicMock())
        assert provider.model == "claude-sonnet-4-6"
