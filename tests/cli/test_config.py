"""Tests for config loading and validation."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from cli.config import get_paths, load_config_model
from cli.config_models import InjectionConfig, LLMConfig, PersonaConfig, RemoteConfig


class TestConfigModels:
    def test_defaults(self):
        config = PersonaConfig()
        assert config.llm.provider == "auto"
        assert config.interview.max_branch_questions == 3
        assert config.injection.max_fact_chars == 4000
        assert config.injection.similarity_threshold == 0.7
        assert config.remote.enabled is False

    def test_env_expansion(self, monkeypatch):
        monkeypatch.setenv("PERSONA_TEST_KEY", "sk-ant-from-env")
        config = PersonaConfig.from_dict({"llm": {"api_key": "${PERSONA_TEST_KEY}"}})
        assert config.llm.api_key == "sk-ant-from-env"

    def test_literal_key_untouched(self):
        assert PersonaConfig.from_dict({"llm": {"api_key": "sk-ant-literal"}}).llm.api_key == "sk-ant-literal"

    def test_invalid_provider(self):
        with pytest.raises(ValidationError):
            LLMConfig(provider="openai")

    def test_remote_requires_url(self):
        with pytest.raises(ValidationError, match="remote.url"):
            RemoteConfig(enabled=True)

    def test_bad_threshold(self):
        with pytest.raises(ValidationError):
            InjectionConfig(similarity_threshold=1.5)

    def test_data_dir_expanded(self):
        config = PersonaConfig.from_dict({"paths": {"data_dir": "~/persona-data"}})
        assert config.paths.data_dir == Path.home() / "persona-data"
        assert config.paths.identity == Path.home() / "persona-data" / "identity.json"


class TestLoadConfig:
    def test_load_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(f"paths:\n  data_dir: {tmp_path}\ninterview:\n  max_branch_questions: 2\n")
        config = load_config_model(path)
        assert config.interview.max_branch_questions == 2
        assert get_paths(config)["interview_state"] == tmp_path / "interviews"

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("llm: [unclosed")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_config_model(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config_model(path)

    def test_validation_failure(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("logging:\n  level: LOUD\n")
        with pytest.raises(ValueError, match="Config validation failed"):
            load_config_model(path)
