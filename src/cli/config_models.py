"""Pydantic configuration models for persona."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

VALID_LLM_PROVIDERS = {"auto", "claude"}


def _expand_env(value: Optional[str]) -> Optional[str]:
    """Resolve a `${VAR}` reference; other values pass through."""
    if value and value.startswith("${") and value.endswith("}"):
        return os.getenv(value[2:-1], "")
    return value


class LLMConfig(BaseModel):
    """Text-completion provider used for extraction and branching."""

    provider: str = "auto"
    model: Optional[str] = None  # None = provider's cheap default
    api_key: Optional[str] = None
    max_tokens: int = 1024

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        if v not in VALID_LLM_PROVIDERS:
            raise ValueError(f"Invalid LLM provider: {v}. Must be one of {VALID_LLM_PROVIDERS}")
        return v


class PathsConfig(BaseModel):
    """File paths configuration."""

    data_dir: Path = Path("~/.persona")

    @model_validator(mode="after")
    def expand_paths(self):
        self.data_dir = self.data_dir.expanduser()
        return self

    @property
    def identity(self) -> Path:
        return self.data_dir / "identity.json"

    @property
    def context(self) -> Path:
        return self.data_dir / "context.json"

    @property
    def interview_state(self) -> Path:
        return self.data_dir / "interviews"

    @property
    def log_file(self) -> Path:
        return self.data_dir / "persona.log"


class InterviewConfig(BaseModel):
    max_branch_questions: int = Field(default=3, ge=0)
    min_answer_chars: int = Field(default=10, ge=0)
    host_fact_confidence: float = 0.8

    @field_validator("host_fact_confidence")
    @classmethod
    def validate_confidence(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"host_fact_confidence must be 0-1, got {v}")
        return v


class InjectionConfig(BaseModel):
    """Read-time merge settings for prompt injection."""

    max_fact_chars: int = 4000
    max_page_chars: int = 2000
    similarity_threshold: float = 0.7
    confidence_threshold: float = 0.3
    half_life_days: float = 60
    max_sites: int = 5

    @field_validator("similarity_threshold", "confidence_threshold")
    @classmethod
    def validate_ratio(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"threshold must be 0-1, got {v}")
        return v

    @field_validator("half_life_days")
    @classmethod
    def validate_half_life(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"half_life_days must be positive, got {v}")
        return v


class RemoteConfig(BaseModel):
    """Optional remote fact store (PostgREST-style)."""

    enabled: bool = False
    url: Optional[str] = None
    api_key: Optional[str] = None
    access_token: Optional[str] = None
    timeout: float = 5.0

    @model_validator(mode="after")
    def validate_remote(self):
        if self.enabled and not self.url:
            raise ValueError("remote.url is required when remote.enabled is true")
        return self


VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "WARNING"
    json_mode: bool = False
    log_to_file: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class PersonaConfig(BaseModel):
    """Main configuration model."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    interview: InterviewConfig = Field(default_factory=InterviewConfig)
    injection: InjectionConfig = Field(default_factory=InjectionConfig)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def expand_env_vars(self):
        """Expand ${VAR} patterns in API keys."""
        self.llm.api_key = _expand_env(self.llm.api_key)
        self.remote.api_key = _expand_env(self.remote.api_key)
        self.remote.access_token = _expand_env(self.remote.access_token)
        return self

    @classmethod
    def from_dict(cls, data: dict) -> "PersonaConfig":
        if "paths" in data and isinstance(data["paths"].get("data_dir"), str):
            data["paths"]["data_dir"] = Path(data["paths"]["data_dir"])
        return cls.model_validate(data)

    def to_dict(self) -> dict:
        return self.model_dump(mode="python")
