"""Configuration loading."""

from pathlib import Path
from typing import Optional

import yaml

from .config_models import PersonaConfig


def find_config() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / "persona.yaml",
        Path.home() / ".persona" / "config.yaml",
    ]
    for loc in locations:
        if loc.exists():
            return loc
    return None


def load_config_model(config_path: Optional[Path] = None) -> PersonaConfig:
    """Load configuration as Pydantic model with validation."""
    base_config = {}

    path = config_path or find_config()
    if path and path.exists():
        try:
            with open(path) as f:
                base_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file: {e}")
        if not isinstance(base_config, dict):
            raise ValueError(f"Config file must contain a mapping, got {type(base_config).__name__}")

    try:
        return PersonaConfig.from_dict(base_config)
    except Exception as e:
        raise ValueError(f"Config validation failed: {e}")


def get_paths(config: PersonaConfig) -> dict:
    """Resolved data file locations."""
    paths = config.paths
    return {
        "data_dir": paths.data_dir,
        "identity": paths.identity,
        "context": paths.context,
        "interview_state": paths.interview_state,
        "log_file": paths.log_file,
    }
