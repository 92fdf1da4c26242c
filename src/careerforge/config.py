"""Configuration loading and management."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from careerforge.exceptions import ConfigError

DEFAULT_CONFIG_PATH = "./config.yaml"
CONFIG_PATH_ENV_VAR = "CAREERFORGE_CONFIG"


class ProviderCandidate(BaseModel):
    """One (provider, model) entry in a task's fallback chain."""

    provider: str
    model: str
    temperature: float | None = None

    def label(self) -> str:
        return f"{self.provider}:{self.model}"


class Config(BaseModel):
    """CareerForge configuration model."""

    providers: dict[str, dict[str, Any]] = Field(default_factory=dict)
    fallback_chain: dict[str, list[ProviderCandidate]] = Field(default_factory=dict)
    tasks: dict[str, dict[str, Any]] = Field(default_factory=dict)
    cache: dict[str, Any] = Field(default_factory=dict)
    logging: dict[str, Any] = Field(default_factory=dict)

    def provider_settings(self, provider_name: str) -> dict[str, Any]:
        return self.providers.get(provider_name, {})

    def api_key_env(self, provider_name: str) -> str:
        """Environment variable holding the provider's API key."""
        return self.provider_settings(provider_name).get(
            "api_key_env", f"{provider_name.upper()}_API_KEY"
        )


def resolve_config_path(config_path: str | Path | None = None) -> Path:
    """Pick the config file: explicit path, then $CAREERFORGE_CONFIG, then ./config.yaml."""
    if config_path is not None:
        return Path(config_path)
    return Path(os.environ.get(CONFIG_PATH_ENV_VAR, DEFAULT_CONFIG_PATH))


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from YAML file."""
    config_path = resolve_config_path(config_path)

    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration root must be a mapping: {config_path}")

    try:
        return Config(**data)
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid configuration structure: {e}") from e
