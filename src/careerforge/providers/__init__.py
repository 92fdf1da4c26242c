"""Completion provider abstraction layer."""

import os
from typing import TYPE_CHECKING

from careerforge.exceptions import ConfigError, ProviderError
from careerforge.providers.base import (
    BaseProvider,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT_SECONDS,
    classify_status,
)
from careerforge.providers.gemini_provider import GeminiProvider
from careerforge.providers.groq_provider import GroqProvider
from careerforge.providers.openrouter_provider import OpenRouterProvider

if TYPE_CHECKING:
    from careerforge.config import Config, ProviderCandidate

__all__ = [
    "BaseProvider",
    "GroqProvider",
    "OpenRouterProvider",
    "GeminiProvider",
    "PROVIDERS",
    "classify_status",
    "create_provider",
    "resolve_candidates",
]

PROVIDERS: dict[str, type[BaseProvider]] = {
    "groq": GroqProvider,
    "openrouter": OpenRouterProvider,
    "gemini": GeminiProvider,
}

# Provider-specific constructor options read from config.providers.<name>
_EXTRA_OPTIONS = {
    "openrouter": ("base_url", "enable_reasoning", "site_url", "app_title"),
    "gemini": ("api_versions",),
}


def resolve_candidates(task_name: str, config: "Config") -> list["ProviderCandidate"]:
    """
    Ordered provider candidates for a task.

    A ``<PROVIDER>_MODEL`` environment variable (e.g. ``GEMINI_MODEL``)
    overrides the model of that provider's candidates.

    Raises:
        ConfigError: If the task has no fallback chain
    """
    candidates = config.fallback_chain.get(task_name)
    if not candidates:
        raise ConfigError(f"No provider candidates configured for task '{task_name}'")

    resolved = []
    for candidate in candidates:
        override = os.environ.get(f"{candidate.provider.upper()}_MODEL", "").strip()
        resolved.append(candidate.model_copy(update={"model": override}) if override else candidate)
    return resolved


def create_provider(candidate: "ProviderCandidate", config: "Config") -> BaseProvider:
    """
    Create a provider instance for a candidate.

    Args:
        candidate: Provider/model pair from the fallback chain
        config: Configuration object

    Returns:
        Provider instance

    Raises:
        ConfigError: If provider is unknown or its API key is missing
        ProviderError: If provider initialization fails
    """
    provider_name = candidate.provider
    if provider_name not in PROVIDERS:
        raise ConfigError(f"Unknown provider: {provider_name}")

    settings = config.provider_settings(provider_name)
    api_key_env_var = config.api_key_env(provider_name)
    api_key = os.environ.get(api_key_env_var, "").strip()

    if not api_key:
        raise ConfigError(
            f"Missing API key for {provider_name}. "
            f"Set {api_key_env_var} environment variable."
        )

    extras = {
        option: settings[option]
        for option in _EXTRA_OPTIONS.get(provider_name, ())
        if option in settings
    }

    try:
        return PROVIDERS[provider_name](
            api_key=api_key,
            model=candidate.model,
            timeout_seconds=settings.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
            max_retries=settings.get("max_retries", DEFAULT_MAX_RETRIES),
            **extras,
        )
    except ConfigError:
        raise
    except Exception as e:
        raise ProviderError(f"Failed to initialize {provider_name} provider: {e}", provider=provider_name) from e
