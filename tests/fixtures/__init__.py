"""Test fixtures and sample data."""

from pathlib import Path
from unittest.mock import MagicMock

from careerforge.config import Config, ProviderCandidate
from careerforge.schemas.evidence import EvidenceBundle, GoalProfile

# Path to fixtures directory
FIXTURES_DIR = Path(__file__).parent

__all__ = [
    "load_sample_resume",
    "sample_evidence",
    "create_mock_provider",
    "make_config",
]


def load_sample_resume() -> str:
    """Load sample resume text from fixture file."""
    return (FIXTURES_DIR / "sample_resume.txt").read_text(encoding="utf-8")


def sample_evidence(**overrides) -> EvidenceBundle:
    """
    Evidence bundle for a typical user.

    Args:
        **overrides: Field values replacing the defaults

    Returns:
        EvidenceBundle
    """
    data = {
        "resume_text": load_sample_resume(),
        "notes": "Studying system design on weekends.",
        "projects": "Budget Buddy - React, Express, MongoDB",
        "technologies": ["React", "Node.js", "Express", "MongoDB", "Docker"],
        "goals": GoalProfile(target_roles=["Backend Engineer"], interests=["distributed systems"]),
    }
    data.update(overrides)
    return EvidenceBundle(**data)


def create_mock_provider(
    response: str = '{"answer": "ok"}',
    side_effect=None,
    model: str = "test-model",
    name: str = "mock",
) -> MagicMock:
    """
    Create a mocked provider for unit tests.

    Args:
        response: Text returned from complete()
        side_effect: Optional side effect for complete() (exception or list)
        model: Model name
        name: Provider name

    Returns:
        Mocked provider instance
    """
    mock_provider = MagicMock()
    mock_provider.name = name
    mock_provider.model = model
    mock_provider.complete = MagicMock(return_value=response, side_effect=side_effect)
    return mock_provider


def make_config(**overrides) -> Config:
    """
    Config with a two-candidate chain for every task and an in-memory cache.
    """
    chain = [
        ProviderCandidate(provider="groq", model="llama-3.1-8b-instant"),
        ProviderCandidate(provider="openrouter", model="stepfun/step-3.5-flash:free"),
    ]
    data = {
        "providers": {
            "groq": {"api_key_env": "GROQ_API_KEY", "max_retries": 0},
            "openrouter": {"api_key_env": "STEP_API_KEY", "max_retries": 0},
            "gemini": {"api_key_env": "GEMINI_API_KEY", "max_retries": 0},
        },
        "fallback_chain": {
            task: list(chain)
            for task in ("chat_query", "resume_analysis", "insights", "skill_progress")
        },
        "cache": {"backend": "memory"},
        "logging": {"level": "critical"},
    }
    data.update(overrides)
    return Config(**data)
