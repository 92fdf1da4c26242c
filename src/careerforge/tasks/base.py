"""Base task interface."""

import json
from abc import ABC, abstractmethod
from typing import Any

import structlog

from careerforge.fingerprint import compute_fingerprint
from careerforge.prompts import PromptPair
from careerforge.schemas.evidence import EvidenceBundle
from careerforge.schemas.results import TaskShape
from careerforge.validation import parse_structured

logger = structlog.get_logger(__name__)

# Constants
DEFAULT_TEMPERATURE = 0.2


def goals_text(evidence: EvidenceBundle) -> str | None:
    """Canonical goals string for fingerprinting (None when goals are absent)."""
    if evidence.goals is None:
        return None
    return json.dumps(
        {"targetRoles": evidence.goals.target_roles, "interests": evidence.goals.interests},
        sort_keys=True,
    )


class BaseTask(ABC):
    """
    One AI task: how to prompt for it, how to key it, how to check it and how
    to produce it without a model.
    """

    name: str = "base"
    prompt_version: str = "v0"
    shape: type[TaskShape] = TaskShape
    default_temperature: float = DEFAULT_TEMPERATURE

    def __init__(self, config: dict | None = None):
        """
        Args:
            config: Optional task overrides (e.g. ``temperature``)
        """
        self.config = config or {}
        self.temperature = self.config.get("temperature", self.default_temperature)
        self.logger = logger.bind(task=self.name, prompt_version=self.prompt_version)

    @abstractmethod
    def get_system_prompt(self) -> str:
        """Return the system prompt for this task."""
        pass

    @abstractmethod
    def build_user_prompt(self, evidence: EvidenceBundle) -> str:
        """Build the user content from evidence."""
        pass

    @abstractmethod
    def fingerprint_fields(self, evidence: EvidenceBundle) -> list[tuple[str, str | None]]:
        """Ordered evidence fields that determine this task's output."""
        pass

    @abstractmethod
    def fallback(self, evidence: EvidenceBundle) -> TaskShape:
        """Deterministic result computed from evidence alone."""
        pass

    def fingerprint_extras(self, evidence: EvidenceBundle) -> list[tuple[str, Any]]:
        """Non-text values that affect output. Every heuristic reads technologies."""
        return [("technologies", evidence.normalized_technologies())]

    def validate_evidence(self, evidence: EvidenceBundle) -> None:
        """Reject evidence the task cannot work with. Override as needed."""
        return None

    def fingerprint(self, evidence: EvidenceBundle) -> str:
        return compute_fingerprint(
            self.prompt_version,
            self.fingerprint_fields(evidence),
            self.fingerprint_extras(evidence),
        )

    def build_prompt(self, evidence: EvidenceBundle) -> PromptPair:
        return PromptPair(system=self.get_system_prompt(), user=self.build_user_prompt(evidence))

    def parse_response(self, response: str) -> TaskShape:
        """
        Turn raw model text into a validated shape.

        Raises:
            ExtractionError: No JSON object in the text
            ValidationError: Object does not match the shape
        """
        return parse_structured(response, self.shape)

    def finalize(self, result: TaskShape) -> TaskShape:
        """Post-process a validated result before it is stored."""
        return result
