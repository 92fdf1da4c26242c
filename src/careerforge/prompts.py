"""Provider-agnostic prompt assembly from evidence."""

import json
from dataclasses import dataclass
from typing import Any

from careerforge.schemas.evidence import EvidenceBundle, GoalProfile
from careerforge.utils.text import truncate

NOT_AVAILABLE = "N/A"


@dataclass(frozen=True)
class PromptPair:
    """System instruction plus user content for one completion."""

    system: str
    user: str


def format_goals(goals: GoalProfile | None) -> str:
    """One-line goals summary; ``N/A`` stands in for anything missing."""
    roles = ", ".join(goals.target_roles) if goals and goals.target_roles else NOT_AVAILABLE
    interests = ", ".join(goals.interests) if goals and goals.interests else NOT_AVAILABLE
    return f"Target roles: {roles}. Interests: {interests}."


def build_evidence_context(evidence: EvidenceBundle, *, include_technologies: bool = False) -> str:
    """
    Render evidence as labelled sections.

    Sections with no content are left out, except Goals which always
    appears so the model knows none were given.
    """
    sections = []
    if evidence.resume_text:
        sections.append(f"Resume:\n{truncate(evidence.resume_text)}")
    if evidence.projects:
        sections.append(f"Projects:\n{truncate(evidence.projects)}")
    if include_technologies and evidence.technologies:
        sections.append(f"Technologies:\n{', '.join(evidence.normalized_technologies())}")
    if evidence.notes:
        sections.append(f"Notes:\n{truncate(evidence.notes)}")
    sections.append(f"Goals:\n{format_goals(evidence.goals)}")
    return "\n\n".join(sections)


def render_shape_example(example: dict[str, Any]) -> str:
    """Serialize an expected-output example; key order is preserved."""
    return json.dumps(example, indent=2, ensure_ascii=False)


def json_task_prompt(context: str, task_steps: list[str], example: dict[str, Any]) -> str:
    """User content for JSON-returning tasks: evidence, numbered task, shape."""
    steps = "\n".join(f"{i}) {step}" for i, step in enumerate(task_steps, start=1))
    return (
        f"{context}\n\n"
        f"Task:\n{steps}\n\n"
        f"Return JSON with EXACTLY this shape (keys + types):\n{render_shape_example(example)}"
    )
