"""Evidence bundle supplied by the caller."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class GoalProfile(BaseModel):
    """User's declared career goals."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    target_roles: list[str] = Field(default_factory=list)
    interests: list[str] = Field(default_factory=list)


class EvidenceBundle(BaseModel):
    """
    Read-only input for every task.

    ``None`` means the field was not supplied at all; an empty string means it
    was supplied but blank. Fingerprints keep the two apart.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    resume_text: str | None = None
    notes: str | None = None
    projects: str | None = None
    technologies: list[str] = Field(default_factory=list)
    goals: GoalProfile | None = None
    question: str | None = None
    context: str | None = None

    def normalized_technologies(self) -> list[str]:
        """Sorted, de-duplicated, case-folded technology names."""
        return sorted({t.strip().lower() for t in self.technologies if t and t.strip()})

    def free_text(self) -> str:
        """All free text lowered, for keyword checks."""
        parts = [self.resume_text, self.notes, self.projects]
        if self.goals is not None:
            parts.extend(self.goals.target_roles)
            parts.extend(self.goals.interests)
        return "\n".join(p for p in parts if p).lower()
