"""Task shapes: the structured output each task must produce.

Both the response validator and the heuristic fallback build these models,
so provider-derived and heuristic-derived results are interchangeable.
Primitive fields are strict: a model answering ``"85"`` for a number fails
validation instead of being silently coerced.
"""

import math
from typing import Annotated, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, StrictStr
from pydantic.alias_generators import to_camel


def _whole_number(value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("must be a number")
    if not math.isfinite(value):
        raise ValueError("must be a finite number")
    return int(round(value))


NonEmptyStr = Annotated[StrictStr, Field(min_length=1)]
WholeNumber = Annotated[int, BeforeValidator(_whole_number)]
PositiveWholeNumber = Annotated[int, BeforeValidator(_whole_number), Field(gt=0)]


class TaskShape(BaseModel):
    """Base for task output models (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# Chat query

class ChatAnswer(TaskShape):
    """Plain-text answer to a free-form question."""

    answer: NonEmptyStr


# Resume analysis

class ResumeAnalysis(TaskShape):
    """Scored resume review."""

    score: WholeNumber = Field(ge=0, le=100)
    summary: NonEmptyStr
    strengths: list[StrictStr] = Field(default_factory=list)
    gaps: list[StrictStr] = Field(default_factory=list)
    recommendations: list[StrictStr] = Field(default_factory=list)
    career_paths: list[StrictStr] = Field(default_factory=list)
    next_steps: list[StrictStr] = Field(default_factory=list)
    explanation: NonEmptyStr


# Full insights

class QuickStat(TaskShape):
    label: NonEmptyStr
    value: WholeNumber


class Insight(TaskShape):
    kind: Literal["skill_gap", "career_path", "learning"]
    title: NonEmptyStr
    description: NonEmptyStr
    action: NonEmptyStr
    type: Literal["recommendation", "insight"]


class SkillGap(TaskShape):
    skill: NonEmptyStr
    priority: Literal["high", "medium", "low"]
    reason: NonEmptyStr
    evidence: StrictStr | None = None


class SkillGapAnalysis(TaskShape):
    target_roles: list[StrictStr] = Field(default_factory=list)
    strengths: list[StrictStr] = Field(default_factory=list)
    gaps: list[SkillGap] = Field(default_factory=list)


class LearningRecommendation(TaskShape):
    title: NonEmptyStr
    why: NonEmptyStr
    steps: list[StrictStr] = Field(default_factory=list)
    timeframe_weeks: PositiveWholeNumber | None = None


class CareerPathSuggestion(TaskShape):
    title: NonEmptyStr
    why: NonEmptyStr
    next_steps: list[StrictStr] = Field(default_factory=list)


class InsightsReport(TaskShape):
    """Skill gap analysis, learning roadmap and career paths."""

    quick_stats: list[QuickStat] = Field(default_factory=list)
    insights: list[Insight] = Field(default_factory=list)
    skill_gap_analysis: SkillGapAnalysis = Field(default_factory=SkillGapAnalysis)
    learning_recommendations: list[LearningRecommendation] = Field(default_factory=list)
    career_path_suggestions: list[CareerPathSuggestion] = Field(default_factory=list)


# Skill progress

class SkillScore(TaskShape):
    skill: NonEmptyStr
    percentage: WholeNumber = Field(ge=0, le=100)


class SkillProgressReport(TaskShape):
    """Estimated proficiency per skill category."""

    skills: list[SkillScore] = Field(default_factory=list)

    def sorted(self) -> "SkillProgressReport":
        """Copy with skills ordered by percentage desc, then skill name."""
        ordered = sorted(self.skills, key=lambda s: (-s.percentage, s.skill))
        return SkillProgressReport(skills=ordered)
