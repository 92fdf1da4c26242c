"""Pydantic schemas for CareerForge data models."""

from typing import Any, Type

from careerforge.schemas.evidence import EvidenceBundle, GoalProfile
from careerforge.schemas.records import CachedResult, ResultOrigin
from careerforge.schemas.results import (
    CareerPathSuggestion,
    ChatAnswer,
    Insight,
    InsightsReport,
    LearningRecommendation,
    QuickStat,
    ResumeAnalysis,
    SkillGap,
    SkillGapAnalysis,
    SkillProgressReport,
    SkillScore,
    TaskShape,
)

__all__ = [
    # Inputs
    "EvidenceBundle",
    "GoalProfile",
    # Task shapes
    "TaskShape",
    "ChatAnswer",
    "ResumeAnalysis",
    "InsightsReport",
    "QuickStat",
    "Insight",
    "SkillGap",
    "SkillGapAnalysis",
    "LearningRecommendation",
    "CareerPathSuggestion",
    "SkillProgressReport",
    "SkillScore",
    # Records
    "CachedResult",
    "ResultOrigin",
    # Utility functions
    "shape_json_schema",
]


def shape_json_schema(shape: Type[TaskShape]) -> dict[str, Any]:
    """
    JSON schema of a task shape as callers receive it (camelCase keys).

    The ``generatedAt`` stamp added to every response is not part of the
    shape and is not listed.
    """
    return shape.model_json_schema(by_alias=True)
