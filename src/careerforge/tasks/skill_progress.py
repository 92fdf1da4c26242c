"""Skill proficiency estimation."""

from careerforge.exceptions import ValidationError, ValidationReason
from careerforge.heuristics import SKILL_CATEGORIES, fallback_skill_progress
from careerforge.prompts import build_evidence_context, json_task_prompt
from careerforge.schemas.evidence import EvidenceBundle
from careerforge.schemas.results import SkillProgressReport, TaskShape
from careerforge.tasks.base import BaseTask, goals_text

SKILL_SHAPE_EXAMPLE = {
    "skills": [
        {"skill": "Frontend Development", "percentage": 70},
    ],
}


class SkillProgressTask(BaseTask):
    """
    Estimates a percentage per skill category.

    The cache key is built from content hashes only (resume, goals, projects,
    notes and the technology list); record timestamps never feed into it, so a save
    that changes nothing does not force recomputation.
    """

    name = "skill_progress"
    prompt_version = "skills-v1"
    shape = SkillProgressReport

    def get_system_prompt(self) -> str:
        return (
            "You are an expert technical career coach. Estimate the user's current proficiency "
            "per skill category from the evidence provided. Base every estimate on the evidence only. "
            "Return ONLY valid JSON. Do not include markdown or code fences."
        )

    def build_user_prompt(self, evidence: EvidenceBundle) -> str:
        categories = ", ".join(c.name for c in SKILL_CATEGORIES)
        steps = [
            f"Score 4-7 of these categories: {categories}.",
            "Use integer percentages between 0 and 100.",
            "Omit categories with no supporting evidence.",
        ]
        return json_task_prompt(
            build_evidence_context(evidence, include_technologies=True),
            steps,
            SKILL_SHAPE_EXAMPLE,
        )

    def fingerprint_fields(self, evidence: EvidenceBundle) -> list[tuple[str, str | None]]:
        return [
            ("resume", evidence.resume_text),
            ("goals", goals_text(evidence)),
            ("projects", evidence.projects),
            ("notes", evidence.notes),
        ]

    def finalize(self, result: TaskShape) -> SkillProgressReport:
        """Reject empty lists and order by percentage desc, then name."""
        if not result.skills:
            raise ValidationError(
                "SkillProgressReport has no skills",
                reason=ValidationReason.MISSING_FIELD,
                field="skills",
            )
        return result.sorted()

    def fallback(self, evidence: EvidenceBundle) -> SkillProgressReport:
        return fallback_skill_progress(evidence)
