"""Skill gap analysis, learning roadmap and career path suggestions."""

from careerforge.exceptions import ValidationError, ValidationReason
from careerforge.heuristics import fallback_insights
from careerforge.prompts import build_evidence_context, json_task_prompt
from careerforge.schemas.evidence import EvidenceBundle
from careerforge.schemas.results import InsightsReport
from careerforge.tasks.base import BaseTask, goals_text

INSIGHTS_SHAPE_EXAMPLE = {
    "quickStats": [{"label": "Skills Analyzed", "value": 0}],
    "insights": [
        {
            "kind": "skill_gap",
            "title": "Skill Gap Analysis",
            "description": "...",
            "action": "View detailed analysis",
            "type": "recommendation",
        }
    ],
    "skillGapAnalysis": {
        "targetRoles": ["..."],
        "strengths": ["..."],
        "gaps": [
            {
                "skill": "...",
                "priority": "high",
                "reason": "...",
                "evidence": "(optional) short evidence from resume/projects/notes",
            }
        ],
    },
    "learningRecommendations": [
        {"title": "...", "why": "...", "steps": ["..."], "timeframeWeeks": 6}
    ],
    "careerPathSuggestions": [
        {"title": "...", "why": "...", "nextSteps": ["..."]}
    ],
}

INSIGHTS_STEPS = [
    "Do skill gap analysis relative to target roles (if provided).",
    "Provide a learning roadmap (practical, project-based).",
    "Suggest 2-3 career paths with concrete next steps.",
]


class InsightsTask(BaseTask):
    """Full insights report grounded only in the user's evidence."""

    name = "insights"
    prompt_version = "insights-v1"
    shape = InsightsReport

    def validate_evidence(self, evidence: EvidenceBundle) -> None:
        if not evidence.resume_text or not evidence.resume_text.strip():
            raise ValidationError(
                "Insights: resume text is empty",
                reason=ValidationReason.MISSING_FIELD,
                field="resumeText",
            )

    def get_system_prompt(self) -> str:
        return (
            "You are an expert career coach and learning path designer. "
            "You will produce a skill gap analysis, learning recommendations, and career path suggestions. "
            "Use ONLY the user's resume/notes/projects/goals as evidence; if something is missing, say so. "
            "Return ONLY valid JSON. Do not include markdown or code fences."
        )

    def build_user_prompt(self, evidence: EvidenceBundle) -> str:
        return json_task_prompt(build_evidence_context(evidence), INSIGHTS_STEPS, INSIGHTS_SHAPE_EXAMPLE)

    def fingerprint_fields(self, evidence: EvidenceBundle) -> list[tuple[str, str | None]]:
        return [
            ("resume", evidence.resume_text),
            ("notes", evidence.notes),
            ("projects", evidence.projects),
            ("goals", goals_text(evidence)),
        ]

    def fallback(self, evidence: EvidenceBundle) -> InsightsReport:
        return fallback_insights(evidence)
