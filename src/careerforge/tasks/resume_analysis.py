"""Resume scoring and review."""

from careerforge.exceptions import ValidationError, ValidationReason
from careerforge.heuristics import fallback_resume_analysis
from careerforge.prompts import build_evidence_context, render_shape_example
from careerforge.schemas.evidence import EvidenceBundle
from careerforge.schemas.results import ResumeAnalysis
from careerforge.tasks.base import BaseTask, goals_text

ANALYSIS_SHAPE_EXAMPLE = {
    "score": 72,
    "summary": "One-sentence overall assessment.",
    "strengths": ["Concrete strength backed by the resume"],
    "gaps": ["Missing skill or evidence"],
    "recommendations": ["Specific improvement"],
    "careerPaths": ["Backend Engineer"],
    "nextSteps": ["Actionable next step"],
    "explanation": "Short explanation of the score.",
}


class ResumeAnalysisTask(BaseTask):
    """Scores a resume 0-100 and explains the score."""

    name = "resume_analysis"
    prompt_version = "analysis-v1"
    shape = ResumeAnalysis

    def validate_evidence(self, evidence: EvidenceBundle) -> None:
        if not evidence.resume_text or not evidence.resume_text.strip():
            raise ValidationError(
                "Resume analysis: resume text is empty",
                reason=ValidationReason.MISSING_FIELD,
                field="resumeText",
            )

    def get_system_prompt(self) -> str:
        return (
            "You are an expert career coach and resume reviewer. "
            "Analyze the provided resume and related context. "
            "Return ONLY valid JSON with the following keys: score (0-100), summary, strengths (array), "
            "gaps (array), recommendations (array), careerPaths (array), nextSteps (array), "
            "explanation (short explanation of the score)."
        )

    def build_user_prompt(self, evidence: EvidenceBundle) -> str:
        return (
            f"{build_evidence_context(evidence)}\n\n"
            f"Return JSON with EXACTLY this shape (keys + types):\n"
            f"{render_shape_example(ANALYSIS_SHAPE_EXAMPLE)}"
        )

    def fingerprint_fields(self, evidence: EvidenceBundle) -> list[tuple[str, str | None]]:
        return [
            ("resume", evidence.resume_text),
            ("notes", evidence.notes),
            ("projects", evidence.projects),
            ("goals", goals_text(evidence)),
        ]

    def fallback(self, evidence: EvidenceBundle) -> ResumeAnalysis:
        return fallback_resume_analysis(evidence)
