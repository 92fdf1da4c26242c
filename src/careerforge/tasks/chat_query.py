"""Free-form career question answering."""

from careerforge.exceptions import ValidationError, ValidationReason
from careerforge.heuristics import fallback_chat_answer
from careerforge.prompts import build_evidence_context
from careerforge.schemas.evidence import EvidenceBundle
from careerforge.schemas.results import ChatAnswer
from careerforge.tasks.base import BaseTask, goals_text
from careerforge.utils.text import normalize_answer
from careerforge.validation import validate_shape


class ChatQueryTask(BaseTask):
    """Answers a question in plain text, grounded in supplied context."""

    name = "chat_query"
    prompt_version = "chat-v1"
    shape = ChatAnswer
    default_temperature = 0.3

    def validate_evidence(self, evidence: EvidenceBundle) -> None:
        if not evidence.question or not evidence.question.strip():
            raise ValidationError(
                "Chat query: question is empty",
                reason=ValidationReason.MISSING_FIELD,
                field="question",
            )

    def get_system_prompt(self) -> str:
        return (
            "You are an assistant that analyzes a user's resume, notes, and projects and provides "
            "concise, actionable guidance. Always include a short explanation for your recommendations. "
            "Answer in plain text; use '- ' for list items and no markdown headings."
        )

    def _context(self, evidence: EvidenceBundle) -> str | None:
        if evidence.context:
            return evidence.context
        if evidence.resume_text or evidence.notes or evidence.projects:
            return build_evidence_context(evidence)
        return None

    def build_user_prompt(self, evidence: EvidenceBundle) -> str:
        context = self._context(evidence)
        if context:
            return f"Context:\n{context}\n\nUser question:\n{evidence.question}"
        return evidence.question or ""

    def fingerprint_fields(self, evidence: EvidenceBundle) -> list[tuple[str, str | None]]:
        return [
            ("question", evidence.question),
            ("context", evidence.context),
            ("resume", evidence.resume_text),
            ("notes", evidence.notes),
            ("projects", evidence.projects),
            ("goals", goals_text(evidence)),
        ]

    def parse_response(self, response: str) -> ChatAnswer:
        """Plain text answers are normalized, not JSON-extracted."""
        return validate_shape({"answer": normalize_answer(response)}, ChatAnswer)

    def fallback(self, evidence: EvidenceBundle) -> ChatAnswer:
        return fallback_chat_answer(evidence)
