"""Unit tests for evidence, result and record schemas."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from careerforge.schemas import (
    CachedResult,
    ChatAnswer,
    EvidenceBundle,
    InsightsReport,
    ResultOrigin,
    SkillProgressReport,
    SkillScore,
    shape_json_schema,
)


class TestEvidenceBundle:
    """Tests for EvidenceBundle."""

    def test_accepts_camel_case_payload(self):
        evidence = EvidenceBundle.model_validate({
            "resumeText": "Resume",
            "goals": {"targetRoles": ["Backend Engineer"], "interests": []},
        })
        assert evidence.resume_text == "Resume"
        assert evidence.goals.target_roles == ["Backend Engineer"]

    def test_is_frozen(self):
        evidence = EvidenceBundle(resume_text="x")
        with pytest.raises(PydanticValidationError):
            evidence.resume_text = "y"

    def test_normalized_technologies(self):
        evidence = EvidenceBundle(technologies=["React", " react ", "Node.js", ""])
        assert evidence.normalized_technologies() == ["node.js", "react"]

    def test_free_text_includes_goals(self):
        evidence = EvidenceBundle.model_validate({
            "resumeText": "Built APIs",
            "goals": {"targetRoles": ["DevOps Engineer"], "interests": ["Cloud"]},
        })
        text = evidence.free_text()
        assert "built apis" in text
        assert "devops engineer" in text
        assert "cloud" in text


class TestSkillProgressReport:
    """Tests for SkillProgressReport ordering."""

    def test_sorted_by_percentage_then_name(self):
        report = SkillProgressReport(skills=[
            SkillScore(skill="Frontend Development", percentage=53),
            SkillScore(skill="Databases", percentage=70),
            SkillScore(skill="Backend Development", percentage=53),
        ])
        assert [s.skill for s in report.sorted().skills] == [
            "Databases",
            "Backend Development",
            "Frontend Development",
        ]


class TestCachedResult:
    """Tests for CachedResult."""

    def test_response_adds_generated_at(self):
        record = CachedResult(
            user_id="u1",
            task="chat_query",
            fingerprint="f" * 64,
            generated_at=datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
            origin=ResultOrigin.PROVIDER,
            provider="groq",
            model="llama-3.1-8b-instant",
            payload=ChatAnswer(answer="Hi").to_payload(),
        )
        assert record.response() == {"answer": "Hi", "generatedAt": "2026-01-02T03:04:05+00:00"}
        assert record.key == ("u1", "chat_query", "f" * 64)

    def test_json_round_trip_keeps_timestamp(self):
        record = CachedResult(
            user_id="u1",
            task="chat_query",
            fingerprint="a" * 64,
            origin=ResultOrigin.HEURISTIC,
            payload={"answer": "x"},
        )
        restored = CachedResult.model_validate_json(record.model_dump_json())
        assert restored == record


class TestShapeJsonSchema:
    """Tests for task shape schemas."""

    def test_skill_report_schema(self):
        schema = shape_json_schema(SkillProgressReport)
        assert schema["title"] == "SkillProgressReport"
        assert "skills" in schema["properties"]
        assert set(schema["$defs"]["SkillScore"]["required"]) == {"skill", "percentage"}

    def test_keys_are_camel_case(self):
        properties = shape_json_schema(InsightsReport)["properties"]
        assert "skillGapAnalysis" in properties
        assert "skill_gap_analysis" not in properties
