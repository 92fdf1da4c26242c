"""Deterministic, network-free fallback results built from local evidence.

Used when a provider answer cannot be validated. Every function here is pure
and returns an instance of the same task shape the validator produces.
"""

import re
from dataclasses import dataclass

from careerforge.schemas.evidence import EvidenceBundle
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
)

# Scoring constants
MATCH_BONUS = 8
MAX_MATCH_BONUS = 30
KEYWORD_BONUS = 10
MIN_PERCENTAGE = 10
MAX_PERCENTAGE = 95
MIN_CATEGORY_SCORE = 50
STRONG_CATEGORY_SCORE = 60
GENERIC_CATEGORY = "General Software Engineering"
GENERIC_SCORE = 40


@dataclass(frozen=True)
class SkillCategory:
    name: str
    base: int
    needles: tuple[str, ...]
    keywords: tuple[str, ...]
    career_path: str
    gap_reason: str
    learning_steps: tuple[str, ...]


SKILL_CATEGORIES: tuple[SkillCategory, ...] = (
    SkillCategory(
        name="Frontend Development",
        base=45,
        needles=("react", "vue", "angular", "svelte", "next.js", "nuxt", "html", "css", "sass", "tailwind", "redux", "vite"),
        keywords=("frontend", "front-end", "user interface", "responsive", "accessibility"),
        career_path="Frontend Engineer",
        gap_reason="Most product roles expect a working UI layer in portfolio projects.",
        learning_steps=("Build a responsive UI with a component framework", "Add client-side state management", "Audit accessibility"),
    ),
    SkillCategory(
        name="Backend Development",
        base=45,
        needles=("node.js", "node", "express", "nestjs", "django", "flask", "fastapi", "spring", "rails", "laravel", "graphql", "rest"),
        keywords=("backend", "back-end", "api", "server-side", "microservice"),
        career_path="Backend Engineer",
        gap_reason="APIs and server-side logic are core to most engineering roles.",
        learning_steps=("Design a REST API with authentication", "Add input validation and error handling", "Write integration tests"),
    ),
    SkillCategory(
        name="Databases",
        base=35,
        needles=("mongodb", "mongoose", "postgresql", "postgres", "mysql", "sqlite", "redis", "sql", "dynamodb", "prisma", "firebase"),
        keywords=("database", "schema design", "query", "indexing"),
        career_path="Data Engineer",
        gap_reason="Data modelling and query skills are screened in most technical interviews.",
        learning_steps=("Model a relational schema", "Write and index non-trivial queries", "Compare a document store with SQL"),
    ),
    SkillCategory(
        name="Cloud & DevOps",
        base=30,
        needles=("aws", "azure", "gcp", "docker", "kubernetes", "terraform", "github actions", "jenkins", "vercel", "netlify", "heroku", "nginx", "linux"),
        keywords=("cloud", "devops", "ci/cd", "deploy", "infrastructure"),
        career_path="DevOps Engineer",
        gap_reason="Deployment, scaling and reliability experience is expected beyond junior level.",
        learning_steps=("Containerize a project", "Set up CI/CD with automated tests", "Deploy to a cloud provider with monitoring"),
    ),
    SkillCategory(
        name="System Design",
        base=30,
        needles=("kafka", "rabbitmq", "microservices", "grpc", "elasticsearch", "websockets"),
        keywords=("system design", "scalab", "architecture", "distributed", "high availability"),
        career_path="Software Architect",
        gap_reason="Common requirement for senior roles and system design interviews.",
        learning_steps=("Learn core scaling concepts", "Design three common systems", "Write up the trade-offs"),
    ),
    SkillCategory(
        name="Problem Solving",
        base=40,
        needles=("python", "java", "c++", "c", "go", "rust", "typescript", "javascript", "algorithms"),
        keywords=("algorithm", "data structure", "leetcode", "competitive programming", "optimiz"),
        career_path="Software Engineer",
        gap_reason="Coding interviews test algorithms and data structures directly.",
        learning_steps=("Practice core data structures", "Solve two problems a week", "Explain complexity trade-offs aloud"),
    ),
    SkillCategory(
        name="Communication & Collaboration",
        base=35,
        needles=("git", "github", "gitlab", "jira", "figma", "confluence", "agile", "scrum"),
        keywords=("team", "mentor", "lead", "collaborat", "present", "stakeholder"),
        career_path="Engineering Lead",
        gap_reason="Evidence of teamwork and communication separates otherwise similar candidates.",
        learning_steps=("Document a project decision record", "Contribute to a team or open-source repo", "Present a project demo"),
    ),
)

_CATEGORIES_BY_NAME = {c.name: c for c in SKILL_CATEGORIES}

RESUME_SECTIONS = ("experience", "education", "skills", "projects", "summary")


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _technology_matches(technologies: list[str], needles: tuple[str, ...]) -> int:
    """Count technologies matching any needle, exactly or as a whole token."""
    count = 0
    for tech in technologies:
        tokens = set(re.split(r"[\s/,]+", tech))
        if tech in needles or tokens.intersection(needles):
            count += 1
    return count


def _has_keyword(text: str, keywords: tuple[str, ...]) -> bool:
    return any(re.search(rf"\b{re.escape(keyword)}", text) for keyword in keywords)


def score_category(category: SkillCategory, technologies: list[str], text: str) -> int:
    """Base score plus capped technology bonus plus keyword bonus, clamped."""
    matches = _technology_matches(technologies, category.needles)
    score = category.base + min(matches * MATCH_BONUS, MAX_MATCH_BONUS)
    if _has_keyword(text, category.keywords):
        score += KEYWORD_BONUS
    return _clamp(score, MIN_PERCENTAGE, MAX_PERCENTAGE)


def estimate_skill_categories(evidence: EvidenceBundle) -> list[SkillScore]:
    """
    Score every category and keep those at or above the threshold.

    Never empty: with no qualifying category a single generic one is returned.
    Ordered by percentage descending, then skill name.
    """
    technologies = evidence.normalized_technologies()
    text = evidence.free_text()

    scores = []
    for category in SKILL_CATEGORIES:
        score = score_category(category, technologies, text)
        if score >= MIN_CATEGORY_SCORE:
            scores.append(SkillScore(skill=category.name, percentage=score))

    if not scores:
        return [SkillScore(skill=GENERIC_CATEGORY, percentage=GENERIC_SCORE)]
    return sorted(scores, key=lambda s: (-s.percentage, s.skill))


def fallback_skill_progress(evidence: EvidenceBundle) -> SkillProgressReport:
    return SkillProgressReport(skills=estimate_skill_categories(evidence))


def _career_paths(evidence: EvidenceBundle, scores: list[SkillScore]) -> list[str]:
    if evidence.goals and evidence.goals.target_roles:
        return list(evidence.goals.target_roles)

    names = {s.skill for s in scores}
    paths = []
    if {"Frontend Development", "Backend Development"} <= names:
        paths.append("Full Stack Engineer")
    for score in scores:
        category = _CATEGORIES_BY_NAME.get(score.skill)
        if category and category.career_path not in paths:
            paths.append(category.career_path)
    return paths[:3] or ["Software Engineer"]


def _weak_categories(scores: list[SkillScore]) -> list[tuple[SkillCategory, int | None]]:
    """Categories absent or below the strong threshold, in declaration order."""
    by_name = {s.skill: s.percentage for s in scores}
    weak = []
    for category in SKILL_CATEGORIES:
        percentage = by_name.get(category.name)
        if percentage is None or percentage < STRONG_CATEGORY_SCORE:
            weak.append((category, percentage))
    return weak


def fallback_resume_analysis(evidence: EvidenceBundle) -> ResumeAnalysis:
    """Score resume structure, technology breadth and goal alignment."""
    resume = (evidence.resume_text or "").lower()
    technologies = evidence.normalized_technologies()
    scores = estimate_skill_categories(evidence)

    sections_found = [s for s in RESUME_SECTIONS if re.search(rf"\b{s}\b", resume)]
    word_count = len(resume.split())
    has_goals = bool(evidence.goals and evidence.goals.target_roles)

    score = 30 + min(len(sections_found) * 8, 40) + min(len(technologies) * 3, 15)
    if word_count >= 400:
        score += 15
    elif word_count >= 150:
        score += 10
    if has_goals:
        score += 5
    if not resume:
        score = MIN_PERCENTAGE
    score = _clamp(score, 0, 100)

    strengths = [s.skill for s in scores if s.percentage >= STRONG_CATEGORY_SCORE]
    if len(sections_found) >= 3:
        strengths.append("Clear resume structure")

    missing_sections = [s for s in RESUME_SECTIONS if s not in sections_found]
    gaps = [f"No {section} section found" for section in missing_sections]
    gaps.extend(f"Limited evidence of {category.name}" for category, _ in _weak_categories(scores)[:3])

    recommendations = [f"Add a {section} section" for section in missing_sections]
    recommendations.extend(
        f"Build a project demonstrating {category.name}" for category, _ in _weak_categories(scores)[:2]
    )
    if not has_goals:
        recommendations.append("Set target roles so feedback can be tailored")

    return ResumeAnalysis(
        score=score,
        summary=(
            f"Heuristic review covering {len(sections_found)} resume sections "
            f"and {len(technologies)} declared technologies."
        ),
        strengths=strengths,
        gaps=gaps,
        recommendations=recommendations,
        career_paths=_career_paths(evidence, scores),
        next_steps=recommendations[:3],
        explanation=(
            "Generated locally because the AI response could not be validated. "
            "The score reflects resume structure, length, technology breadth and goal alignment."
        ),
    )


def fallback_insights(evidence: EvidenceBundle) -> InsightsReport:
    """Skill gap analysis and roadmap derived from category scores."""
    scores = estimate_skill_categories(evidence)
    strengths = [s.skill for s in scores if s.percentage >= STRONG_CATEGORY_SCORE]
    weak = _weak_categories(scores)[:4]
    target_roles = list(evidence.goals.target_roles) if evidence.goals else []
    interests = list(evidence.goals.interests) if evidence.goals else []

    gaps = [
        SkillGap(
            skill=category.name,
            priority="high" if percentage is None else "medium",
            reason=category.gap_reason,
        )
        for category, percentage in weak
    ]
    learning = [
        LearningRecommendation(
            title=f"{category.name} Fundamentals",
            why=category.gap_reason,
            steps=list(category.learning_steps),
            timeframe_weeks=4 if percentage is None else 6,
        )
        for category, percentage in weak[:3]
    ]
    paths = [
        CareerPathSuggestion(
            title=path,
            why=f"Matches your evidence in {', '.join(strengths[:2]) or 'your current projects'}.",
            next_steps=[step for rec in learning[:1] for step in rec.steps[:2]] or ["Ship one more portfolio project"],
        )
        for path in _career_paths(evidence, scores)[:3]
    ]

    insights = []
    if gaps:
        insights.append(Insight(
            kind="skill_gap",
            title="Skill Gap Analysis",
            description=f"Focus on {gaps[0].skill} to round out your profile.",
            action="View detailed analysis",
            type="recommendation",
        ))
    insights.append(Insight(
        kind="career_path",
        title="Career Path Suggestion",
        description=f"Your evidence fits {paths[0].title} roles.",
        action="Explore career paths",
        type="insight",
    ))
    if learning:
        insights.append(Insight(
            kind="learning",
            title="Learning Recommendation",
            description=f"Start with {learning[0].title}.",
            action="Start learning path",
            type="recommendation",
        ))

    return InsightsReport(
        quick_stats=[
            QuickStat(label="Skills Analyzed", value=len(evidence.normalized_technologies())),
            QuickStat(label="Strengths", value=len(strengths)),
            QuickStat(label="Recommendations", value=len(learning)),
            QuickStat(label="Goals Tracked", value=len(target_roles) + len(interests)),
        ],
        insights=insights,
        skill_gap_analysis=SkillGapAnalysis(target_roles=target_roles, strengths=strengths, gaps=gaps),
        learning_recommendations=learning,
        career_path_suggestions=paths,
    )


def fallback_chat_answer(evidence: EvidenceBundle) -> ChatAnswer:
    """Fixed explanatory answer naming the evidence considered."""
    scores = estimate_skill_categories(evidence)
    top = ", ".join(s.skill for s in scores[:3])
    return ChatAnswer(
        answer=(
            "I couldn't generate a tailored answer right now. "
            f"Based on your saved evidence, your strongest areas are: {top}.\n"
            "- Try asking again in a moment\n"
            "- Keep your resume, projects and goals up to date for better guidance"
        )
    )
