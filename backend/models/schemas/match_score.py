"""Scoring engine output: seven-factor breakdown, match score and competitiveness."""

from enum import Enum

from pydantic import BaseModel, Field


class RecommendedAction(str, Enum):
    """Score-band action. Coarser than the decision engine's verdict."""
    APPLY = "apply"
    PREPARE_AND_APPLY = "prepare_and_apply"
    SKILL_UP_FIRST = "skill_up_first"
    SKIP = "skip"

    @classmethod
    def for_score(cls, overall: float) -> "RecommendedAction":
        if overall >= 70:
            return cls.APPLY
        if overall >= 50:
            return cls.PREPARE_AND_APPLY
        if overall >= 30:
            return cls.SKILL_UP_FIRST
        return cls.SKIP


class Tier(str, Enum):
    TOP_CANDIDATE = "top_candidate"
    STRONG_CONTENDER = "strong_contender"
    COMPETITIVE = "competitive"
    AVERAGE = "average"
    LONG_SHOT = "long_shot"

    @classmethod
    def for_score(cls, score: float) -> "Tier":
        if score >= 85:
            return cls.TOP_CANDIDATE
        if score >= 70:
            return cls.STRONG_CONTENDER
        if score >= 55:
            return cls.COMPETITIVE
        if score >= 40:
            return cls.AVERAGE
        return cls.LONG_SHOT

    @property
    def rank(self) -> int:
        """0 for LONG_SHOT up to 4 for TOP_CANDIDATE."""
        return _TIER_RANK[self]


_TIER_RANK = {
    Tier.LONG_SHOT: 0,
    Tier.AVERAGE: 1,
    Tier.COMPETITIVE: 2,
    Tier.STRONG_CONTENDER: 3,
    Tier.TOP_CANDIDATE: 4,
}


class FactorBreakdown(BaseModel):
    """The seven scoring factors, each 0-100."""
    skill_depth: float = Field(0.0, ge=0, le=100)
    experience_relevance: float = Field(0.0, ge=0, le=100)
    seniority_fit: float = Field(0.0, ge=0, le=100)
    salary_positioning: float = Field(0.0, ge=0, le=100)
    freshness: float = Field(0.0, ge=0, le=100)
    market_competition: float = Field(0.0, ge=0, le=100)
    platform_response: float = Field(0.0, ge=0, le=100)


class MatchScore(BaseModel):
    """Structured output of the scoring engine for one (profile, vacancy) pair."""
    vacancy_id: str = ""
    overall: float = Field(0.0, ge=0, le=100)
    breakdown: FactorBreakdown = FactorBreakdown()
    matching_skills: list[str] = []
    missing_skills: list[str] = []  # required skills absent from the profile
    bonus_skills: list[str] = []  # same category as the vacancy's skills, not listed
    recommended_action: RecommendedAction = RecommendedAction.SKIP
    confidence: float = Field(0.1, ge=0, le=1)  # data completeness of both sides
    estimated_weeks_to_ready: int = 0
    strengths: list[str] = []
    risks: list[str] = []
    degraded: bool = False  # vacancy was malformed, worst-case score returned


class CompetitivenessAssessment(BaseModel):
    vacancy_id: str = ""
    score: float = Field(0.0, ge=0, le=100)
    tier: Tier = Tier.LONG_SHOT
    percentile: float = Field(100.0, ge=0, le=100)  # "top N%" of the applicant pool
    response_probability: float = Field(0.0, ge=0, le=100)
    breakdown: FactorBreakdown = FactorBreakdown()
    strengths: list[str] = []
    weaknesses: list[str] = []
    tips: list[str] = []


class CompetitivenessReport(BaseModel):
    """Ranked assessments across a batch of vacancies."""
    assessments: list[CompetitivenessAssessment] = []
    total_vacancies: int = 0
    average_score: float = 0.0
    tier_counts: dict[str, int] = {}
    top_strengths: list[str] = []
    most_common_weaknesses: list[str] = []
    overall_verdict: str = ""
