"""Advisor outputs: strategy pivots and competition timing. Advisory only."""

from enum import Enum, IntEnum

from pydantic import BaseModel, Field

from models.schemas.vacancy import VacancyRecord


class Impact(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Pivot(BaseModel):
    """A systemic pattern found in the application history."""
    type: str  # company_size, remote_policy, match_threshold, ...
    finding: str = ""
    recommendation: str = ""
    impact: Impact = Impact.MEDIUM
    confidence: Impact = Impact.MEDIUM


class StrategyRecommendation(BaseModel):
    pivots: list[Pivot] = []
    effectiveness: int = Field(0, ge=0, le=100)
    advice: list[str] = []
    applications_analyzed: int = 0


class CompetitionLevel(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2
    VERY_HIGH = 3


class TimingRecommendation(BaseModel):
    vacancy_id: str = ""
    vacancy_title: str = ""
    company: str = ""
    competition_level: CompetitionLevel = CompetitionLevel.MEDIUM
    applicant_volume: float = Field(0.0, ge=0, le=1)
    signals: list[str] = []
    recommended_delay_days: int = 0  # 0 = apply now
    recommendation: str = ""


class TimingOpportunity(BaseModel):
    vacancy: VacancyRecord
    competition_level: CompetitionLevel = CompetitionLevel.MEDIUM
    reason: str = ""
    score: int = Field(0, ge=0, le=100)
