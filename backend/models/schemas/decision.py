"""Decision engine output and the enforcement-cache entry."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from models.schemas.common import as_utc, utcnow
from models.schemas.enums import SkillCategory


class Verdict(str, Enum):
    APPLY_NOW = "apply_now"
    LEARN_THEN_APPLY = "learn_then_apply"
    SKIP = "skip"


class SkillGap(BaseModel):
    """A vacancy skill where the candidate sits below the expected level."""
    skill: str
    category: SkillCategory = SkillCategory.UNKNOWN
    current_level: int = Field(0, ge=0, le=5)
    target_level: int = Field(1, ge=1, le=5)
    hours_to_learn: float = Field(0.0, ge=0)
    is_required: bool = True
    is_critical: bool = False  # required and completely absent from the profile

    @model_validator(mode="after")
    def check_levels(self) -> "SkillGap":
        if self.current_level > self.target_level:
            raise ValueError(
                f"Gap for {self.skill!r}: current level {self.current_level} "
                f"exceeds target {self.target_level}"
            )
        return self


class ApplicationDecision(BaseModel):
    """Single actionable verdict for one vacancy."""
    vacancy_id: str
    verdict: Verdict = Verdict.SKIP
    match_score: float = Field(0.0, ge=0, le=100)
    readiness_score: float = Field(0.0, ge=0, le=100)
    confidence: int = Field(0, ge=0, le=100)
    skill_gaps: list[SkillGap] = []
    quick_wins: list[str] = []
    estimated_learning_hours: float = 0.0
    apply_by: Optional[datetime] = None
    reasoning: list[str] = []  # 1-3 dominant factors
    critical_missing_skills: list[str] = []
    advisory_notes: list[str] = []  # timing context, never changes the verdict
    decided_at: datetime = Field(default_factory=utcnow)

    utc_dates = field_validator("apply_by", "decided_at")(as_utc)

    @model_validator(mode="after")
    def check_verdict_consistency(self) -> "ApplicationDecision":
        gap_skills = {g.skill for g in self.skill_gaps}
        for field in ("quick_wins", "critical_missing_skills"):
            unknown = [s for s in getattr(self, field) if s not in gap_skills]
            if unknown:
                raise ValueError(f"{field} must name listed skill gaps, got {unknown}")
        if self.verdict == Verdict.SKIP and self.apply_by is not None:
            raise ValueError("A skipped vacancy has no apply-by date")
        if self.verdict == Verdict.APPLY_NOW and self.estimated_learning_hours != 0:
            raise ValueError("An apply-now decision needs no learning hours")
        return self

    @property
    def summary(self) -> str:
        return " ".join(self.reasoning)


class DecisionCacheEntry(BaseModel):
    vacancy_id: str
    decision: ApplicationDecision
    recorded_at: datetime = Field(default_factory=utcnow)

    utc_recorded_at = field_validator("recorded_at")(as_utc)
