"""Candidate profile contract, as exported by the profile store."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from models.schemas.common import as_utc, utcnow
from models.schemas.enums import SeniorityLevel, SkillCategory


class SkillEntry(BaseModel):
    """A single self-assessed skill."""
    name: str = Field(..., min_length=1)
    category: SkillCategory = SkillCategory.UNKNOWN
    proficiency: int = Field(3, ge=1, le=5)  # 1 beginner .. 5 expert
    years_experience: float = Field(0.0, ge=0)
    last_used: Optional[datetime] = None

    utc_last_used = field_validator("last_used")(as_utc)


class Experience(BaseModel):
    company: str = ""
    role: str = ""
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None  # None while current
    tech_stack: list[str] = []
    description: str = ""

    utc_dates = field_validator("start_date", "end_date")(as_utc)

    def duration_years(self, now: Optional[datetime] = None) -> float:
        if self.start_date is None:
            return 0.0
        end = self.end_date or now or utcnow()
        return max(0.0, (end - self.start_date).days / 365.25)


class PersonalInfo(BaseModel):
    name: str = ""
    title: str = ""
    location: str = ""
    email: str = ""
    summary: str = ""
    target_roles: list[str] = []


class Preferences(BaseModel):
    min_salary: float = Field(0.0, ge=0)
    target_salary: float = Field(0.0, ge=0)
    remote_only: bool = True
    target_regions: list[str] = []
    min_seniority: SeniorityLevel = SeniorityLevel.UNKNOWN
    exclude_companies: list[str] = []

    @field_validator("min_seniority", mode="before")
    @classmethod
    def parse_seniority(cls, value):
        return SeniorityLevel.parse(value)


class CandidateProfile(BaseModel):
    """Everything the matching core knows about the candidate.

    Skill names must be unique after alias resolution, so "K8s" and
    "Kubernetes" cannot both be listed.
    """
    personal: PersonalInfo = PersonalInfo()
    skills: list[SkillEntry] = []
    experiences: list[Experience] = []
    preferences: Preferences = Preferences()

    @model_validator(mode="after")
    def check_unique_skill_names(self) -> "CandidateProfile":
        from services.skill_vocabulary import canonical_skill

        seen: dict[str, str] = {}
        for skill in self.skills:
            key = canonical_skill(skill.name)
            if key in seen:
                raise ValueError(
                    f"Duplicate skill in profile: {skill.name!r} is the same skill as {seen[key]!r}"
                )
            seen[key] = skill.name
        return self

    def total_experience_years(self, now: Optional[datetime] = None) -> float:
        return sum(exp.duration_years(now) for exp in self.experiences)
