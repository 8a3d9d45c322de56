"""Relevance filter configuration and per-rule explanation."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from models.schemas.enums import EngagementType, RemotePolicy, SeniorityLevel
from models.schemas.profile import CandidateProfile

DEFAULT_EXCLUDED_GEO = [
    "uk-only", "eu-only", "us-only", "au-only",
    "uk-based", "eu-based", "us-based", "au-based",
    "work-auth-required", "no-visa-sponsorship", "security-clearance-required",
]


def normalize_tag(tag: str) -> str:
    """"UK Only", "uk_only" and "UK-only" compare equal."""
    return "-".join(tag.lower().replace("_", " ").replace("-", " ").split())


class FilterConfig(BaseModel):
    """Hard criteria applied before scoring."""
    excluded_engagements: set[EngagementType] = {EngagementType.EMPLOYMENT, EngagementType.INSIDE_IR35}
    excluded_remote_policies: set[RemotePolicy] = {RemotePolicy.ON_SITE, RemotePolicy.HYBRID}
    excluded_geo_restrictions: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDED_GEO))
    excluded_companies: list[str] = []
    min_seniority: SeniorityLevel = SeniorityLevel.UNKNOWN
    remote_only: bool = False
    min_salary: Optional[float] = None

    @field_validator("excluded_geo_restrictions")
    @classmethod
    def normalize_geo(cls, value: list[str]) -> list[str]:
        return [normalize_tag(tag) for tag in value]

    @field_validator("min_seniority", mode="before")
    @classmethod
    def parse_seniority(cls, value):
        return SeniorityLevel.parse(value)

    @classmethod
    def from_profile(cls, profile: CandidateProfile, **overrides) -> "FilterConfig":
        """Default hard rules plus the candidate's own preferences."""
        prefs = profile.preferences
        values = dict(
            excluded_companies=list(prefs.exclude_companies),
            min_seniority=prefs.min_seniority,
            remote_only=prefs.remote_only,
            min_salary=prefs.min_salary or None,
        )
        values.update(overrides)
        return cls(**values)


class RuleOutcome(BaseModel):
    rule: str
    passed: bool
    reason: str = ""


class EligibilityResult(BaseModel):
    vacancy_id: str
    eligible: bool
    outcomes: list[RuleOutcome] = []

    @property
    def failed_rules(self) -> list[str]:
        return [o.rule for o in self.outcomes if not o.passed]
