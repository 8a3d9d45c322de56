"""Vacancy contract, as produced by the scrapers after the eligibility gate."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from models.schemas.common import as_utc
from models.schemas.enums import EngagementType, RemotePolicy, SeniorityLevel


class VacancyRecord(BaseModel):
    """A scraped job vacancy.

    ``id`` is composed of source platform + original id and is the key used by
    the decision cache.
    """
    id: str = Field(..., min_length=1)
    title: str = ""
    company: str = ""
    country: str = ""
    city: str = ""
    remote_policy: RemotePolicy = RemotePolicy.UNKNOWN
    engagement_type: EngagementType = EngagementType.UNKNOWN
    geo_restrictions: list[str] = []  # e.g. "UK-only", "EU-only"
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    salary_currency: str = "USD"
    seniority: SeniorityLevel = SeniorityLevel.UNKNOWN
    required_skills: list[str] = []
    preferred_skills: list[str] = []
    description: str = ""
    url: str = ""
    source_platform: str = ""  # djinni, dou, linkedin, ...
    posted_date: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    utc_dates = field_validator("posted_date", "expires_at")(as_utc)

    @field_validator("seniority", mode="before")
    @classmethod
    def parse_seniority(cls, value):
        return SeniorityLevel.parse(value)

    @model_validator(mode="after")
    def check_expiry_after_posting(self) -> "VacancyRecord":
        if self.posted_date and self.expires_at and self.expires_at < self.posted_date:
            raise ValueError(f"Vacancy {self.id} expires before it was posted")
        return self

    @property
    def is_malformed(self) -> bool:
        """Missing the fields scoring cannot work without."""
        return not self.title.strip() or not self.required_skills

    @property
    def offered_salary(self) -> Optional[float]:
        if self.salary_max is not None:
            return self.salary_max
        return self.salary_min

    def __str__(self) -> str:
        return f"[{self.source_platform}] {self.title} at {self.company}"
