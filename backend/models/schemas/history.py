"""Application history and interview outcomes fed back into the core."""

from datetime import datetime
from enum import IntEnum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from models.schemas.common import as_utc, utcnow


class ApplicationStatus(IntEnum):
    """Ordered pipeline stages. Statuses from VIEWED up count as a response."""
    PENDING = 0
    RESUME_READY = 1
    APPLIED = 2
    VIEWED = 3
    SCREENING = 4
    INTERVIEW = 5
    OFFER = 6
    REJECTED = 7
    WITHDRAWN = 8
    GHOSTED = 9
    EXPIRED = 10

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, str):
            key = value.strip().upper().replace("-", "_").replace(" ", "_")
            if key.isdigit():
                return cls(int(key))
            try:
                return cls[key]
            except KeyError:
                raise ValueError(f"Unknown application status: {value!r}")
        raise ValueError(f"Unknown application status: {value!r}")


class JobApplication(BaseModel):
    vacancy_id: str = ""
    company: str = ""
    vacancy_title: str = ""
    status: ApplicationStatus = ApplicationStatus.PENDING
    match_score: float = Field(0.0, ge=0, le=100)
    notes: str = ""  # free text; "remote" / "onsite" tags are read by the advisor
    created_at: datetime = Field(default_factory=utcnow)
    applied_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None

    utc_dates = field_validator("created_at", "applied_at", "responded_at")(as_utc)

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, value):
        return ApplicationStatus.parse(value)


class InterviewFeedback(BaseModel):
    company: str = ""
    vacancy_id: str = ""
    round: str = ""  # Recruiter, Technical, SystemDesign, Behavioral, Final
    outcome: str = ""  # Passed, Rejected, Failed, Ghosted, Withdrew
    feedback: str = ""
    weak_areas: list[str] = []
    strong_areas: list[str] = []
    difficulty: int = Field(5, ge=1, le=10)
    interview_date: Optional[datetime] = None

    utc_interview_date = field_validator("interview_date")(as_utc)

    @property
    def is_failure(self) -> bool:
        outcome = self.outcome.lower()
        return "reject" in outcome or "fail" in outcome
