from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from models.schemas.eligibility import FilterConfig
from models.schemas.history import InterviewFeedback, JobApplication
from models.schemas.profile import CandidateProfile
from models.schemas.stop_condition import StudiedItem
from models.schemas.vacancy import VacancyRecord


class ScoreRequest(BaseModel):
    profile: CandidateProfile
    vacancy: VacancyRecord
    now: Optional[datetime] = Field(None, description="Evaluation time, defaults to the current UTC time")


class BatchAssessRequest(BaseModel):
    profile: CandidateProfile
    vacancies: list[VacancyRecord] = Field(..., max_length=500)
    now: Optional[datetime] = None


class DecideRequest(BaseModel):
    profile: CandidateProfile
    vacancies: list[VacancyRecord] = Field(..., min_length=1, max_length=500)
    filter: Optional[FilterConfig] = Field(None, description="Hard rules; derived from the profile when omitted")
    feedback: list[InterviewFeedback] = []
    now: Optional[datetime] = None


class StopCheckRequest(BaseModel):
    current_readiness: float = Field(..., ge=0, le=100)
    learning_started_at: datetime
    vacancy: VacancyRecord
    studied_items: list[StudiedItem] = []
    remaining_learning_hours: Optional[float] = Field(None, ge=0)
    now: Optional[datetime] = None


class StrategyRequest(BaseModel):
    applications: list[JobApplication] = []
    feedback: list[InterviewFeedback] = []


class TimingRequest(BaseModel):
    vacancy: VacancyRecord
    recent: list[VacancyRecord] = Field([], description="Recently posted vacancies for the saturation check")
    now: Optional[datetime] = None


class TimingWindowsRequest(BaseModel):
    vacancies: list[VacancyRecord] = Field(..., max_length=500)
    now: Optional[datetime] = None
