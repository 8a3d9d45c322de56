"""Learning stop-condition contracts."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from models.schemas.common import as_utc


class StopSignal(str, Enum):
    READINESS_THRESHOLD_REACHED = "readiness_threshold_reached"
    DEADLINE_IMMINENT = "deadline_imminent"
    TIME_LIMIT_EXCEEDED = "time_limit_exceeded"
    DIMINISHING_RETURNS = "diminishing_returns"
    CORE_TOPICS_READY = "core_topics_ready"


class StopUrgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class StudiedItem(BaseModel):
    """A practised interview topic or question with the learner's confidence."""
    topic: str
    confidence: float = Field(0.0, ge=0, le=100)
    last_practiced: Optional[datetime] = None
    is_core: bool = False

    utc_last_practiced = field_validator("last_practiced")(as_utc)


class StopConditionResult(BaseModel):
    should_stop: bool = False
    current_readiness: float = 0.0
    signals: list[StopSignal] = []
    reasons: list[str] = []
    urgency: StopUrgency = StopUrgency.LOW
    recommended_action: str = ""
    estimated_remaining_days: float = 0.0
    days_until_expiry: Optional[float] = None
