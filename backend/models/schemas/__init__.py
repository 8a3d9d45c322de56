"""Inter-stage Pydantic contracts for the match-and-decision pipeline."""

from models.schemas.enums import EngagementType, RemotePolicy, SeniorityLevel, SkillCategory
from models.schemas.profile import CandidateProfile, Experience, Preferences, SkillEntry
from models.schemas.vacancy import VacancyRecord
from models.schemas.eligibility import EligibilityResult, FilterConfig, RuleOutcome
from models.schemas.match_score import (
    CompetitivenessAssessment,
    CompetitivenessReport,
    FactorBreakdown,
    MatchScore,
    RecommendedAction,
    Tier,
)
from models.schemas.decision import ApplicationDecision, DecisionCacheEntry, SkillGap, Verdict
from models.schemas.stop_condition import StopConditionResult, StopSignal, StopUrgency, StudiedItem
from models.schemas.history import ApplicationStatus, InterviewFeedback, JobApplication
from models.schemas.advice import (
    CompetitionLevel,
    Impact,
    Pivot,
    StrategyRecommendation,
    TimingOpportunity,
    TimingRecommendation,
)

__all__ = [
    "EngagementType",
    "RemotePolicy",
    "SeniorityLevel",
    "SkillCategory",
    "CandidateProfile",
    "Experience",
    "Preferences",
    "SkillEntry",
    "VacancyRecord",
    "EligibilityResult",
    "FilterConfig",
    "RuleOutcome",
    "CompetitivenessAssessment",
    "CompetitivenessReport",
    "FactorBreakdown",
    "MatchScore",
    "RecommendedAction",
    "Tier",
    "ApplicationDecision",
    "DecisionCacheEntry",
    "SkillGap",
    "Verdict",
    "StopConditionResult",
    "StopSignal",
    "StopUrgency",
    "StudiedItem",
    "ApplicationStatus",
    "InterviewFeedback",
    "JobApplication",
    "CompetitionLevel",
    "Impact",
    "Pivot",
    "StrategyRecommendation",
    "TimingOpportunity",
    "TimingRecommendation",
]
