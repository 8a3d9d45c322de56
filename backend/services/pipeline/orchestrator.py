"""Pipeline orchestrator: wires the match-and-decision stages together.

Flow:
    vacancies + profile
      ├─ RelevanceFilter.run(vacancies, config)     → eligible vacancies
      │                    ↓
      ├─ ScoringEngine.score(profile, vacancy)      → MatchScore (per vacancy)
      │                    ↓
      ├─ DecisionEngine.decide(vacancy, profile,
      │                        match_score)         → ApplicationDecision
      │                    ↓
      └─ DecisionCache.set_decision(id, decision)   → gates apply / learn

The cache is passed in by the caller; the orchestrator never owns one.
"""

import logging
from datetime import datetime
from typing import Optional

from models.schemas.common import as_utc, utcnow
from models.schemas.decision import ApplicationDecision, Verdict
from models.schemas.eligibility import FilterConfig
from models.schemas.history import InterviewFeedback
from models.schemas.profile import CandidateProfile
from models.schemas.vacancy import VacancyRecord
from services.decision_cache import DecisionCache
from services.pipeline.stage_registry import get_stage

logger = logging.getLogger(__name__)

_VERDICT_ORDER = {
    Verdict.APPLY_NOW: 0,
    Verdict.LEARN_THEN_APPLY: 1,
    Verdict.SKIP: 2,
}


def decide_vacancy(
    vacancy: VacancyRecord,
    profile: CandidateProfile,
    cache: DecisionCache,
    feedback: Optional[list[InterviewFeedback]] = None,
    recent_vacancies: Optional[list[VacancyRecord]] = None,
    now: Optional[datetime] = None,
) -> ApplicationDecision:
    """Score and decide one vacancy, then record the verdict."""
    now = as_utc(now) or utcnow()
    scorer = get_stage("scoring_engine")
    engine = get_stage("decision_engine")

    match_score = scorer.score(profile, vacancy, now)
    decision = engine.decide(
        vacancy,
        profile,
        match_score=match_score,
        feedback=feedback,
        recent_vacancies=recent_vacancies,
        now=now,
    )
    cache.set_decision(vacancy.id, decision, recorded_at=now)
    return decision


def decide_all(
    vacancies: list[VacancyRecord],
    profile: CandidateProfile,
    cache: DecisionCache,
    filter_config: Optional[FilterConfig] = None,
    feedback: Optional[list[InterviewFeedback]] = None,
    now: Optional[datetime] = None,
) -> list[ApplicationDecision]:
    """Run the full pipeline over a batch.

    Filtered-out vacancies get no decision. The result is ordered apply-now
    first, then learn-then-apply, then skip, best match first within each.
    """
    if profile is None:
        raise ValueError("A candidate profile is required to decide")
    now = as_utc(now) or utcnow()

    # --- Stage 1: Relevance filter ---
    relevance = get_stage("relevance_filter")
    config = filter_config or FilterConfig.from_profile(profile)
    eligible = relevance.run(vacancies=vacancies, config=config)

    # --- Stage 2 + 3: Score and decide, recording each verdict ---
    decisions = [
        decide_vacancy(vacancy, profile, cache, feedback=feedback, recent_vacancies=vacancies, now=now)
        for vacancy in eligible
    ]

    decisions.sort(key=lambda d: (_VERDICT_ORDER[d.verdict], -d.match_score))
    logger.info(
        "Decided %d of %d vacancies: %d apply now, %d learn first, %d skip",
        len(decisions),
        len(vacancies),
        sum(1 for d in decisions if d.verdict == Verdict.APPLY_NOW),
        sum(1 for d in decisions if d.verdict == Verdict.LEARN_THEN_APPLY),
        sum(1 for d in decisions if d.verdict == Verdict.SKIP),
    )
    return decisions
