from fastapi import APIRouter, Depends, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from api.dependencies import get_decision_cache
from config import settings
from models.requests import (
    BatchAssessRequest,
    DecideRequest,
    ScoreRequest,
    StopCheckRequest,
    StrategyRequest,
    TimingRequest,
    TimingWindowsRequest,
)
from models.responses import DecideResponse, GateResponse
from models.schemas.advice import StrategyRecommendation, TimingOpportunity, TimingRecommendation
from models.schemas.decision import ApplicationDecision, DecisionCacheEntry
from models.schemas.match_score import CompetitivenessAssessment, CompetitivenessReport, MatchScore
from models.schemas.stop_condition import StopConditionResult
from services.decision_cache import DecisionCache
from services.pipeline import orchestrator
from services.pipeline.stage_registry import get_stage

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)


@router.get("/health")
async def health():
    return {
        "status": "ok",
        "decision_cache": "file" if settings.decision_cache_path else "memory",
    }


@router.post("/score", response_model=MatchScore)
async def score(body: ScoreRequest):
    return get_stage("scoring_engine").score(body.profile, body.vacancy, now=body.now)


@router.post("/assess", response_model=CompetitivenessAssessment)
async def assess(body: ScoreRequest):
    return get_stage("scoring_engine").assess(body.profile, body.vacancy, now=body.now)


@router.post("/assess/batch", response_model=CompetitivenessReport)
async def assess_batch(body: BatchAssessRequest):
    return get_stage("scoring_engine").assess_all(body.profile, body.vacancies, now=body.now)


@router.post("/decide", response_model=DecideResponse)
@limiter.limit(settings.decide_rate_limit)
async def decide(
    request: Request,
    body: DecideRequest,
    cache: DecisionCache = Depends(get_decision_cache),
):
    decisions = orchestrator.decide_all(
        body.vacancies,
        body.profile,
        cache,
        filter_config=body.filter,
        feedback=body.feedback,
        now=body.now,
    )
    return DecideResponse(decisions=decisions, filtered_out=len(body.vacancies) - len(decisions))


@router.get("/decisions", response_model=list[DecisionCacheEntry])
async def list_decisions(cache: DecisionCache = Depends(get_decision_cache)):
    return cache.all_decisions()


@router.get("/decisions/{vacancy_id}", response_model=ApplicationDecision)
async def get_decision(vacancy_id: str, cache: DecisionCache = Depends(get_decision_cache)):
    decision = cache.get_decision(vacancy_id)
    if decision is None:
        raise HTTPException(status_code=404, detail=f"No decision for vacancy {vacancy_id}")
    return decision


@router.get("/decisions/{vacancy_id}/can-apply", response_model=GateResponse)
async def can_apply(vacancy_id: str, cache: DecisionCache = Depends(get_decision_cache)):
    allowed, reason = cache.can_apply(vacancy_id)
    return GateResponse(vacancy_id=vacancy_id, allowed=allowed, reason=reason)


@router.get("/decisions/{vacancy_id}/can-learn", response_model=GateResponse)
async def can_learn(vacancy_id: str, cache: DecisionCache = Depends(get_decision_cache)):
    allowed, reason = cache.can_learn(vacancy_id)
    return GateResponse(vacancy_id=vacancy_id, allowed=allowed, reason=reason)


@router.delete("/decisions", status_code=204)
async def clear_decisions(cache: DecisionCache = Depends(get_decision_cache)):
    cache.clear()


@router.post("/learning/stop-check", response_model=StopConditionResult)
async def stop_check(body: StopCheckRequest):
    return get_stage("stop_conditions").should_stop_learning(
        body.current_readiness,
        body.learning_started_at,
        body.studied_items,
        body.vacancy,
        remaining_learning_hours=body.remaining_learning_hours,
        now=body.now,
    )


@router.post("/strategy", response_model=StrategyRecommendation)
async def strategy(body: StrategyRequest):
    return get_stage("strategy_advisor").analyze(body.applications, body.feedback)


@router.post("/timing", response_model=TimingRecommendation)
async def timing(body: TimingRequest):
    return get_stage("competition_timing").analyze(body.vacancy, body.recent, now=body.now)


@router.post("/timing/windows", response_model=list[TimingOpportunity])
async def timing_windows(body: TimingWindowsRequest):
    return get_stage("competition_timing").find_optimal_windows(body.vacancies, now=body.now)
