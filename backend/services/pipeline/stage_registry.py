"""Lazy-loading registry for the match-and-decision stages.

One instance per stage per process, constructed and loaded on first use.
"""

import logging

from services.pipeline.base import BaseStageService

logger = logging.getLogger(__name__)

_registry: dict[str, BaseStageService] = {}

STAGE_NAMES = (
    "relevance_filter",
    "scoring_engine",
    "decision_engine",
    "stop_conditions",
    "strategy_advisor",
    "competition_timing",
)


def _create_stage(name: str) -> BaseStageService:
    """Factory: create a stage service by name with deferred imports."""
    if name == "relevance_filter":
        from services.pipeline.relevance_filter import RelevanceFilterService
        return RelevanceFilterService()
    elif name == "scoring_engine":
        from services.pipeline.scoring_engine import ScoringEngineService
        return ScoringEngineService()
    elif name == "decision_engine":
        from services.pipeline.decision_engine import DecisionEngineService
        return DecisionEngineService()
    elif name == "stop_conditions":
        from services.pipeline.stop_conditions import StopConditionService
        return StopConditionService()
    elif name == "strategy_advisor":
        from services.pipeline.strategy_advisor import StrategyAdvisorService
        return StrategyAdvisorService()
    elif name == "competition_timing":
        from services.pipeline.competition_timing import CompetitionTimingService
        return CompetitionTimingService()
    else:
        raise ValueError(f"Unknown stage: {name}")


def get_stage(name: str) -> BaseStageService:
    """Get a stage service by name, creating and loading it on first access."""
    if name not in _registry:
        _registry[name] = _create_stage(name)
    svc = _registry[name]
    svc.ensure_loaded()
    return svc


def preload(*names: str) -> None:
    """Pre-load stages (e.g. at startup). No names loads all of them."""
    for name in names or STAGE_NAMES:
        get_stage(name)


def clear() -> None:
    """Drop all stage instances. Useful for testing."""
    _registry.clear()
