"""Stage 1: Relevance filter - cheap pre-reject before scoring.

Pure and deterministic. Each rule looks at one vacancy attribute and either
passes or returns the reason it rejects the vacancy.
"""

import logging
from typing import Any, Callable, Optional

from models.schemas.eligibility import EligibilityResult, FilterConfig, RuleOutcome, normalize_tag
from models.schemas.enums import RemotePolicy, SeniorityLevel
from models.schemas.vacancy import VacancyRecord
from services.pipeline.base import BaseStageService

logger = logging.getLogger(__name__)

Rule = Callable[[VacancyRecord, FilterConfig], Optional[str]]


def _engagement(vacancy: VacancyRecord, config: FilterConfig) -> Optional[str]:
    if vacancy.engagement_type in config.excluded_engagements:
        return f"engagement type {vacancy.engagement_type.value} is excluded"
    return None


def _remote_policy(vacancy: VacancyRecord, config: FilterConfig) -> Optional[str]:
    if vacancy.remote_policy in config.excluded_remote_policies:
        return f"remote policy {vacancy.remote_policy.value} is excluded"
    return None


def _geo(vacancy: VacancyRecord, config: FilterConfig) -> Optional[str]:
    excluded = set(config.excluded_geo_restrictions)
    hits = [tag for tag in vacancy.geo_restrictions if normalize_tag(tag) in excluded]
    if hits:
        return f"geo restricted: {', '.join(hits)}"
    return None


def _company(vacancy: VacancyRecord, config: FilterConfig) -> Optional[str]:
    company = vacancy.company.strip().lower()
    if company and any(company == c.strip().lower() for c in config.excluded_companies):
        return f"company {vacancy.company} is excluded"
    return None


def _seniority(vacancy: VacancyRecord, config: FilterConfig) -> Optional[str]:
    if (
        vacancy.seniority != SeniorityLevel.UNKNOWN
        and config.min_seniority != SeniorityLevel.UNKNOWN
        and vacancy.seniority < config.min_seniority
    ):
        return (
            f"seniority {vacancy.seniority.name.lower()} is below "
            f"{config.min_seniority.name.lower()}"
        )
    return None


def _remote_only(vacancy: VacancyRecord, config: FilterConfig) -> Optional[str]:
    if config.remote_only and vacancy.remote_policy in (RemotePolicy.ON_SITE, RemotePolicy.HYBRID):
        return "candidate is remote-only"
    return None


def _salary(vacancy: VacancyRecord, config: FilterConfig) -> Optional[str]:
    offered = vacancy.offered_salary
    if config.min_salary and offered is not None and offered < config.min_salary:
        return f"salary {offered:.0f} is below the floor {config.min_salary:.0f}"
    return None


RULES: list[tuple[str, Rule]] = [
    ("engagement_type", _engagement),
    ("remote_policy", _remote_policy),
    ("geo_restriction", _geo),
    ("excluded_company", _company),
    ("min_seniority", _seniority),
    ("remote_only", _remote_only),
    ("salary_floor", _salary),
]


def assess_eligibility(vacancy: VacancyRecord, config: FilterConfig) -> EligibilityResult:
    """Evaluate every rule and explain the outcome of each."""
    outcomes = []
    for name, rule in RULES:
        reason = rule(vacancy, config)
        outcomes.append(RuleOutcome(rule=name, passed=reason is None, reason=reason or ""))
    return EligibilityResult(
        vacancy_id=vacancy.id,
        eligible=all(o.passed for o in outcomes),
        outcomes=outcomes,
    )


def rejection_reason(vacancy: VacancyRecord, config: FilterConfig) -> Optional[str]:
    """First failing rule's reason, or None when the vacancy passes."""
    for _, rule in RULES:
        reason = rule(vacancy, config)
        if reason:
            return reason
    return None


def filter_vacancies(vacancies: list[VacancyRecord], config: FilterConfig) -> list[VacancyRecord]:
    """Keep the vacancies that pass every hard rule, in input order."""
    kept = []
    for vacancy in vacancies:
        reason = rejection_reason(vacancy, config)
        if reason:
            logger.debug("Filtered out %s: %s", vacancy.id, reason)
            continue
        kept.append(vacancy)
    if vacancies:
        logger.info("Relevance filter kept %d of %d vacancies", len(kept), len(vacancies))
    return kept


class RelevanceFilterService(BaseStageService):
    stage_name = "relevance_filter"

    def load(self) -> None:
        logger.info("Relevance filter ready (%d rules)", len(RULES))

    def run(self, **kwargs: Any) -> list[VacancyRecord]:
        self.ensure_loaded()
        vacancies: list[VacancyRecord] = kwargs["vacancies"]
        config: FilterConfig = kwargs.get("config") or FilterConfig()
        return filter_vacancies(vacancies, config)
