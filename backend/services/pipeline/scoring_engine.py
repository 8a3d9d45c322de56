"""Stage 2: Composite scoring engine.

Seven factors, each 0-100, combined with the configured weights:

    skill_depth           proficiency-weighted coverage of the vacancy's skills
    experience_relevance  years in overlapping tech vs. the seniority bracket
    seniority_fit         estimated candidate level vs. vacancy level
    salary_positioning    offered salary between candidate minimum and target
    freshness             exponential decay with posting age, 0 once expired
    market_competition    inverse of the applicant-volume proxy
    platform_response     per-platform response-rate prior

The overall score is derived from the breakdown only. A malformed vacancy
gets a worst-case degraded score instead of an exception, and batch calls
never fail as a whole because of one record.
"""

import json
import logging
from collections import Counter
from datetime import datetime
from typing import Any, NamedTuple, Optional

import numpy as np

from models.schemas.common import as_utc, utcnow
from models.schemas.enums import RemotePolicy, SeniorityLevel, SkillCategory
from models.schemas.match_score import (
    CompetitivenessAssessment,
    CompetitivenessReport,
    FactorBreakdown,
    MatchScore,
    RecommendedAction,
    Tier,
)
from models.schemas.profile import CandidateProfile, SkillEntry
from models.schemas.vacancy import VacancyRecord
from services.pipeline.base import BaseStageService
from services.skill_vocabulary import (
    canonical_skill,
    find_related_skill,
    index_profile_skills,
    normalize_skill,
    platform_popularity,
    skill_category,
    title_genericness,
)

logger = logging.getLogger(__name__)

FACTOR_NAMES = (
    "skill_depth",
    "experience_relevance",
    "seniority_fit",
    "salary_positioning",
    "freshness",
    "market_competition",
    "platform_response",
)

FACTOR_LABELS = {
    "skill_depth": "Skill depth",
    "experience_relevance": "Experience relevance",
    "seniority_fit": "Seniority fit",
    "salary_positioning": "Salary alignment",
    "freshness": "Posting freshness",
    "market_competition": "Low competition",
    "platform_response": "Platform response rate",
}

# Expected years of experience per vacancy seniority: (lower, upper)
EXPERIENCE_BRACKETS: dict[SeniorityLevel, tuple[float, float]] = {
    SeniorityLevel.INTERN: (0, 1),
    SeniorityLevel.JUNIOR: (1, 2),
    SeniorityLevel.MIDDLE: (2, 4),
    SeniorityLevel.SENIOR: (4, 7),
    SeniorityLevel.LEAD: (7, 10),
    SeniorityLevel.ARCHITECT: (10, 14),
    SeniorityLevel.PRINCIPAL: (14, 18),
    SeniorityLevel.UNKNOWN: (2, 5),
}

# Upper bound (exclusive) of total years for each estimated level.
_LEVEL_BY_YEARS = [
    (1, SeniorityLevel.INTERN),
    (2, SeniorityLevel.JUNIOR),
    (4, SeniorityLevel.MIDDLE),
    (7, SeniorityLevel.SENIOR),
    (10, SeniorityLevel.LEAD),
    (14, SeniorityLevel.ARCHITECT),
]

DEFAULT_PLATFORM_RATES: dict[str, float] = {
    "djinni": 80,
    "dou": 75,
    "justjoinit": 65,
    "nofluffjobs": 70,
    "remoteok": 45,
    "weworkremotely": 45,
    "hackernews": 55,
    "himalayas": 50,
    "jobicy": 50,
    "toptal": 60,
    "linkedin": 35,
    "image-scan": 50,
}
DEFAULT_PLATFORM_RATE = 50.0

MISSING_REQUIRED_PENALTY = 0.5  # weight units per missing required skill


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _days_between(later: datetime, earlier: datetime) -> float:
    return (later - earlier).total_seconds() / 86400


def estimate_seniority(profile: CandidateProfile, now: Optional[datetime] = None) -> SeniorityLevel:
    """Candidate level from experience years, then max skill years, then preference."""
    years = profile.total_experience_years(now)
    if years <= 0:
        years = max((s.years_experience for s in profile.skills), default=0.0)
    if years <= 0:
        return profile.preferences.min_seniority
    for upper, level in _LEVEL_BY_YEARS:
        if years < upper:
            return level
    return SeniorityLevel.PRINCIPAL


def estimate_applicant_volume(vacancy: VacancyRecord, now: Optional[datetime] = None) -> float:
    """Applicant-volume proxy in [0, 1]: platform popularity x age x title genericness.

    Fresh postings draw the initial rush, so the age factor starts at 1 and
    halves every two weeks, never dropping below 0.2.
    """
    now = as_utc(now) or utcnow()
    popularity = platform_popularity(vacancy.source_platform)
    if vacancy.posted_date is None:
        age_factor = 0.5
    else:
        age_days = max(0.0, _days_between(now, vacancy.posted_date))
        age_factor = max(0.2, 0.5 ** (age_days / 14))
    return _clamp(popularity * age_factor * title_genericness(vacancy.title), 0.0, 1.0)


class _Evaluation(NamedTuple):
    breakdown: FactorBreakdown
    overall: float
    matching: list[str]
    missing: list[str]
    bonus: list[str]
    strengths: list[str]
    weaknesses: list[str]
    tips: list[str]
    risks: list[str]


class ScoringEngineService(BaseStageService):
    stage_name = "scoring_engine"

    def __init__(self, config=None) -> None:
        super().__init__(config)
        self.platform_rates: dict[str, float] = dict(DEFAULT_PLATFORM_RATES)
        weights = self.settings.scoring_weights
        self.weights = np.array([getattr(weights, name) for name in FACTOR_NAMES], dtype=float)

    def load(self) -> None:
        if self.settings.platform_rates_path:
            self.refresh_platform_rates(self.settings.platform_rates_path)
        logger.info("Scoring engine ready (%d platform priors)", len(self.platform_rates))

    # ------------------------------------------------------------------
    # Platform response priors
    # ------------------------------------------------------------------

    def update_platform_rates(self, rates: dict[str, float]) -> None:
        """Merge observed response rates (0-100) into the priors."""
        for platform, rate in rates.items():
            self.platform_rates[normalize_skill(platform)] = _clamp(float(rate))

    def refresh_platform_rates(self, path: str) -> int:
        """Load observed rates from a JSON object ``{platform: rate}``.

        An unreadable file keeps the current priors. Returns the number of
        platforms updated.
        """
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read platform rates from %s: %s", path, e)
            return 0
        if not isinstance(data, dict):
            logger.warning("Platform rates file %s is not a JSON object", path)
            return 0
        rates = {k: v for k, v in data.items() if isinstance(v, (int, float))}
        self.update_platform_rates(rates)
        logger.info("Refreshed %d platform response rates from %s", len(rates), path)
        return len(rates)

    def platform_rate(self, platform: str) -> float:
        return self.platform_rates.get(normalize_skill(platform), DEFAULT_PLATFORM_RATE)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, **kwargs: Any) -> MatchScore:
        self.ensure_loaded()
        return self.score(kwargs["profile"], kwargs["vacancy"], now=kwargs.get("now"))

    def score(
        self,
        profile: CandidateProfile,
        vacancy: VacancyRecord,
        now: Optional[datetime] = None,
    ) -> MatchScore:
        if profile is None:
            raise ValueError("A candidate profile is required for scoring")
        if vacancy.is_malformed:
            logger.warning("Vacancy %s is missing a title or required skills, degrading", vacancy.id)
            return self._degraded_score(profile, vacancy)

        ev = self._evaluate(profile, vacancy, as_utc(now) or utcnow())
        action = RecommendedAction.for_score(ev.overall)
        return MatchScore(
            vacancy_id=vacancy.id,
            overall=ev.overall,
            breakdown=ev.breakdown,
            matching_skills=ev.matching,
            missing_skills=ev.missing,
            bonus_skills=ev.bonus,
            recommended_action=action,
            confidence=_confidence(profile, vacancy),
            estimated_weeks_to_ready=_weeks_to_ready(action, len(ev.missing)),
            strengths=_top_factors(ev.breakdown),
            risks=ev.risks,
        )

    def assess(
        self,
        profile: CandidateProfile,
        vacancy: VacancyRecord,
        now: Optional[datetime] = None,
    ) -> CompetitivenessAssessment:
        if profile is None:
            raise ValueError("A candidate profile is required for scoring")
        if vacancy.is_malformed:
            logger.warning("Vacancy %s is missing a title or required skills, degrading", vacancy.id)
            return _degraded_assessment(vacancy.id, "Vacancy record is incomplete (no title or required skills)")

        ev = self._evaluate(profile, vacancy, as_utc(now) or utcnow())
        response = _clamp(0.6 * ev.overall + 0.4 * ev.breakdown.platform_response)
        logger.debug("Assessed %s: %.1f (%s)", vacancy.id, ev.overall, Tier.for_score(ev.overall).value)
        return CompetitivenessAssessment(
            vacancy_id=vacancy.id,
            score=ev.overall,
            tier=Tier.for_score(ev.overall),
            percentile=round(100 - ev.overall, 1),
            response_probability=round(response, 1),
            breakdown=ev.breakdown,
            strengths=ev.strengths,
            weaknesses=ev.weaknesses,
            tips=ev.tips,
        )

    def score_all(
        self,
        profile: CandidateProfile,
        vacancies: list[VacancyRecord],
        now: Optional[datetime] = None,
    ) -> list[MatchScore]:
        """Score every vacancy, degrading (never dropping) records that fail."""
        if profile is None:
            raise ValueError("A candidate profile is required for scoring")
        now = as_utc(now) or utcnow()
        results = []
        for vacancy in vacancies:
            try:
                results.append(self.score(profile, vacancy, now))
            except Exception as e:
                logger.warning("Scoring failed for vacancy %s: %s", vacancy.id, e)
                results.append(self._degraded_score(profile, vacancy))
        logger.info("Scored %d vacancies", len(results))
        return results

    def assess_all(
        self,
        profile: CandidateProfile,
        vacancies: list[VacancyRecord],
        now: Optional[datetime] = None,
    ) -> CompetitivenessReport:
        """Assess every vacancy and summarise the batch, best first."""
        if profile is None:
            raise ValueError("A candidate profile is required for scoring")
        now = as_utc(now) or utcnow()
        assessments = []
        for vacancy in vacancies:
            try:
                assessments.append(self.assess(profile, vacancy, now))
            except Exception as e:
                logger.warning("Assessment failed for vacancy %s: %s", vacancy.id, e)
                assessments.append(_degraded_assessment(vacancy.id, f"Assessment failed: {e}"))
        assessments.sort(key=lambda a: a.score, reverse=True)

        report = _build_report(assessments)
        logger.info(
            "Competitiveness report: %d vacancies, avg %.1f, top candidate %d",
            report.total_vacancies,
            report.average_score,
            report.tier_counts.get(Tier.TOP_CANDIDATE.value, 0),
        )
        return report

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _evaluate(self, profile: CandidateProfile, vacancy: VacancyRecord, now: datetime) -> _Evaluation:
        own = index_profile_skills(profile)
        required = _dedupe(vacancy.required_skills)
        required_keys = {key for key, _ in required}
        preferred = [(key, name) for key, name in _dedupe(vacancy.preferred_skills)
                     if key not in required_keys]

        matching = [name for key, name in required + preferred if key in own]
        missing = [name for key, name in required if key not in own]
        referenced = {key for key, _ in required + preferred}
        categories = {skill_category(key, own) for key in referenced} - {SkillCategory.UNKNOWN}
        bonus = [
            s.name for key, s in own.items()
            if key not in referenced and skill_category(key, own) in categories
        ]

        strengths: list[str] = []
        weaknesses: list[str] = []
        tips: list[str] = []

        skill_depth = _skill_depth(own, required, preferred)
        for key, name in required:
            entry = own.get(key)
            if entry is None:
                weaknesses.append(f"Missing required skill: {name}")
                related = find_related_skill(name, profile)
                if related is not None:
                    tips.append(
                        f"Highlight your {related.name} experience to partially cover the {name} gap"
                    )
            elif entry.proficiency >= 4:
                strengths.append(f"Strong {entry.name} ({entry.proficiency}/5, {entry.years_experience:.0f}+ years)")

        experience = self._experience_relevance(profile, own, vacancy, referenced, now)
        if experience >= 100:
            strengths.append("Experience in the vacancy's stack meets the expected years")
        elif experience < 40:
            weaknesses.append("Limited hands-on years in the vacancy's stack")

        seniority, candidate_level = self._seniority_fit(profile, vacancy, now)
        if seniority == 100:
            strengths.append(f"Seniority ({candidate_level.name.lower()}) matches the vacancy exactly")
        elif SeniorityLevel.UNKNOWN not in (vacancy.seniority, candidate_level):
            if candidate_level < vacancy.seniority:
                weaknesses.append(
                    f"Seniority stretch: estimated {candidate_level.name.lower()}, "
                    f"vacancy targets {vacancy.seniority.name.lower()}"
                )
                tips.append("Lead with your most complex projects to bridge the seniority gap")
            else:
                weaknesses.append(
                    f"Potentially overqualified: estimated {candidate_level.name.lower()}, "
                    f"vacancy targets {vacancy.seniority.name.lower()}"
                )

        salary = _salary_positioning(profile, vacancy)
        if salary >= 100:
            strengths.append("Salary expectations fit the posted range")
        elif salary <= 0:
            weaknesses.append("Posted salary is at or below your minimum")

        freshness = self._freshness(vacancy, now)
        if vacancy.posted_date is not None and freshness > 0:
            age = _days_between(now, vacancy.posted_date)
            if age <= 3:
                tips.append("Posted in the last few days, apply within 48h")
            elif age > 30:
                tips.append("Posting is over 30 days old, check it is still open before applying")

        volume = estimate_applicant_volume(vacancy, now)
        competition = _clamp(100 * (1 - volume))
        if volume >= 0.7:
            weaknesses.append("Popular board and generic title, expect many applicants")
        elif volume <= 0.2:
            strengths.append("Few competing applicants expected")

        breakdown = FactorBreakdown(
            skill_depth=round(skill_depth, 2),
            experience_relevance=round(experience, 2),
            seniority_fit=seniority,
            salary_positioning=round(salary, 2),
            freshness=round(freshness, 2),
            market_competition=round(competition, 2),
            platform_response=self.platform_rate(vacancy.source_platform),
        )
        return _Evaluation(
            breakdown=breakdown,
            overall=self.combine(breakdown),
            matching=matching,
            missing=missing,
            bonus=bonus,
            strengths=strengths,
            weaknesses=weaknesses,
            tips=tips,
            risks=_risks(profile, vacancy, missing),
        )

    def combine(self, breakdown: FactorBreakdown) -> float:
        """Weighted sum of the factors, clamped to [0, 100]."""
        factors = np.array([getattr(breakdown, name) for name in FACTOR_NAMES], dtype=float)
        return round(float(np.clip(self.weights @ factors, 0, 100)), 2)

    def _experience_relevance(
        self,
        profile: CandidateProfile,
        own: dict[str, SkillEntry],
        vacancy: VacancyRecord,
        referenced: set[str],
        now: datetime,
    ) -> float:
        # Self-reported skill years, or summed duration of jobs using the tech.
        stack_years: Counter = Counter()
        for exp in profile.experiences:
            duration = exp.duration_years(now)
            for tech in {canonical_skill(t) for t in exp.tech_stack} & referenced:
                stack_years[tech] += duration
        skill_years = [s.years_experience for key, s in own.items() if key in referenced]
        years = max([*skill_years, *stack_years.values()], default=0.0)

        lower, upper = EXPERIENCE_BRACKETS[vacancy.seniority]
        if years >= upper:
            return 100.0
        if years >= lower:
            return 70.0 + 30.0 * (years - lower) / (upper - lower)
        return 70.0 * years / lower

    def _seniority_fit(
        self,
        profile: CandidateProfile,
        vacancy: VacancyRecord,
        now: datetime,
    ) -> tuple[float, SeniorityLevel]:
        level = estimate_seniority(profile, now)
        if vacancy.seniority == SeniorityLevel.UNKNOWN or level == SeniorityLevel.UNKNOWN:
            return 50.0, level
        gap = abs(int(level) - int(vacancy.seniority))
        if gap == 0:
            return 100.0, level
        if gap == 1:
            return 70.0, level
        return 40.0, level

    def _freshness(self, vacancy: VacancyRecord, now: datetime) -> float:
        if vacancy.expires_at is not None and now > vacancy.expires_at:
            return 0.0
        if vacancy.posted_date is None:
            return 50.0
        floor = self.settings.freshness_floor
        age = max(0.0, _days_between(now, vacancy.posted_date))
        return floor + (100 - floor) * 0.5 ** (age / self.settings.freshness_half_life_days)

    def _degraded_score(self, profile: CandidateProfile, vacancy: VacancyRecord) -> MatchScore:
        missing = [name for _, name in _dedupe(vacancy.required_skills + vacancy.preferred_skills)]
        return MatchScore(
            vacancy_id=vacancy.id,
            overall=0.0,
            missing_skills=missing,
            recommended_action=RecommendedAction.SKIP,
            confidence=0.1,
            estimated_weeks_to_ready=_weeks_to_ready(RecommendedAction.SKIP, len(missing)),
            risks=["Vacancy record is incomplete (no title or required skills)"],
            degraded=True,
        )


# ---------------------------------------------------------------------------
# Factor helpers
# ---------------------------------------------------------------------------

def _dedupe(names: list[str]) -> list[tuple[str, str]]:
    """(canonical, original) pairs, first spelling wins."""
    seen: dict[str, str] = {}
    for name in names:
        if name.strip():
            seen.setdefault(canonical_skill(name), name)
    return list(seen.items())


def _skill_depth(
    own: dict[str, SkillEntry],
    required: list[tuple[str, str]],
    preferred: list[tuple[str, str]],
) -> float:
    max_weight = 2.0 * len(required) + 1.0 * len(preferred)
    if max_weight == 0:
        return 0.0
    earned = 0.0
    for key, _ in required:
        if key in own:
            earned += 2.0 * own[key].proficiency / 5
        else:
            earned -= MISSING_REQUIRED_PENALTY
    for key, _ in preferred:
        if key in own:
            earned += 1.0 * own[key].proficiency / 5
    return _clamp(100 * earned / max_weight)


def _salary_positioning(profile: CandidateProfile, vacancy: VacancyRecord) -> float:
    offered = vacancy.offered_salary
    prefs = profile.preferences
    if offered is None or (prefs.target_salary <= 0 and prefs.min_salary <= 0):
        return 50.0
    target = prefs.target_salary or prefs.min_salary
    minimum = prefs.min_salary
    if offered >= target:
        return 100.0
    if offered <= minimum or target <= minimum:
        return 0.0
    return 100 * (offered - minimum) / (target - minimum)


def _confidence(profile: CandidateProfile, vacancy: VacancyRecord) -> float:
    """Data completeness of both sides, 0.1-1."""
    confidence = 1.0
    if not vacancy.required_skills:
        confidence -= 0.3
    if vacancy.salary_min is None and vacancy.salary_max is None:
        confidence -= 0.15
    if vacancy.seniority == SeniorityLevel.UNKNOWN:
        confidence -= 0.15
    if vacancy.remote_policy == RemotePolicy.UNKNOWN:
        confidence -= 0.1
    if len(profile.skills) < 3:
        confidence -= 0.2
    return round(_clamp(confidence, 0.1, 1.0), 2)


def _weeks_to_ready(action: RecommendedAction, missing: int) -> int:
    if action == RecommendedAction.APPLY:
        return 0
    if action == RecommendedAction.PREPARE_AND_APPLY:
        return 2 * missing
    if action == RecommendedAction.SKILL_UP_FIRST:
        return 4 * missing
    return 99


def _top_factors(breakdown: FactorBreakdown) -> list[str]:
    values = breakdown.model_dump()
    ranked = sorted(FACTOR_NAMES, key=lambda n: values[n], reverse=True)[:3]
    return [f"{FACTOR_LABELS[n]} ({values[n]:.0f}/100)" for n in ranked if values[n] >= 50]


def _risks(profile: CandidateProfile, vacancy: VacancyRecord, missing: list[str]) -> list[str]:
    prefs = profile.preferences
    risks = []
    if missing:
        plural = "" if len(missing) == 1 else "s"
        risks.append(f"Missing {len(missing)} required skill{plural}: {', '.join(missing)}")
    offered = vacancy.offered_salary
    if offered is not None and prefs.min_salary and offered < prefs.min_salary:
        risks.append(f"Salary {offered:.0f} is below your minimum of {prefs.min_salary:.0f}")
    if prefs.remote_only and vacancy.remote_policy == RemotePolicy.ON_SITE:
        risks.append("On-site only, conflicts with your remote-only preference")
    elif prefs.remote_only and vacancy.remote_policy == RemotePolicy.HYBRID:
        risks.append("Hybrid work may conflict with your remote-only preference")
    if (
        vacancy.seniority != SeniorityLevel.UNKNOWN
        and prefs.min_seniority != SeniorityLevel.UNKNOWN
        and vacancy.seniority < prefs.min_seniority
    ):
        risks.append(
            f"Vacancy seniority {vacancy.seniority.name.lower()} is below "
            f"your target of {prefs.min_seniority.name.lower()}"
        )
    return risks


def _degraded_assessment(vacancy_id: str, reason: str) -> CompetitivenessAssessment:
    return CompetitivenessAssessment(
        vacancy_id=vacancy_id,
        score=0.0,
        tier=Tier.LONG_SHOT,
        percentile=100.0,
        response_probability=0.0,
        weaknesses=[reason],
    )


def _build_report(assessments: list[CompetitivenessAssessment]) -> CompetitivenessReport:
    tier_counts = {tier.value: 0 for tier in Tier}
    for a in assessments:
        tier_counts[a.tier.value] += 1
    average = float(np.mean([a.score for a in assessments])) if assessments else 0.0

    strong = [s for a in assessments if a.score >= 70 for s in a.strengths]
    weaknesses = [w for a in assessments for w in a.weaknesses]
    return CompetitivenessReport(
        assessments=assessments,
        total_vacancies=len(assessments),
        average_score=round(average, 1),
        tier_counts=tier_counts,
        top_strengths=[s for s, _ in Counter(strong).most_common(10)],
        most_common_weaknesses=[w for w, _ in Counter(weaknesses).most_common(10)],
        overall_verdict=_overall_verdict(tier_counts, len(assessments), average),
    )


def _overall_verdict(tier_counts: dict[str, int], total: int, average: float) -> str:
    if total == 0:
        return "No vacancies to assess."
    top = tier_counts[Tier.TOP_CANDIDATE.value]
    strong = tier_counts[Tier.STRONG_CONTENDER.value]
    share = (top + strong) / total
    if top > 0 and share >= 0.3:
        return f"Strong position: top candidate for {top} and strong contender for {strong} of {total} vacancies."
    if share > 0:
        return f"Selective fit: {top + strong} of {total} vacancies rate strong contender or better, focus there."
    if average >= 40:
        return f"Average position (mean score {average:.0f}). Close the most common gaps before mass applying."
    return f"Weak position (mean score {average:.0f}). Most vacancies are long shots for the current profile."

