"""Stage 6: Competition timing - when to apply for the best odds.

Advisory only. Estimates how crowded a vacancy is from its age, an
applicant-volume proxy, the hiring season and how many similar roles were
posted recently, then suggests whether to apply now or wait a few days.
"""

import logging
import re
from datetime import datetime
from typing import Any, Optional

from models.schemas.advice import CompetitionLevel, TimingOpportunity, TimingRecommendation
from models.schemas.common import as_utc, utcnow
from models.schemas.vacancy import VacancyRecord
from services.pipeline.base import BaseStageService
from services.pipeline.scoring_engine import estimate_applicant_volume

logger = logging.getLogger(__name__)

PEAK_HIRING_MONTHS = frozenset({1, 2, 9})
HIGH_VOLUME = 0.7
SIMILAR_ROLE_WINDOW_DAYS = 30
SIMILAR_TITLE_WORDS = 2
SATURATED_MARKET = 10
QUIET_MARKET = 3
CLOSING_SOON_DAYS = 3
FRESH_POST_DELAY_DAYS = 3

_LEVEL_SCORE = {
    CompetitionLevel.LOW: 30,
    CompetitionLevel.MEDIUM: 15,
    CompetitionLevel.HIGH: -10,
    CompetitionLevel.VERY_HIGH: -25,
}

_WORD_RE = re.compile(r"[a-z0-9+#]+")


def _title_words(title: str) -> set[str]:
    return {w for w in _WORD_RE.findall(title.lower()) if len(w) > 2}


def count_similar_roles(vacancy: VacancyRecord, recent: list[VacancyRecord], now: datetime) -> int:
    """Other postings from the last 30 days sharing at least two title words."""
    words = _title_words(vacancy.title)
    if len(words) < SIMILAR_TITLE_WORDS:
        return 0
    count = 0
    for other in recent:
        if other.id == vacancy.id or other.posted_date is None:
            continue
        if (now - other.posted_date).total_seconds() > SIMILAR_ROLE_WINDOW_DAYS * 86400:
            continue
        if len(words & _title_words(other.title)) >= SIMILAR_TITLE_WORDS:
            count += 1
    return count


def timing_score(level: CompetitionLevel, delay_days: int) -> int:
    return int(max(0, min(100, 50 + _LEVEL_SCORE[level] - 5 * delay_days)))


class CompetitionTimingService(BaseStageService):
    stage_name = "competition_timing"

    def load(self) -> None:
        logger.info("Competition timing ready")

    def run(self, **kwargs: Any) -> TimingRecommendation:
        self.ensure_loaded()
        return self.analyze(kwargs["vacancy"], kwargs.get("recent") or [], now=kwargs.get("now"))

    def analyze(
        self,
        vacancy: VacancyRecord,
        recent: Optional[list[VacancyRecord]] = None,
        now: Optional[datetime] = None,
    ) -> TimingRecommendation:
        now = as_utc(now) or utcnow()
        signals: list[str] = []
        level = CompetitionLevel.MEDIUM
        delay = 0

        # --- Posting age ---
        if vacancy.posted_date is not None:
            age_days = max(0.0, (now - vacancy.posted_date).total_seconds() / 86400)
            if age_days <= 1:
                level = CompetitionLevel.HIGH
                delay = FRESH_POST_DELAY_DAYS
                signals.append("Posted within the last day: the initial applicant rush is on")
            elif age_days > 30:
                level = CompetitionLevel.LOW
                signals.append(f"Open for {age_days:.0f} days: most applicants have moved on")
            elif age_days >= 14:
                signals.append(f"Open for {age_days:.0f} days: the first wave has passed")

        # --- Applicant volume proxy ---
        volume = estimate_applicant_volume(vacancy, now)
        if volume >= HIGH_VOLUME:
            level = max(level, CompetitionLevel.HIGH)
            signals.append(f"Popular platform and a generic title (volume {volume:.0%})")

        # --- Hiring season ---
        if now.month in PEAK_HIRING_MONTHS:
            level = CompetitionLevel.VERY_HIGH if level >= CompetitionLevel.HIGH else CompetitionLevel.HIGH
            signals.append("Peak hiring season: more candidates are active")

        # --- Market saturation ---
        similar = count_similar_roles(vacancy, recent or [], now)
        if similar >= SATURATED_MARKET:
            level = max(level, CompetitionLevel.HIGH)
            signals.append(f"{similar} similar roles posted in the last month")
        elif recent and similar <= QUIET_MARKET:
            level = min(level, CompetitionLevel.MEDIUM)
            signals.append(f"Only {similar} similar role(s) posted recently")

        # --- Day of week ---
        weekday = now.weekday()
        if weekday >= 5:
            if level == CompetitionLevel.MEDIUM:
                level = CompetitionLevel.LOW
            signals.append("Weekend: fewer candidates apply")
        elif weekday == 0:
            signals.append("Monday: the weekend backlog lands today")

        # --- Closing soon ---
        if vacancy.expires_at is not None:
            days_left = (vacancy.expires_at - now).total_seconds() / 86400
            if days_left <= CLOSING_SOON_DAYS:
                level = CompetitionLevel.LOW
                delay = 0
                signals.append(f"Closes in {max(0.0, days_left):.0f} day(s): apply immediately")

        recommendation = TimingRecommendation(
            vacancy_id=vacancy.id,
            vacancy_title=vacancy.title,
            company=vacancy.company,
            competition_level=level,
            applicant_volume=round(volume, 3),
            signals=signals,
            recommended_delay_days=delay,
            recommendation=_recommendation_text(level, delay),
        )
        logger.debug("Timing for %s: %s, delay %d", vacancy.id, level.name, delay)
        return recommendation

    def find_optimal_windows(
        self,
        vacancies: list[VacancyRecord],
        now: Optional[datetime] = None,
    ) -> list[TimingOpportunity]:
        """Vacancies worth applying to today, least crowded first."""
        now = as_utc(now) or utcnow()
        opportunities = []
        for vacancy in vacancies:
            timing = self.analyze(vacancy, vacancies, now=now)
            if timing.competition_level > CompetitionLevel.MEDIUM or timing.recommended_delay_days:
                continue
            opportunities.append(TimingOpportunity(
                vacancy=vacancy,
                competition_level=timing.competition_level,
                reason=timing.signals[0] if timing.signals else timing.recommendation,
                score=timing_score(timing.competition_level, timing.recommended_delay_days),
            ))
        opportunities.sort(key=lambda o: o.score, reverse=True)
        return opportunities


def _recommendation_text(level: CompetitionLevel, delay: int) -> str:
    if delay:
        return f"Wait {delay} day(s) for the initial rush to pass, then apply"
    if level == CompetitionLevel.LOW:
        return "Apply now: competition is low"
    if level == CompetitionLevel.MEDIUM:
        return "Apply now: competition is moderate"
    if level == CompetitionLevel.HIGH:
        return "Apply now and make the application stand out: competition is high"
    return "Apply now with a tailored resume: competition is very high"
