"""Stage 3: Decision engine - one actionable verdict per vacancy.

    MatchScore + skill gaps + deadline runway
        -> readiness = match - gap severity (+/- interview feedback)
        -> verdict, first rule that matches:
             no profile skills              -> SKIP
             malformed or expired vacancy   -> SKIP
             ready and no critical gaps     -> APPLY_NOW
             gaps fit the runway, no
             deal-breaker                   -> LEARN_THEN_APPLY
             anything else                  -> SKIP

Timing advice is attached as advisory notes and never changes the verdict.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Any, Optional

from models.schemas.common import as_utc, utcnow
from models.schemas.decision import ApplicationDecision, SkillGap, Verdict
from models.schemas.enums import SeniorityLevel
from models.schemas.history import InterviewFeedback
from models.schemas.match_score import MatchScore
from models.schemas.profile import CandidateProfile
from models.schemas.vacancy import VacancyRecord
from services.pipeline.base import BaseStageService
from services.pipeline.stage_registry import get_stage
from services.skill_vocabulary import (
    canonical_set,
    canonical_skill,
    hours_per_level,
    index_profile_skills,
    skill_category,
)

logger = logging.getLogger(__name__)

# Proficiency expected of a required skill, by vacancy seniority.
TARGET_LEVELS: dict[SeniorityLevel, int] = {
    SeniorityLevel.UNKNOWN: 3,
    SeniorityLevel.INTERN: 2,
    SeniorityLevel.JUNIOR: 2,
    SeniorityLevel.MIDDLE: 3,
    SeniorityLevel.SENIOR: 4,
    SeniorityLevel.LEAD: 5,
    SeniorityLevel.ARCHITECT: 5,
    SeniorityLevel.PRINCIPAL: 5,
}

WEAK_AREA_PENALTY = 5.0
WEAK_AREA_CAP = 15.0
STRONG_AREA_BONUS = 3.0
STRONG_AREA_CAP = 9.0
SPARSE_PROFILE_SKILLS = 3
SPARSE_PROFILE_MAX_CONFIDENCE = 40


def target_level(seniority: SeniorityLevel, required: bool = True) -> int:
    level = TARGET_LEVELS[seniority]
    return level if required else max(1, level - 1)


class DecisionEngineService(BaseStageService):
    stage_name = "decision_engine"

    def __init__(self, config=None, scorer=None, timing=None) -> None:
        super().__init__(config)
        self._scorer = scorer
        self._timing = timing

    @property
    def scorer(self):
        if self._scorer is None:
            self._scorer = get_stage("scoring_engine")
        return self._scorer

    @property
    def timing(self):
        if self._timing is None:
            self._timing = get_stage("competition_timing")
        return self._timing

    def load(self) -> None:
        logger.info(
            "Decision engine ready (readiness threshold %.0f, %.1fh study/day)",
            self.settings.readiness_threshold,
            self.settings.daily_study_hours,
        )

    def run(self, **kwargs: Any) -> ApplicationDecision:
        self.ensure_loaded()
        return self.decide(
            kwargs["vacancy"],
            kwargs["profile"],
            match_score=kwargs.get("match_score"),
            feedback=kwargs.get("feedback"),
            recent_vacancies=kwargs.get("recent_vacancies"),
            now=kwargs.get("now"),
        )

    def decide(
        self,
        vacancy: VacancyRecord,
        profile: CandidateProfile,
        match_score: Optional[MatchScore] = None,
        feedback: Optional[list[InterviewFeedback]] = None,
        recent_vacancies: Optional[list[VacancyRecord]] = None,
        now: Optional[datetime] = None,
    ) -> ApplicationDecision:
        if profile is None:
            raise ValueError("A candidate profile is required to decide")
        now = as_utc(now) or utcnow()
        cfg = self.settings

        if match_score is None:
            match_score = self.scorer.score(profile, vacancy, now)
        gaps = self.analyze_skill_gaps(vacancy, profile)
        readiness = self.readiness(match_score, gaps, vacancy, feedback or [])
        critical = [g for g in gaps if g.is_critical]
        total_hours = sum(g.hours_to_learn for g in gaps)

        decision = ApplicationDecision(
            vacancy_id=vacancy.id,
            match_score=match_score.overall,
            readiness_score=round(readiness, 1),
            confidence=self.confidence(profile, vacancy, match_score),
            skill_gaps=gaps,
            quick_wins=[g.skill for g in gaps if g.hours_to_learn <= cfg.quick_win_hours],
            critical_missing_skills=[g.skill for g in critical],
            estimated_learning_hours=total_hours,
            decided_at=now,
        )

        runway_days = self._runway_days(vacancy, now)
        capacity = runway_days * cfg.daily_study_hours
        blocker = self._deal_breaker(match_score, gaps, critical)

        if not profile.skills:
            decision.verdict = Verdict.SKIP
            decision.reasoning = ["Insufficient profile data: add your skills before deciding"]
        elif match_score.degraded:
            decision.verdict = Verdict.SKIP
            decision.reasoning = ["Vacancy record is incomplete (no title or required skills)"]
        elif vacancy.expires_at is not None and vacancy.expires_at <= now:
            decision.verdict = Verdict.SKIP
            decision.reasoning = ["Vacancy has already expired"]
        elif (readiness >= cfg.readiness_threshold and not critical) or (not gaps and blocker is None):
            decision.verdict = Verdict.APPLY_NOW
            decision.estimated_learning_hours = 0.0
            decision.apply_by = self._cap_at_expiry(now + timedelta(days=cfg.apply_now_window_days), vacancy)
            decision.reasoning = _apply_now_reasoning(match_score, readiness, gaps, decision.quick_wins)
        elif total_hours <= capacity and blocker is None:
            study_days = math.ceil(total_hours / cfg.daily_study_hours)
            decision.verdict = Verdict.LEARN_THEN_APPLY
            decision.apply_by = self._cap_at_expiry(now + timedelta(days=study_days), vacancy)
            decision.reasoning = _learn_reasoning(match_score, readiness, gaps, critical, total_hours, study_days)
        else:
            decision.verdict = Verdict.SKIP
            decision.reasoning = self._skip_reasoning(blocker, total_hours, capacity, runway_days)

        if decision.verdict != Verdict.SKIP:
            decision.advisory_notes = self._advisory_notes(vacancy, recent_vacancies or [], now)

        logger.info(
            "Decision for %s: %s (match %.1f, readiness %.1f, %d gaps, %.0fh)",
            vacancy.id,
            decision.verdict.value,
            match_score.overall,
            readiness,
            len(gaps),
            total_hours,
        )
        return decision

    # ------------------------------------------------------------------
    # Gap analysis and readiness
    # ------------------------------------------------------------------

    def analyze_skill_gaps(self, vacancy: VacancyRecord, profile: CandidateProfile) -> list[SkillGap]:
        """Skills below the level the vacancy's seniority expects, critical first."""
        own = index_profile_skills(profile)
        gaps: list[SkillGap] = []
        seen: set[str] = set()
        for names, required in ((vacancy.required_skills, True), (vacancy.preferred_skills, False)):
            for name in names:
                key = canonical_skill(name)
                if not key or key in seen:
                    continue
                seen.add(key)
                entry = own.get(key)
                current = entry.proficiency if entry else 0
                target = target_level(vacancy.seniority, required)
                if current >= target:
                    continue
                category = skill_category(key, own)
                gaps.append(SkillGap(
                    skill=name,
                    category=category,
                    current_level=current,
                    target_level=target,
                    hours_to_learn=(target - current) * hours_per_level(category),
                    is_required=required,
                    is_critical=required and current == 0,
                ))
        return sorted(gaps, key=lambda g: (not g.is_critical, g.hours_to_learn))

    def readiness(
        self,
        match_score: MatchScore,
        gaps: list[SkillGap],
        vacancy: VacancyRecord,
        feedback: list[InterviewFeedback],
    ) -> float:
        """Match score minus required-gap severity, adjusted by interview feedback."""
        severity = sum(
            (g.target_level - g.current_level) * self.settings.criticality_weight
            for g in gaps if g.is_required
        )
        value = match_score.overall - severity + feedback_adjustment(vacancy, feedback)
        return max(0.0, min(100.0, value))

    def confidence(self, profile: CandidateProfile, vacancy: VacancyRecord, match_score: MatchScore) -> int:
        """0-100, grows with profile completeness and skill evidence."""
        prefs = profile.preferences
        referenced = canonical_set(vacancy.required_skills + vacancy.preferred_skills)
        own = index_profile_skills(profile)
        evidenced = sum(1 for key in referenced if key in own and own[key].years_experience > 0)

        confidence = 30.0
        if profile.experiences:
            confidence += 15
        confidence += 15 * min(1.0, len(profile.skills) / 8)
        if prefs.target_salary or prefs.min_salary:
            confidence += 5
        if prefs.min_seniority != SeniorityLevel.UNKNOWN:
            confidence += 5
        if referenced:
            confidence += 20 * evidenced / len(referenced)
        confidence += 10 * match_score.confidence

        result = int(round(max(0.0, min(100.0, confidence))))
        if len(profile.skills) < SPARSE_PROFILE_SKILLS:
            result = min(result, SPARSE_PROFILE_MAX_CONFIDENCE)
        return result

    # ------------------------------------------------------------------
    # Verdict helpers
    # ------------------------------------------------------------------

    def _runway_days(self, vacancy: VacancyRecord, now: datetime) -> float:
        if vacancy.expires_at is None:
            return float(self.settings.default_runway_days)
        return max(0.0, (vacancy.expires_at - now).total_seconds() / 86400)

    @staticmethod
    def _cap_at_expiry(when: datetime, vacancy: VacancyRecord) -> datetime:
        if vacancy.expires_at is not None and vacancy.expires_at < when:
            return vacancy.expires_at
        return when

    def _deal_breaker(
        self,
        match_score: MatchScore,
        gaps: list[SkillGap],
        critical: list[SkillGap],
    ) -> Optional[str]:
        cfg = self.settings
        if match_score.overall < cfg.min_match_score:
            return f"Poor match ({match_score.overall:.0f}%), not aligned with your skills"
        if len(critical) > cfg.max_critical_gaps:
            return f"Too many critical gaps ({len(critical)}), high effort for an uncertain return"
        largest = max(gaps, key=lambda g: g.hours_to_learn, default=None)
        if largest is not None and largest.hours_to_learn > cfg.max_gap_hours:
            return f"{largest.skill} alone needs ~{largest.hours_to_learn:.0f}h of study"
        return None

    def _skip_reasoning(
        self,
        blocker: Optional[str],
        total_hours: float,
        capacity: float,
        runway_days: float,
    ) -> list[str]:
        if blocker is not None:
            reasons = [blocker]
        else:
            reasons = [
                f"Closing the gaps needs ~{total_hours:.0f}h but only ~{capacity:.0f}h fit "
                f"in the {runway_days:.0f}-day runway"
            ]
        reasons.append("Focus on better-matched vacancies")
        return reasons

    def _advisory_notes(
        self,
        vacancy: VacancyRecord,
        recent: list[VacancyRecord],
        now: datetime,
    ) -> list[str]:
        timing = self.timing.analyze(vacancy, recent, now=now)
        return [timing.recommendation, *timing.signals[:2]]


def feedback_adjustment(vacancy: VacancyRecord, feedback: list[InterviewFeedback]) -> float:
    """Readiness points from past interviews.

    Weak areas count when they name one of the vacancy's skills or come from
    an interview with the same company; strong areas only when they name one
    of the vacancy's skills.
    """
    if not feedback:
        return 0.0
    referenced = canonical_set(vacancy.required_skills + vacancy.preferred_skills)
    company = vacancy.company.strip().lower()
    weak: set[str] = set()
    strong: set[str] = set()
    for fb in feedback:
        same_target = bool(company) and fb.company.strip().lower() == company
        same_target = same_target or (bool(fb.vacancy_id) and fb.vacancy_id == vacancy.id)
        for area in fb.weak_areas:
            key = canonical_skill(area)
            if key and (same_target or key in referenced):
                weak.add(key)
        for area in fb.strong_areas:
            key = canonical_skill(area)
            if key in referenced:
                strong.add(key)
    penalty = min(WEAK_AREA_CAP, WEAK_AREA_PENALTY * len(weak))
    bonus = min(STRONG_AREA_CAP, STRONG_AREA_BONUS * len(strong))
    return bonus - penalty


def _apply_now_reasoning(
    match_score: MatchScore,
    readiness: float,
    gaps: list[SkillGap],
    quick_wins: list[str],
) -> list[str]:
    reasons = [f"Strong fit: {match_score.overall:.0f}% match, {readiness:.0f}% ready"]
    if not gaps:
        reasons.append("No skill gaps, you meet every listed requirement")
    else:
        reasons.append(f"Only {len(gaps)} non-critical gap(s), none blocks an application")
        if quick_wins:
            reasons.append(f"Quick wins before applying: {', '.join(quick_wins[:3])}")
    return reasons


def _learn_reasoning(
    match_score: MatchScore,
    readiness: float,
    gaps: list[SkillGap],
    critical: list[SkillGap],
    total_hours: float,
    study_days: int,
) -> list[str]:
    focus = critical or gaps
    label = "critical gap(s)" if critical else "gap(s)"
    return [
        f"Good fit ({match_score.overall:.0f}% match) but only {readiness:.0f}% ready",
        f"{len(focus)} {label}: {', '.join(g.skill for g in focus[:3])}",
        f"Learn ~{total_hours:.0f}h over {study_days} day(s), then apply",
    ]
