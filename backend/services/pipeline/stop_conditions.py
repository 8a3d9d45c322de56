"""Stage 4: Learning stop conditions.

Signals when further study on a vacancy stops paying off. Ready enough
beats perfect: every signal is evaluated independently and any one of them
means stop learning and apply.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from models.schemas.common import as_utc, utcnow
from models.schemas.stop_condition import StopConditionResult, StopSignal, StopUrgency, StudiedItem
from models.schemas.vacancy import VacancyRecord
from services.pipeline.base import BaseStageService

logger = logging.getLogger(__name__)

# Topics that come up in nearly every interview.
CORE_TOPIC_KEYWORDS = ("solid", "async", "disagree", "challenging bug", "system design")

DIMINISHING_VELOCITY = 5.0  # confidence points per week
DIMINISHING_MIN_READINESS = 60.0
CORE_TOPICS_MIN_CONFIDENCE = 75.0
CORE_TOPICS_MIN_READINESS = 65.0
HOURS_PER_READINESS_POINT = 1.0

# Recommended action, highest priority first.
_ACTIONS = [
    (StopSignal.READINESS_THRESHOLD_REACHED, "Apply now: you are ready enough"),
    (StopSignal.DEADLINE_IMMINENT, "Apply now: the vacancy closes before more study would finish"),
    (StopSignal.TIME_LIMIT_EXCEEDED, "Apply now: time limit reached, more study won't change much"),
    (StopSignal.DIMINISHING_RETURNS, "Apply now: further study has low return, learn on the job"),
    (StopSignal.CORE_TOPICS_READY, "Apply now: the core interview topics are covered"),
]
CONTINUE_LEARNING = "Continue learning"


def _is_core(item: StudiedItem) -> bool:
    topic = item.topic.lower()
    return item.is_core or any(k in topic for k in CORE_TOPIC_KEYWORDS)


def learning_velocity(items: list[StudiedItem], elapsed_weeks: float, now: datetime) -> float:
    """Average confidence of items practised in the last week, per week of study."""
    recent = [
        i for i in items
        if i.last_practiced is not None and (now - i.last_practiced).total_seconds() <= 7 * 86400
    ]
    if not recent:
        return 0.0
    average = sum(i.confidence for i in recent) / len(recent)
    return average / max(1.0, elapsed_weeks)


def core_topics_confidence(items: list[StudiedItem]) -> Optional[float]:
    core = [i for i in items if _is_core(i)]
    if not core:
        return None
    return sum(i.confidence for i in core) / len(core)


class StopConditionService(BaseStageService):
    stage_name = "stop_conditions"

    def load(self) -> None:
        logger.info(
            "Stop conditions ready (threshold %.0f, %.0f week limit)",
            self.settings.readiness_threshold,
            self.settings.max_learning_weeks,
        )

    def run(self, **kwargs: Any) -> StopConditionResult:
        self.ensure_loaded()
        return self.should_stop_learning(
            kwargs["current_readiness"],
            kwargs["learning_started_at"],
            kwargs.get("studied_items") or [],
            kwargs["vacancy"],
            remaining_learning_hours=kwargs.get("remaining_learning_hours"),
            now=kwargs.get("now"),
        )

    def should_stop_learning(
        self,
        current_readiness: float,
        learning_started_at: datetime,
        studied_items: list[StudiedItem],
        vacancy: VacancyRecord,
        remaining_learning_hours: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> StopConditionResult:
        cfg = self.settings
        now = as_utc(now) or utcnow()
        started = as_utc(learning_started_at)
        signals: list[StopSignal] = []
        reasons: list[str] = []

        if current_readiness >= cfg.readiness_threshold:
            signals.append(StopSignal.READINESS_THRESHOLD_REACHED)
            reasons.append(f"{current_readiness:.0f}% ready (threshold {cfg.readiness_threshold:.0f}%)")

        elapsed_weeks = max(0.0, (now - started).total_seconds() / (7 * 86400))
        if elapsed_weeks > cfg.max_learning_weeks:
            signals.append(StopSignal.TIME_LIMIT_EXCEEDED)
            reasons.append(f"{elapsed_weeks:.1f} weeks of learning, over the {cfg.max_learning_weeks:.0f}-week limit")

        if remaining_learning_hours is None:
            remaining_learning_hours = (
                max(0.0, cfg.readiness_threshold - current_readiness) * HOURS_PER_READINESS_POINT
            )
        remaining_days = remaining_learning_hours / cfg.daily_study_hours

        days_until_expiry = None
        if vacancy.expires_at is not None:
            days_until_expiry = (vacancy.expires_at - now).total_seconds() / 86400
            if days_until_expiry < remaining_days or days_until_expiry <= 0:
                signals.append(StopSignal.DEADLINE_IMMINENT)
                if days_until_expiry <= 0:
                    reasons.append("Vacancy has already closed")
                else:
                    reasons.append(
                        f"Vacancy closes in {days_until_expiry:.0f} day(s), "
                        f"remaining study needs ~{remaining_days:.0f}"
                    )

        if studied_items:
            velocity = learning_velocity(studied_items, elapsed_weeks, now)
            if velocity < DIMINISHING_VELOCITY and current_readiness >= DIMINISHING_MIN_READINESS:
                signals.append(StopSignal.DIMINISHING_RETURNS)
                reasons.append(f"Learning velocity is low ({velocity:.1f} points per week)")
            core = core_topics_confidence(studied_items)
            if (
                core is not None
                and core >= CORE_TOPICS_MIN_CONFIDENCE
                and current_readiness >= CORE_TOPICS_MIN_READINESS
            ):
                signals.append(StopSignal.CORE_TOPICS_READY)
                reasons.append(f"Core topics at {core:.0f}% confidence")

        result = StopConditionResult(
            should_stop=bool(signals),
            current_readiness=current_readiness,
            signals=signals,
            reasons=reasons,
            urgency=_urgency(signals, current_readiness, days_until_expiry),
            recommended_action=_recommended_action(signals),
            estimated_remaining_days=round(remaining_days, 1),
            days_until_expiry=None if days_until_expiry is None else round(days_until_expiry, 1),
        )
        logger.debug(
            "Stop check for %s: stop=%s signals=%s",
            vacancy.id,
            result.should_stop,
            [s.value for s in signals],
        )
        return result


def _recommended_action(signals: list[StopSignal]) -> str:
    for signal, action in _ACTIONS:
        if signal in signals:
            return action
    return CONTINUE_LEARNING


def _urgency(signals: list[StopSignal], readiness: float, days_until_expiry: Optional[float]) -> StopUrgency:
    if StopSignal.DEADLINE_IMMINENT in signals and days_until_expiry is not None and days_until_expiry <= 3:
        return StopUrgency.CRITICAL
    if StopSignal.TIME_LIMIT_EXCEEDED in signals or StopSignal.DEADLINE_IMMINENT in signals:
        return StopUrgency.HIGH
    if readiness >= 85:
        return StopUrgency.HIGH
    if len(signals) >= 2 or StopSignal.READINESS_THRESHOLD_REACHED in signals:
        return StopUrgency.MEDIUM
    return StopUrgency.LOW
