"""Stage 5: Strategy advisor - systemic patterns in the application history.

Advisory only: pivots feed reasoning and never gate apply/learn actions.
"""

import logging
from collections import Counter, defaultdict
from typing import Any, Optional

from models.schemas.advice import Impact, Pivot, StrategyRecommendation
from models.schemas.history import ApplicationStatus, InterviewFeedback, JobApplication
from services.pipeline.base import BaseStageService

logger = logging.getLogger(__name__)

# Employer reacted in some way.
RESPONDED = frozenset({
    ApplicationStatus.VIEWED,
    ApplicationStatus.SCREENING,
    ApplicationStatus.INTERVIEW,
    ApplicationStatus.OFFER,
    ApplicationStatus.REJECTED,
})
INTERVIEWED = frozenset({ApplicationStatus.INTERVIEW, ApplicationStatus.OFFER})
NOT_SENT = frozenset({ApplicationStatus.PENDING, ApplicationStatus.RESUME_READY})

STARTUP_KEYWORDS = ("startup", "seed", "series a", "series b")
ENTERPRISE_KEYWORDS = ("enterprise", "fortune", "global", "corporation")

MIN_GROUP_SIZE = 5
MIN_DATED_APPLICATIONS = 20
MIN_FEEDBACK = 5
MIN_ROUND_FAILURES = 3

_ADVICE_HEADINGS = [
    (Impact.CRITICAL, "Address these first:"),
    (Impact.HIGH, "High-impact changes:"),
    (Impact.MEDIUM, "Optimisation opportunities:"),
    (Impact.LOW, "Tips:"),
]


def response_rate(apps: list[JobApplication]) -> float:
    if not apps:
        return 0.0
    return sum(1 for a in apps if a.status in RESPONDED) / len(apps)


def strategy_effectiveness(apps: list[JobApplication]) -> int:
    """30 x response rate + 40 x interview rate + 30 x offer rate, as 0-100."""
    if not apps:
        return 0
    interview = sum(1 for a in apps if a.status in INTERVIEWED) / len(apps)
    offer = sum(1 for a in apps if a.status == ApplicationStatus.OFFER) / len(apps)
    score = 30 * response_rate(apps) + 40 * interview + 30 * offer
    return int(round(max(0.0, min(100.0, score))))


class StrategyAdvisorService(BaseStageService):
    stage_name = "strategy_advisor"

    def load(self) -> None:
        logger.info(
            "Strategy advisor ready (needs %d applications)",
            self.settings.min_applications_for_advice,
        )

    def run(self, **kwargs: Any) -> StrategyRecommendation:
        self.ensure_loaded()
        return self.analyze(kwargs.get("applications") or [], kwargs.get("feedback") or [])

    def analyze(
        self,
        applications: list[JobApplication],
        feedback: Optional[list[InterviewFeedback]] = None,
    ) -> StrategyRecommendation:
        feedback = feedback or []
        minimum = self.settings.min_applications_for_advice
        sent = [a for a in applications if a.status not in NOT_SENT]

        if len(sent) < minimum:
            return StrategyRecommendation(
                applications_analyzed=len(sent),
                advice=[
                    f"Need more data: apply to {minimum - len(sent)} more position(s) "
                    f"before strategy analysis"
                ],
            )

        checks = [
            self._no_response(sent),
            self._company_size(sent),
            self._remote_policy(sent),
            self._match_threshold(sent),
            self._apply_timing(sent),
            self._interview_bottleneck(feedback),
        ]
        pivots = [p for p in checks if p is not None]
        recommendation = StrategyRecommendation(
            pivots=pivots,
            effectiveness=strategy_effectiveness(sent),
            advice=_advice(pivots, len(sent)),
            applications_analyzed=len(sent),
        )
        logger.info(
            "Strategy analysis: %d applications, %d pivots, effectiveness %d",
            len(sent),
            len(pivots),
            recommendation.effectiveness,
        )
        return recommendation

    # ------------------------------------------------------------------
    # Pattern checks
    # ------------------------------------------------------------------

    def _no_response(self, apps: list[JobApplication]) -> Optional[Pivot]:
        silent = 1.0 - response_rate(apps)
        if silent <= self.settings.no_response_threshold:
            return None
        return Pivot(
            type="no_response",
            finding=f"{silent:.0%} of {len(apps)} applications got no response",
            recommendation="Rework the resume and target closer matches before sending more applications",
            impact=Impact.CRITICAL,
            confidence=Impact.HIGH if len(apps) >= 2 * self.settings.min_applications_for_advice else Impact.MEDIUM,
        )

    def _company_size(self, apps: list[JobApplication]) -> Optional[Pivot]:
        groups: dict[str, list[JobApplication]] = defaultdict(list)
        for app in apps:
            company = app.company.lower()
            if any(k in company for k in STARTUP_KEYWORDS):
                groups["Startups"].append(app)
            elif any(k in company for k in ENTERPRISE_KEYWORDS):
                groups["Enterprise"].append(app)
            else:
                groups["Mid-size"].append(app)

        rated = sorted(
            ((name, response_rate(group), len(group)) for name, group in groups.items()
             if len(group) >= MIN_GROUP_SIZE),
            key=lambda x: x[1],
        )
        if len(rated) < 2:
            return None
        worst, best = rated[0], rated[-1]
        if best[1] <= worst[1] * 1.5 or best[1] == worst[1]:
            return None
        return Pivot(
            type="company_size",
            finding=f"{worst[0]}: {worst[1]:.0%} response rate vs. {best[0]}: {best[1]:.0%}",
            recommendation=f"Focus on {best[0].lower()} companies and halve {worst[0].lower()} applications",
            impact=Impact.HIGH,
            confidence=Impact.HIGH if best[2] >= 10 else Impact.MEDIUM,
        )

    def _remote_policy(self, apps: list[JobApplication]) -> Optional[Pivot]:
        remote = [a for a in apps if "remote" in a.notes.lower()]
        onsite = [a for a in apps if "onsite" in a.notes.lower() or "on-site" in a.notes.lower()]
        if len(remote) < MIN_GROUP_SIZE or len(onsite) < MIN_GROUP_SIZE:
            return None
        remote_rate, onsite_rate = response_rate(remote), response_rate(onsite)
        if abs(remote_rate - onsite_rate) <= 0.2:
            return None
        better, worse = ("Remote", "On-site") if remote_rate > onsite_rate else ("On-site", "Remote")
        return Pivot(
            type="remote_policy",
            finding=(
                f"{better}: {max(remote_rate, onsite_rate):.0%} vs. "
                f"{worse}: {min(remote_rate, onsite_rate):.0%}"
            ),
            recommendation=f"Prioritise {better.lower()} positions",
            impact=Impact.MEDIUM,
            confidence=Impact.MEDIUM,
        )

    def _match_threshold(self, apps: list[JobApplication]) -> Optional[Pivot]:
        scored = [a for a in apps if a.match_score > 0]
        if len(scored) < self.settings.min_applications_for_advice:
            return None
        high = [a for a in scored if a.match_score >= 80]
        low = [a for a in scored if a.match_score < 60]
        high_rate, low_rate = response_rate(high), response_rate(low)
        if len(low) >= MIN_GROUP_SIZE and low_rate < 0.1 and high_rate > low_rate * 3 and high_rate > 0:
            return Pivot(
                type="match_threshold",
                finding=f"Below 60% match: {low_rate:.0%} response vs. 80%+ match: {high_rate:.0%}",
                recommendation=f"Stop applying below 60% match ({len(low)} applications with little return)",
                impact=Impact.HIGH,
                confidence=Impact.HIGH,
            )
        return None

    def _apply_timing(self, apps: list[JobApplication]) -> Optional[Pivot]:
        dated = [a for a in apps if a.applied_at is not None]
        if len(dated) < MIN_DATED_APPLICATIONS:
            return None
        by_day: dict[str, list[JobApplication]] = defaultdict(list)
        for app in dated:
            by_day[app.applied_at.strftime("%A")].append(app)
        ranked = sorted(
            ((day, response_rate(group), len(group)) for day, group in by_day.items()),
            key=lambda x: x[1],
        )
        if len(ranked) < 2:
            return None
        worst, best = ranked[0], ranked[-1]
        if best[2] >= MIN_GROUP_SIZE and best[1] > worst[1] * 1.5 and best[1] > worst[1]:
            return Pivot(
                type="application_timing",
                finding=f"{best[0]}: {best[1]:.0%} vs. {worst[0]}: {worst[1]:.0%}",
                recommendation=f"Apply on {best[0]}s for better response rates",
                impact=Impact.LOW,
                confidence=Impact.MEDIUM,
            )
        return None

    def _interview_bottleneck(self, feedback: list[InterviewFeedback]) -> Optional[Pivot]:
        if len(feedback) < MIN_FEEDBACK:
            return None
        failures = [f for f in feedback if f.is_failure]
        if len(failures) < MIN_ROUND_FAILURES:
            return None
        round_name, count = Counter(f.round or "unknown" for f in failures).most_common(1)[0]
        if count < MIN_ROUND_FAILURES:
            return None
        return Pivot(
            type="interview_bottleneck",
            finding=f"{count} failures at the {round_name} round",
            recommendation=f"Master {round_name} interviews before applying to more positions",
            impact=Impact.CRITICAL,
            confidence=Impact.HIGH,
        )


def _advice(pivots: list[Pivot], total: int) -> list[str]:
    if not pivots:
        return [
            "Current strategy is working, keep going",
            f"{total} applications analysed, no pivots needed",
        ]
    advice = []
    for impact, heading in _ADVICE_HEADINGS:
        group = [p for p in pivots if p.impact == impact]
        if group:
            advice.append(heading)
            advice.extend(f"- {p.recommendation}" for p in group)
    return advice
