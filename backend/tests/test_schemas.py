"""Tests for the contract-level validation of the schemas."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from config import ScoringWeights
from models.schemas.decision import ApplicationDecision, SkillGap, Verdict
from models.schemas.eligibility import FilterConfig
from models.schemas.enums import SeniorityLevel
from models.schemas.history import ApplicationStatus, InterviewFeedback, JobApplication
from models.schemas.match_score import RecommendedAction, Tier
from models.schemas.profile import CandidateProfile, Experience, SkillEntry
from models.schemas.vacancy import VacancyRecord


class TestProfile:
    def test_duplicate_skill_names_rejected(self):
        with pytest.raises(ValidationError):
            CandidateProfile(skills=[
                SkillEntry(name="Python"),
                SkillEntry(name=" python "),
            ])

    def test_alias_of_listed_skill_rejected(self):
        with pytest.raises(ValidationError, match="same skill as 'K8s'"):
            CandidateProfile(skills=[
                SkillEntry(name="K8s", proficiency=2),
                SkillEntry(name="Kubernetes", proficiency=4),
            ])

    def test_proficiency_range(self):
        with pytest.raises(ValidationError):
            SkillEntry(name="Python", proficiency=6)

    def test_experience_years(self):
        exp = Experience(
            start_date=datetime(2020, 1, 1, tzinfo=timezone.utc),
            end_date=datetime(2022, 1, 1, tzinfo=timezone.utc),
        )
        assert exp.duration_years() == pytest.approx(2.0, abs=0.01)

    def test_naive_dates_become_utc(self):
        exp = Experience(start_date=datetime(2020, 1, 1))
        assert exp.start_date.tzinfo is not None


class TestVacancy:
    def test_id_required(self):
        with pytest.raises(ValidationError):
            VacancyRecord(id="")

    def test_expiry_before_posting_rejected(self):
        with pytest.raises(ValidationError):
            VacancyRecord(
                id="v1",
                posted_date=datetime(2026, 3, 2, tzinfo=timezone.utc),
                expires_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
            )

    def test_malformed(self):
        assert VacancyRecord(id="v1", title="Dev").is_malformed
        assert VacancyRecord(id="v1", required_skills=["Python"]).is_malformed
        assert not VacancyRecord(id="v1", title="Dev", required_skills=["Python"]).is_malformed

    def test_offered_salary_prefers_max(self):
        assert VacancyRecord(id="v1", salary_min=3000, salary_max=5000).offered_salary == 5000
        assert VacancyRecord(id="v1", salary_min=3000).offered_salary == 3000
        assert VacancyRecord(id="v1").offered_salary is None


class TestEnums:
    @pytest.mark.parametrize("raw,expected", [
        ("Mid", SeniorityLevel.MIDDLE),
        ("senior", SeniorityLevel.SENIOR),
        ("Tech Lead", SeniorityLevel.LEAD),
        (4, SeniorityLevel.SENIOR),
        (None, SeniorityLevel.UNKNOWN),
    ])
    def test_parse_seniority(self, raw, expected):
        assert SeniorityLevel.parse(raw) == expected

    def test_parse_seniority_unknown_name(self):
        with pytest.raises(ValueError):
            SeniorityLevel.parse("wizard")

    def test_parse_application_status(self):
        assert JobApplication(status="ghosted").status == ApplicationStatus.GHOSTED
        assert JobApplication(status=5).status == ApplicationStatus.INTERVIEW

    def test_tier_is_monotonic(self):
        ranks = [Tier.for_score(s).rank for s in range(0, 101)]
        assert ranks == sorted(ranks)
        assert Tier.for_score(0) == Tier.LONG_SHOT
        assert Tier.for_score(100) == Tier.TOP_CANDIDATE

    @pytest.mark.parametrize("score,tier", [
        (39.99, Tier.LONG_SHOT),
        (40, Tier.AVERAGE),
        (55, Tier.COMPETITIVE),
        (70, Tier.STRONG_CONTENDER),
        (85, Tier.TOP_CANDIDATE),
    ])
    def test_tier_boundaries(self, score, tier):
        assert Tier.for_score(score) == tier

    def test_recommended_action_bands(self):
        assert RecommendedAction.for_score(70) == RecommendedAction.APPLY
        assert RecommendedAction.for_score(50) == RecommendedAction.PREPARE_AND_APPLY
        assert RecommendedAction.for_score(30) == RecommendedAction.SKILL_UP_FIRST
        assert RecommendedAction.for_score(29.9) == RecommendedAction.SKIP


class TestDecisionContracts:
    def test_gap_levels(self):
        with pytest.raises(ValidationError):
            SkillGap(skill="Python", current_level=4, target_level=3)

    def test_summary_joins_reasoning(self):
        decision = ApplicationDecision(vacancy_id="v1", reasoning=["Poor match.", "Skip it."])
        assert decision.summary == "Poor match. Skip it."
        assert decision.verdict == Verdict.SKIP

    def test_quick_wins_must_be_listed_gaps(self):
        gap = SkillGap(skill="Docker", current_level=3, target_level=4, hours_to_learn=3)
        decision = ApplicationDecision(
            vacancy_id="v1", verdict=Verdict.LEARN_THEN_APPLY, skill_gaps=[gap], quick_wins=["Docker"],
        )
        assert decision.quick_wins == ["Docker"]
        with pytest.raises(ValidationError):
            ApplicationDecision(vacancy_id="v1", verdict=Verdict.LEARN_THEN_APPLY, quick_wins=["Kafka"])
        with pytest.raises(ValidationError):
            ApplicationDecision(vacancy_id="v1", critical_missing_skills=["Kafka"])

    def test_skip_has_no_apply_by(self):
        with pytest.raises(ValidationError):
            ApplicationDecision(
                vacancy_id="v1", verdict=Verdict.SKIP, apply_by=datetime(2026, 3, 4, tzinfo=timezone.utc),
            )

    def test_apply_now_needs_no_learning(self):
        with pytest.raises(ValidationError):
            ApplicationDecision(vacancy_id="v1", verdict=Verdict.APPLY_NOW, estimated_learning_hours=6)

    def test_feedback_failure(self):
        assert InterviewFeedback(outcome="Rejected").is_failure
        assert InterviewFeedback(outcome="Failed").is_failure
        assert not InterviewFeedback(outcome="Passed").is_failure


class TestConfigContracts:
    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValidationError):
            ScoringWeights(skill_depth=0.5)

    def test_default_weights(self):
        assert sum(ScoringWeights().model_dump().values()) == pytest.approx(1.0)

    def test_geo_tags_normalized(self):
        config = FilterConfig(excluded_geo_restrictions=["UK_Only", "EU Only"])
        assert config.excluded_geo_restrictions == ["uk-only", "eu-only"]
