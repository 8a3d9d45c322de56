"""Tests for Stage 6: Competition timing."""

from datetime import datetime, timedelta, timezone

from models.schemas.advice import CompetitionLevel
from services.pipeline.competition_timing import (
    CompetitionTimingService,
    count_similar_roles,
    timing_score,
)


class TestAnalyze:
    def setup_method(self):
        self.svc = CompetitionTimingService()
        self.svc._loaded = True

    def test_fresh_popular_posting_waits(self, make_vacancy, now):
        vacancy = make_vacancy(
            title="Software Engineer",
            source_platform="linkedin",
            posted_date=now - timedelta(hours=12),
        )
        result = self.svc.analyze(vacancy, [], now=now)
        assert result.competition_level == CompetitionLevel.HIGH
        assert result.recommended_delay_days == 3
        assert result.recommendation.startswith("Wait 3 day(s)")
        assert result.applicant_volume >= 0.7
        assert "Monday: the weekend backlog lands today" in result.signals

    def test_old_posting_is_quiet(self, make_vacancy, now):
        vacancy = make_vacancy(title="Senior Rust Engineer", posted_date=now - timedelta(days=40))
        result = self.svc.analyze(vacancy, now=now)
        assert result.competition_level == CompetitionLevel.LOW
        assert result.recommended_delay_days == 0
        assert result.recommendation == "Apply now: competition is low"

    def test_middle_aged_posting_is_medium(self, make_vacancy, now):
        vacancy = make_vacancy(title="Senior Rust Engineer", posted_date=now - timedelta(days=5))
        result = self.svc.analyze(vacancy, now=now)
        assert result.competition_level == CompetitionLevel.MEDIUM

    def test_peak_season(self, make_vacancy):
        january = datetime(2026, 1, 5, 12, tzinfo=timezone.utc)
        fresh = make_vacancy(
            title="Software Engineer",
            source_platform="linkedin",
            posted_date=january - timedelta(hours=6),
        )
        quiet = make_vacancy(title="Senior Rust Engineer", posted_date=january - timedelta(days=5))
        assert self.svc.analyze(fresh, now=january).competition_level == CompetitionLevel.VERY_HIGH
        assert self.svc.analyze(quiet, now=january).competition_level == CompetitionLevel.HIGH

    def test_saturated_market(self, make_vacancy, now):
        vacancy = make_vacancy(posted_date=now - timedelta(days=5))
        recent = [make_vacancy(f"r{i}", posted_date=now - timedelta(days=i + 1)) for i in range(10)]
        result = self.svc.analyze(vacancy, recent, now=now)
        assert result.competition_level == CompetitionLevel.HIGH
        assert "10 similar roles posted in the last month" in result.signals

    def test_quiet_market_caps_level(self, make_vacancy, now):
        vacancy = make_vacancy(
            title="Software Engineer",
            source_platform="linkedin",
            posted_date=now - timedelta(days=5),
        )
        unrelated = [make_vacancy("other", title="Data Analyst", posted_date=now - timedelta(days=2))]
        assert self.svc.analyze(vacancy, [], now=now).competition_level == CompetitionLevel.HIGH
        assert self.svc.analyze(vacancy, unrelated, now=now).competition_level == CompetitionLevel.MEDIUM

    def test_weekend_lowers_medium(self, make_vacancy, now):
        saturday = now + timedelta(days=5)
        vacancy = make_vacancy(title="Senior Rust Engineer", posted_date=saturday - timedelta(days=5))
        result = self.svc.analyze(vacancy, now=saturday)
        assert result.competition_level == CompetitionLevel.LOW
        assert "Weekend: fewer candidates apply" in result.signals

    def test_closing_soon_applies_immediately(self, make_vacancy, now):
        vacancy = make_vacancy(
            title="Software Engineer",
            source_platform="linkedin",
            posted_date=now - timedelta(hours=12),
            expires_at=now + timedelta(days=2),
        )
        result = self.svc.analyze(vacancy, now=now)
        assert result.competition_level == CompetitionLevel.LOW
        assert result.recommended_delay_days == 0


class TestWindows:
    def setup_method(self):
        self.svc = CompetitionTimingService()
        self.svc._loaded = True

    def test_ranked_apply_now_windows(self, make_vacancy, now):
        vacancies = [
            make_vacancy("fresh", title="Software Engineer", source_platform="linkedin",
                         posted_date=now - timedelta(hours=12)),
            make_vacancy("mid", title="Senior Rust Engineer", posted_date=now - timedelta(days=5)),
            make_vacancy("old", title="Senior Rust Engineer", posted_date=now - timedelta(days=40)),
        ]
        windows = self.svc.find_optimal_windows(vacancies, now=now)
        assert [w.vacancy.id for w in windows] == ["old", "mid"]
        assert [w.score for w in windows] == [80, 65]

    def test_timing_score(self):
        assert timing_score(CompetitionLevel.LOW, 0) == 80
        assert timing_score(CompetitionLevel.HIGH, 3) == 25
        assert timing_score(CompetitionLevel.VERY_HIGH, 10) == 0


class TestSimilarRoles:
    def test_ignores_self_and_old_postings(self, make_vacancy, now):
        vacancy = make_vacancy(posted_date=now)
        recent = [
            vacancy,
            make_vacancy("old", posted_date=now - timedelta(days=45)),
            make_vacancy("undated", posted_date=None),
            make_vacancy("similar", title="Python Developer (Senior)", posted_date=now),
            make_vacancy("different", title="Senior Designer", posted_date=now),
        ]
        assert count_similar_roles(vacancy, recent, now) == 1
