"""Tests for the pipeline orchestrator."""

import pytest

from models.schemas.decision import Verdict
from models.schemas.eligibility import FilterConfig
from services.decision_cache import DecisionCache
from services.pipeline.orchestrator import decide_all, decide_vacancy
from services.pipeline.stage_registry import clear as clear_registry


@pytest.fixture(autouse=True)
def _reset_registry():
    """Clear stage registry before each test."""
    clear_registry()
    yield
    clear_registry()


@pytest.mark.integration
class TestDecideAll:
    def setup_method(self):
        self.cache = DecisionCache()

    def test_filter_score_decide_record(self, profile, make_vacancy, now):
        vacancies = [
            make_vacancy("skip-me", required_skills=["Rust", "Haskell", "Erlang", "Elixir"]),
            make_vacancy("on-site", remote_policy="on_site"),
            make_vacancy("learn", required_skills=["Python", "FastAPI", "PostgreSQL", "Docker"]),
            make_vacancy("apply"),
        ]
        decisions = decide_all(vacancies, profile, self.cache, now=now)

        assert [d.vacancy_id for d in decisions] == ["apply", "learn", "skip-me"]
        assert [d.verdict for d in decisions] == [Verdict.APPLY_NOW, Verdict.LEARN_THEN_APPLY, Verdict.SKIP]
        assert len(self.cache) == 3
        assert "on-site" not in self.cache
        assert self.cache.can_apply("apply").allowed
        assert self.cache.can_learn("learn").allowed
        assert self.cache.can_apply("on-site").reason == "Run decide first"

    def test_sorted_by_match_within_verdict(self, profile, make_vacancy, now):
        vacancies = [
            make_vacancy("slower", source_platform="linkedin"),
            make_vacancy("best"),
        ]
        decisions = decide_all(vacancies, profile, self.cache, now=now)
        assert [d.verdict for d in decisions] == [Verdict.APPLY_NOW, Verdict.APPLY_NOW]
        assert decisions[0].vacancy_id == "best"
        assert decisions[0].match_score > decisions[1].match_score

    def test_explicit_filter_config(self, profile, make_vacancy, now):
        vacancies = [make_vacancy("hybrid", remote_policy="hybrid")]
        config = FilterConfig(excluded_remote_policies=set())
        decisions = decide_all(vacancies, profile, self.cache, filter_config=config, now=now)
        assert [d.vacancy_id for d in decisions] == ["hybrid"]

    def test_redecide_overwrites(self, profile, make_vacancy, now):
        decide_vacancy(make_vacancy("v", title=""), profile, self.cache, now=now)
        assert self.cache.get_decision("v").verdict == Verdict.SKIP
        decide_vacancy(make_vacancy("v"), profile, self.cache, now=now)
        assert self.cache.get_decision("v").verdict == Verdict.APPLY_NOW
        assert len(self.cache) == 1

    def test_none_profile_raises(self, vacancy, now):
        with pytest.raises(ValueError):
            decide_all([vacancy], None, self.cache, now=now)
