"""Tests for the decision enforcement cache."""

import json
import threading
from datetime import datetime, timezone

import pytest

from models.schemas.decision import ApplicationDecision, SkillGap, Verdict
from services.decision_cache import ALLOWED, NO_DECISION, DecisionCache, JsonDecisionStore


def _make_decision(vacancy_id="v1", verdict=Verdict.APPLY_NOW, **fields):
    return ApplicationDecision(vacancy_id=vacancy_id, verdict=verdict, **fields)


class TestGating:
    def setup_method(self):
        self.cache = DecisionCache()

    def test_no_decision(self):
        assert self.cache.can_apply("v1") == (False, NO_DECISION)
        assert self.cache.can_learn("v1") == (False, "Run decide first")
        assert self.cache.get_decision("v1") is None

    def test_apply_now(self):
        self.cache.set_decision("v1", _make_decision())
        assert self.cache.can_apply("v1") == (True, ALLOWED)
        allowed, reason = self.cache.can_learn("v1")
        assert not allowed
        assert "already ready" in reason

    def test_learn_then_apply(self):
        decision = _make_decision(
            verdict=Verdict.LEARN_THEN_APPLY,
            estimated_learning_hours=56,
            skill_gaps=[SkillGap(skill="Docker", target_level=4, hours_to_learn=56, is_critical=True)],
            critical_missing_skills=["Docker"],
        )
        self.cache.set_decision("v1", decision)
        allowed, reason = self.cache.can_apply("v1")
        assert not allowed
        assert "~56h" in reason
        assert "Docker" in reason
        assert self.cache.can_learn("v1") == (True, "ALLOWED")

    def test_skip_cites_rationale(self):
        decision = _make_decision(verdict=Verdict.SKIP, reasoning=["Poor match (20%)."])
        self.cache.set_decision("v1", decision)
        for gate in (self.cache.can_apply, self.cache.can_learn):
            allowed, reason = gate("v1")
            assert not allowed
            assert "Poor match (20%)." in reason

    def test_last_write_wins(self):
        self.cache.set_decision("v1", _make_decision(verdict=Verdict.SKIP))
        self.cache.set_decision("v1", _make_decision(verdict=Verdict.APPLY_NOW))
        assert len(self.cache) == 1
        assert self.cache.can_apply("v1").allowed

    def test_clear(self):
        self.cache.set_decision("v1", _make_decision())
        self.cache.clear()
        assert len(self.cache) == 0
        assert self.cache.can_apply("v1").reason == NO_DECISION

    def test_all_decisions_newest_first(self):
        early = datetime(2026, 3, 1, tzinfo=timezone.utc)
        late = datetime(2026, 3, 2, tzinfo=timezone.utc)
        self.cache.set_decision("a", _make_decision("a"), recorded_at=early)
        self.cache.set_decision("b", _make_decision("b"), recorded_at=late)
        assert [e.vacancy_id for e in self.cache.all_decisions()] == ["b", "a"]


class TestConcurrency:
    def test_parallel_writers(self):
        cache = DecisionCache()

        def writer(worker):
            for i in range(50):
                cache.set_decision(f"{worker}-{i}", _make_decision(f"{worker}-{i}"))
                cache.can_apply(f"{worker}-{i}")

        threads = [threading.Thread(target=writer, args=(w,)) for w in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(cache) == 400
        assert all(cache.can_apply(f"{w}-49").allowed for w in range(8))


class TestPersistence:
    def test_round_trip(self, tmp_path):
        path = tmp_path / "decisions.json"
        cache = DecisionCache(JsonDecisionStore(path))
        cache.set_decision("v1", _make_decision(verdict=Verdict.LEARN_THEN_APPLY, estimated_learning_hours=12))

        reloaded = DecisionCache(JsonDecisionStore(path))
        decision = reloaded.get_decision("v1")
        assert decision.verdict == Verdict.LEARN_THEN_APPLY
        assert decision.estimated_learning_hours == 12
        assert reloaded.get_entry("v1").recorded_at == cache.get_entry("v1").recorded_at

    def test_flat_map_on_disk(self, tmp_path):
        path = tmp_path / "decisions.json"
        DecisionCache(JsonDecisionStore(path)).set_decision("v1", _make_decision())
        raw = json.loads(path.read_text())
        assert list(raw) == ["v1"]
        assert set(raw["v1"]) == {"decision", "recorded_at"}
        assert raw["v1"]["decision"]["verdict"] == "apply_now"

    def test_clear_is_persisted(self, tmp_path):
        path = tmp_path / "decisions.json"
        cache = DecisionCache(JsonDecisionStore(path))
        cache.set_decision("v1", _make_decision())
        cache.clear()
        assert len(DecisionCache(JsonDecisionStore(path))) == 0

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "decisions.json"
        path.write_text("{broken")
        cache = DecisionCache(JsonDecisionStore(path))
        assert len(cache) == 0
        cache.set_decision("v1", _make_decision())
        assert json.loads(path.read_text())["v1"]["decision"]["vacancy_id"] == "v1"

    def test_missing_file_starts_empty(self, tmp_path):
        assert len(DecisionCache(JsonDecisionStore(tmp_path / "nested" / "d.json"))) == 0

    def test_failed_save_keeps_previous_state(self, tmp_path, monkeypatch):
        store = JsonDecisionStore(tmp_path / "decisions.json")
        cache = DecisionCache(store)
        cache.set_decision("v1", _make_decision(verdict=Verdict.SKIP))

        def disk_full(entries):
            raise OSError("disk full")

        monkeypatch.setattr(store, "save", disk_full)
        with pytest.raises(OSError):
            cache.set_decision("v1", _make_decision(verdict=Verdict.APPLY_NOW))
        with pytest.raises(OSError):
            cache.set_decision("v2", _make_decision(vacancy_id="v2"))

        assert cache.get_decision("v1").verdict == Verdict.SKIP
        assert not cache.can_apply("v1").allowed
        assert cache.can_apply("v2") == (False, NO_DECISION)

    def test_failed_clear_keeps_entries(self, tmp_path, monkeypatch):
        store = JsonDecisionStore(tmp_path / "decisions.json")
        cache = DecisionCache(store)
        cache.set_decision("v1", _make_decision())

        def disk_full(entries):
            raise OSError("disk full")

        monkeypatch.setattr(store, "save", disk_full)
        with pytest.raises(OSError):
            cache.clear()
        assert cache.can_apply("v1") == (True, ALLOWED)
