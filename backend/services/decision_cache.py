"""Decision enforcement cache.

Holds the latest ApplicationDecision per vacancy and gates the apply and
learn flows on it. Two states per vacancy id: no decision yet, or decided.
Last write wins; there is no history.
"""

import json
import logging
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import NamedTuple, Optional

from pydantic import ValidationError

from models.schemas.common import utcnow
from models.schemas.decision import ApplicationDecision, DecisionCacheEntry, Verdict

logger = logging.getLogger(__name__)

ALLOWED = "ALLOWED"
NO_DECISION = "Run decide first"


class GateResult(NamedTuple):
    allowed: bool
    reason: str


class JsonDecisionStore:
    """Flat ``vacancy_id -> {decision, recorded_at}`` JSON file.

    Rewritten in full on every mutation through a temp file and
    ``os.replace`` so readers never see a half-written map.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> dict[str, DecisionCacheEntry]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            entries = {
                vacancy_id: DecisionCacheEntry(vacancy_id=vacancy_id, **item)
                for vacancy_id, item in raw.items()
            }
        except (OSError, json.JSONDecodeError, AttributeError, TypeError, ValidationError) as e:
            logger.warning("Ignoring unreadable decision cache %s: %s", self.path, e)
            return {}
        logger.info("Loaded %d decisions from %s", len(entries), self.path)
        return entries

    def save(self, entries: dict[str, DecisionCacheEntry]) -> None:
        payload = {
            vacancy_id: entry.model_dump(mode="json", exclude={"vacancy_id"})
            for vacancy_id, entry in entries.items()
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".decisions-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp, self.path)
        except OSError:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise


class DecisionCache:
    """Thread-safe verdict store. Every operation holds one coarse lock."""

    def __init__(self, store: Optional[JsonDecisionStore] = None):
        self._lock = threading.RLock()
        self._store = store
        self._entries: dict[str, DecisionCacheEntry] = store.load() if store else {}

    def set_decision(
        self,
        vacancy_id: str,
        decision: ApplicationDecision,
        recorded_at: Optional[datetime] = None,
    ) -> DecisionCacheEntry:
        entry = DecisionCacheEntry(
            vacancy_id=vacancy_id,
            decision=decision,
            recorded_at=recorded_at or utcnow(),
        )
        with self._lock:
            entries = dict(self._entries)
            entries[vacancy_id] = entry
            self._commit(entries)
        logger.debug("Recorded %s for %s", decision.verdict.value, vacancy_id)
        return entry

    def get_decision(self, vacancy_id: str) -> Optional[ApplicationDecision]:
        with self._lock:
            entry = self._entries.get(vacancy_id)
        return entry.decision if entry else None

    def get_entry(self, vacancy_id: str) -> Optional[DecisionCacheEntry]:
        with self._lock:
            return self._entries.get(vacancy_id)

    def can_apply(self, vacancy_id: str) -> GateResult:
        decision = self.get_decision(vacancy_id)
        if decision is None:
            return GateResult(False, NO_DECISION)
        if decision.verdict == Verdict.APPLY_NOW:
            return GateResult(True, ALLOWED)
        if decision.verdict == Verdict.LEARN_THEN_APPLY:
            return GateResult(
                False,
                f"Learn first: ~{decision.estimated_learning_hours:.0f}h of study remaining "
                f"({', '.join(decision.critical_missing_skills) or 'see skill gaps'})",
            )
        return GateResult(False, f"Skipped: {decision.summary or 'not a good fit'}")

    def can_learn(self, vacancy_id: str) -> GateResult:
        decision = self.get_decision(vacancy_id)
        if decision is None:
            return GateResult(False, NO_DECISION)
        if decision.verdict == Verdict.LEARN_THEN_APPLY:
            return GateResult(True, ALLOWED)
        if decision.verdict == Verdict.APPLY_NOW:
            return GateResult(False, "You are already ready: apply now")
        return GateResult(False, f"Skipped: {decision.summary or 'not a good fit'}")

    def all_decisions(self) -> list[DecisionCacheEntry]:
        with self._lock:
            return sorted(self._entries.values(), key=lambda e: e.recorded_at, reverse=True)

    def clear(self) -> None:
        with self._lock:
            self._commit({})
        logger.info("Decision cache cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, vacancy_id: object) -> bool:
        with self._lock:
            return vacancy_id in self._entries

    def _commit(self, entries: dict[str, DecisionCacheEntry]) -> None:
        # Memory only changes once the store has accepted the new map.
        if self._store is not None:
            self._store.save(entries)
        self._entries = entries
