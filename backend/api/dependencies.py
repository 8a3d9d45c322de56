"""Shared dependencies for API routes."""

import logging

from config import settings
from services.decision_cache import DecisionCache, JsonDecisionStore

logger = logging.getLogger(__name__)

_cache: DecisionCache | None = None


def get_decision_cache() -> DecisionCache:
    """The process-wide decision cache, built on first use."""
    global _cache
    if _cache is None:
        if settings.decision_cache_path:
            logger.info("Persisting decisions to %s", settings.decision_cache_path)
            _cache = DecisionCache(JsonDecisionStore(settings.decision_cache_path))
        else:
            _cache = DecisionCache()
    return _cache
