import os

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings


def _parse_cors_origins() -> list[str] | None:
    """Parse CORS_ORIGINS env var as comma-separated string or JSON list."""
    raw = os.environ.get("CORS_ORIGINS")
    if not raw:
        return None
    if raw.startswith("["):
        import json
        return json.loads(raw)
    return [o.strip() for o in raw.split(",") if o.strip()]


class ScoringWeights(BaseModel):
    """Weight of each scoring factor in the overall score. Must sum to 1."""
    skill_depth: float = Field(0.30, ge=0, le=1)
    experience_relevance: float = Field(0.15, ge=0, le=1)
    seniority_fit: float = Field(0.15, ge=0, le=1)
    salary_positioning: float = Field(0.10, ge=0, le=1)
    freshness: float = Field(0.10, ge=0, le=1)
    market_competition: float = Field(0.10, ge=0, le=1)
    platform_response: float = Field(0.10, ge=0, le=1)

    @model_validator(mode="after")
    def check_sum(self) -> "ScoringWeights":
        total = sum(self.model_dump().values())
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total:.4f}")
        return self


class Settings(BaseSettings):
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]
    debug: bool = False
    log_level: str = "INFO"

    # Scoring
    scoring_weights: ScoringWeights = ScoringWeights()
    freshness_half_life_days: float = 14.0
    freshness_floor: float = 20.0
    platform_rates_path: str = ""  # JSON {platform: rate}; empty = built-in priors

    # Decision engine
    readiness_threshold: float = 75.0
    criticality_weight: float = 5.0  # readiness points per missing level of a required skill
    daily_study_hours: float = 2.0
    default_runway_days: int = 30  # when a vacancy has no expiry
    apply_now_window_days: int = 2
    quick_win_hours: float = 4.0
    min_match_score: float = 30.0
    max_critical_gaps: int = 3
    max_gap_hours: float = 80.0

    # Learning stop conditions
    max_learning_weeks: float = 4.0

    # Advisors
    min_applications_for_advice: int = 10
    no_response_threshold: float = 0.8

    # Decision cache
    decision_cache_path: str = ""  # empty = in-memory only
    decide_rate_limit: str = "30/minute"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
        "extra": "ignore",
    }


_cors_override = _parse_cors_origins()
settings = Settings(**{"cors_origins": _cors_override} if _cors_override else {})
