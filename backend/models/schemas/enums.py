"""Shared enumerations for profiles and vacancies."""

from enum import Enum, IntEnum


class SkillCategory(str, Enum):
    UNKNOWN = "unknown"
    CORE_PLATFORM = "core_platform"
    ARCHITECTURE = "architecture"
    CLOUD = "cloud"
    DEVOPS = "devops"
    DATABASES = "databases"
    MESSAGING = "messaging"
    TESTING = "testing"
    SECURITY = "security"
    OBSERVABILITY = "observability"
    FRONTEND = "frontend"
    SOFT_SKILLS = "soft_skills"
    METHODOLOGIES = "methodologies"
    MACHINE_LEARNING = "machine_learning"


class SeniorityLevel(IntEnum):
    """Ordered seniority ladder. UNKNOWN sorts lowest but is never compared."""
    UNKNOWN = 0
    INTERN = 1
    JUNIOR = 2
    MIDDLE = 3
    SENIOR = 4
    LEAD = 5
    ARCHITECT = 6
    PRINCIPAL = 7

    @classmethod
    def parse(cls, value):
        """Accept an enum member, its integer value or a name like "senior" / "Mid"."""
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, str):
            key = value.strip().lower().replace("-", "_").replace(" ", "_")
            if key.isdigit():
                return cls(int(key))
            if key in _SENIORITY_ALIASES:
                return _SENIORITY_ALIASES[key]
            try:
                return cls[key.upper()]
            except KeyError:
                raise ValueError(f"Unknown seniority level: {value!r}")
        if value is None:
            return cls.UNKNOWN
        raise ValueError(f"Unknown seniority level: {value!r}")


_SENIORITY_ALIASES = {
    "": SeniorityLevel.UNKNOWN,
    "entry": SeniorityLevel.JUNIOR,
    "mid": SeniorityLevel.MIDDLE,
    "mid_level": SeniorityLevel.MIDDLE,
    "staff": SeniorityLevel.LEAD,
    "tech_lead": SeniorityLevel.LEAD,
    "team_lead": SeniorityLevel.LEAD,
}


class RemotePolicy(str, Enum):
    UNKNOWN = "unknown"
    ON_SITE = "on_site"
    HYBRID = "hybrid"
    FULLY_REMOTE = "fully_remote"
    REMOTE_FRIENDLY = "remote_friendly"


class EngagementType(str, Enum):
    UNKNOWN = "unknown"
    EMPLOYMENT = "employment"
    CONTRACT_B2B = "contract_b2b"
    FREELANCE = "freelance"
    INSIDE_IR35 = "inside_ir35"
