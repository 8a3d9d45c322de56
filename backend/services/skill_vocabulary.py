"""Skill vocabulary shared by the scoring and decision stages.

Skills are compared by canonical form: lower-cased, whitespace collapsed and
aliases resolved, so "K8s", "kubernetes" and " Kubernetes " are one skill.
Also holds the static tables the stages use to reason about a skill:
category, per-level learning cost and market popularity.
"""

import logging
import re
from typing import Iterable, Optional

from rapidfuzz import fuzz

from models.schemas.enums import SkillCategory
from models.schemas.profile import CandidateProfile, SkillEntry

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Aliases -> canonical form
# ---------------------------------------------------------------------------
SKILL_SYNONYMS: dict[str, str] = {
    # Languages and runtimes
    "js": "javascript", "es6": "javascript",
    "ts": "typescript",
    "py": "python", "python3": "python",
    "golang": "go",
    "c sharp": "c#", "csharp": "c#",
    "cpp": "c++",
    "dotnet": ".net", ".net core": ".net", "asp.net core": "asp.net",
    "node": "node.js", "nodejs": "node.js",
    # Frontend
    "reactjs": "react", "react.js": "react",
    "vuejs": "vue", "vue.js": "vue",
    "angularjs": "angular",
    "nextjs": "next.js",
    # Cloud and DevOps
    "k8s": "kubernetes", "kube": "kubernetes",
    "amazon web services": "aws",
    "google cloud": "gcp", "google cloud platform": "gcp",
    "microsoft azure": "azure",
    "cicd": "ci/cd", "ci cd": "ci/cd",
    "gh actions": "github actions",
    # Databases and messaging
    "postgres": "postgresql", "pg": "postgresql",
    "mongo": "mongodb",
    "mssql": "sql server", "ms sql": "sql server",
    "apache kafka": "kafka",
    "rabbit mq": "rabbitmq",
    # Architecture
    "microservice": "microservices",
    "ddd": "domain-driven design",
    "system-design": "system design",
    # ML
    "ml": "machine learning",
    "sklearn": "scikit-learn",
    "torch": "pytorch",
    # Methodologies
    "agile/scrum": "agile",
    "tdd": "test-driven development",
}

# ---------------------------------------------------------------------------
# Canonical skill -> category, used when the profile does not say
# ---------------------------------------------------------------------------
SKILL_CATEGORIES: dict[str, SkillCategory] = {
    **dict.fromkeys(
        ["python", "java", "javascript", "typescript", "go", "rust", "c#", "c++",
         ".net", "asp.net", "node.js", "kotlin", "php", "ruby", "scala",
         "django", "fastapi", "flask", "spring", "express"],
        SkillCategory.CORE_PLATFORM,
    ),
    **dict.fromkeys(
        ["microservices", "system design", "distributed systems",
         "domain-driven design", "event sourcing", "cqrs", "rest", "graphql", "grpc"],
        SkillCategory.ARCHITECTURE,
    ),
    **dict.fromkeys(["aws", "azure", "gcp", "serverless"], SkillCategory.CLOUD),
    **dict.fromkeys(
        ["docker", "kubernetes", "terraform", "ansible", "helm", "ci/cd",
         "github actions", "jenkins", "linux"],
        SkillCategory.DEVOPS,
    ),
    **dict.fromkeys(
        ["sql", "postgresql", "mysql", "sql server", "mongodb", "redis",
         "elasticsearch", "dynamodb", "cassandra"],
        SkillCategory.DATABASES,
    ),
    **dict.fromkeys(["kafka", "rabbitmq", "sqs", "nats"], SkillCategory.MESSAGING),
    **dict.fromkeys(
        ["pytest", "unit testing", "integration testing", "selenium", "playwright",
         "test-driven development"],
        SkillCategory.TESTING,
    ),
    **dict.fromkeys(["oauth", "owasp", "cryptography", "iam"], SkillCategory.SECURITY),
    **dict.fromkeys(
        ["prometheus", "grafana", "opentelemetry", "datadog", "logging"],
        SkillCategory.OBSERVABILITY,
    ),
    **dict.fromkeys(
        ["react", "vue", "angular", "next.js", "html", "css", "svelte"],
        SkillCategory.FRONTEND,
    ),
    **dict.fromkeys(
        ["communication", "leadership", "mentoring", "english"],
        SkillCategory.SOFT_SKILLS,
    ),
    **dict.fromkeys(["agile", "scrum", "kanban"], SkillCategory.METHODOLOGIES),
    **dict.fromkeys(
        ["machine learning", "deep learning", "pytorch", "tensorflow",
         "scikit-learn", "llm"],
        SkillCategory.MACHINE_LEARNING,
    ),
}

# Study hours needed to raise proficiency by one level, per category.
HOURS_PER_LEVEL: dict[SkillCategory, float] = {
    SkillCategory.ARCHITECTURE: 20,
    SkillCategory.MACHINE_LEARNING: 20,
    SkillCategory.CLOUD: 16,
    SkillCategory.DEVOPS: 14,
    SkillCategory.SECURITY: 14,
    SkillCategory.CORE_PLATFORM: 12,
    SkillCategory.DATABASES: 12,
    SkillCategory.MESSAGING: 12,
    SkillCategory.UNKNOWN: 12,
    SkillCategory.FRONTEND: 10,
    SkillCategory.TESTING: 8,
    SkillCategory.OBSERVABILITY: 8,
    SkillCategory.SOFT_SKILLS: 6,
    SkillCategory.METHODOLOGIES: 4,
}

# Relative audience size of each job board, 0-1.
PLATFORM_POPULARITY: dict[str, float] = {
    "linkedin": 1.0,
    "remoteok": 0.8,
    "weworkremotely": 0.8,
    "himalayas": 0.6,
    "jobicy": 0.6,
    "hackernews": 0.5,
    "justjoinit": 0.5,
    "nofluffjobs": 0.45,
    "djinni": 0.4,
    "dou": 0.4,
    "toptal": 0.3,
}
DEFAULT_PLATFORM_POPULARITY = 0.6

# Title words that make a posting match many job seekers' searches.
GENERIC_TITLE_TERMS: frozenset[str] = frozenset({
    "developer", "engineer", "software", "programmer", "backend", "frontend",
    "fullstack", "full-stack", "full", "stack", "web",
})

# Partial-ratio threshold (0-100) for calling two skills related.
FUZZY_THRESHOLD = 80


def normalize_skill(name: str) -> str:
    """Lower-case and collapse whitespace."""
    return " ".join(name.lower().split())


def canonical_skill(name: str) -> str:
    """Normalize and resolve aliases ("K8s" -> "kubernetes")."""
    key = normalize_skill(name)
    return SKILL_SYNONYMS.get(key, key)


def canonical_set(names: Iterable[str]) -> set[str]:
    return {canonical_skill(n) for n in names if n.strip()}


def index_profile_skills(profile: CandidateProfile) -> dict[str, SkillEntry]:
    """Profile skills keyed by canonical name."""
    return {canonical_skill(s.name): s for s in profile.skills}


def skill_category(name: str, profile_skills: Optional[dict[str, SkillEntry]] = None) -> SkillCategory:
    """Category of a skill. A category the candidate set explicitly wins."""
    key = canonical_skill(name)
    if profile_skills and key in profile_skills:
        own = profile_skills[key].category
        if own != SkillCategory.UNKNOWN:
            return own
    return SKILL_CATEGORIES.get(key, SkillCategory.UNKNOWN)


def hours_per_level(category: SkillCategory) -> float:
    return HOURS_PER_LEVEL.get(category, HOURS_PER_LEVEL[SkillCategory.UNKNOWN])


def platform_popularity(platform: str) -> float:
    return PLATFORM_POPULARITY.get(normalize_skill(platform), DEFAULT_PLATFORM_POPULARITY)


def title_genericness(title: str) -> float:
    """Share of title words that are generic search terms, floored at 0.2."""
    words = [w for w in re.split(r"[\s/,()|-]+", title.lower()) if len(w) >= 2]
    if not words:
        return 1.0
    generic = sum(1 for w in words if w in GENERIC_TITLE_TERMS)
    return max(0.2, generic / len(words))


def find_related_skill(missing: str, profile: CandidateProfile) -> Optional[SkillEntry]:
    """A solid (proficiency >= 3) profile skill whose name fuzzily overlaps ``missing``.

    Used to suggest which existing experience to highlight, never to count a
    missing skill as matched.
    """
    target = canonical_skill(missing)
    if len(target) < 3:  # "go" would partially match half the vocabulary
        return None
    best: Optional[SkillEntry] = None
    best_score = 0.0
    for skill in profile.skills:
        if skill.proficiency < 3:
            continue
        candidate = canonical_skill(skill.name)
        if candidate == target or len(candidate) < 3:
            continue
        score = fuzz.partial_ratio(target, candidate)
        if score >= FUZZY_THRESHOLD and score > best_score:
            best, best_score = skill, score
    if best is not None:
        logger.debug("Related skill for %s: %s (%.0f)", missing, best.name, best_score)
    return best
