"""Shared test configuration, pytest markers and data builders."""

from datetime import datetime, timedelta, timezone

import pytest

from models.schemas.profile import CandidateProfile, Experience, Preferences, SkillEntry
from models.schemas.vacancy import VacancyRecord

# A fixed Monday in March, outside the peak hiring months.
NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: runs the full pipeline through the stage registry"
    )


def build_profile(
    skills=("Python", "FastAPI", "PostgreSQL"),
    proficiency=5,
    years=7.0,
    experience_start=datetime(2020, 3, 2, tzinfo=timezone.utc),
    **preferences,
) -> CandidateProfile:
    prefs = {"min_salary": 3000, "target_salary": 5000}
    prefs.update(preferences)
    experiences = []
    if experience_start is not None:
        experiences.append(Experience(
            company="Previous Co",
            role="Backend Developer",
            start_date=experience_start,
            tech_stack=list(skills),
        ))
    return CandidateProfile(
        skills=[SkillEntry(name=s, proficiency=proficiency, years_experience=years) for s in skills],
        experiences=experiences,
        preferences=Preferences(**prefs),
    )


def build_vacancy(vacancy_id="djinni-1", **overrides) -> VacancyRecord:
    values = dict(
        id=vacancy_id,
        title="Senior Python Developer",
        company="Acme",
        required_skills=["Python", "FastAPI", "PostgreSQL"],
        seniority="senior",
        salary_max=6000,
        remote_policy="fully_remote",
        engagement_type="contract_b2b",
        source_platform="djinni",
        posted_date=NOW,
    )
    values.update(overrides)
    return VacancyRecord(**values)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def profile():
    return build_profile()


@pytest.fixture
def vacancy():
    return build_vacancy()


@pytest.fixture
def make_profile():
    return build_profile


@pytest.fixture
def make_vacancy():
    return build_vacancy


@pytest.fixture
def days():
    """``days(n)`` is NOW shifted by n days."""
    return lambda n: NOW + timedelta(days=n)
