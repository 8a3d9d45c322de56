from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_decision_cache
from main import app
from services.decision_cache import DecisionCache

client = TestClient(app)


@pytest.fixture(autouse=True)
def decision_cache():
    """Fresh in-memory decision cache per test."""
    fresh = DecisionCache()
    app.dependency_overrides[get_decision_cache] = lambda: fresh
    yield fresh
    app.dependency_overrides.clear()


@pytest.fixture
def profile_json(make_profile):
    return lambda **kwargs: make_profile(**kwargs).model_dump(mode="json")


@pytest.fixture
def vacancy_json(make_vacancy):
    return lambda vacancy_id="djinni-1", **kwargs: make_vacancy(vacancy_id, **kwargs).model_dump(mode="json")


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"


def test_score(profile_json, vacancy_json, now):
    response = client.post(
        "/score",
        json={"profile": profile_json(), "vacancy": vacancy_json(), "now": now.isoformat()},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["overall"] == pytest.approx(96.67)
    assert data["recommended_action"] == "apply"
    assert set(data["breakdown"]) == {
        "skill_depth",
        "experience_relevance",
        "seniority_fit",
        "salary_positioning",
        "freshness",
        "market_competition",
        "platform_response",
    }


def test_score_rejects_duplicate_skills(profile_json, vacancy_json):
    profile = profile_json()
    profile["skills"].append(dict(profile["skills"][0], name="PYTHON"))
    response = client.post("/score", json={"profile": profile, "vacancy": vacancy_json()})
    assert response.status_code == 422


def test_assess_batch(profile_json, vacancy_json, now):
    response = client.post(
        "/assess/batch",
        json={
            "profile": profile_json(),
            "vacancies": [vacancy_json("a"), vacancy_json("b", title="")],
            "now": now.isoformat(),
        },
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total_vacancies"] == 2
    assert data["assessments"][0]["vacancy_id"] == "a"
    assert data["assessments"][0]["tier"] == "top_candidate"


def test_gates_before_decide():
    response = client.get("/decisions/djinni-1/can-apply")
    assert response.status_code == 200
    assert response.json() == {"vacancy_id": "djinni-1", "allowed": False, "reason": "Run decide first"}
    assert client.get("/decisions/djinni-1").status_code == 404


def test_decide_then_gate(decision_cache, profile_json, vacancy_json, now):
    response = client.post(
        "/decide",
        json={
            "profile": profile_json(),
            "vacancies": [
                vacancy_json("apply"),
                vacancy_json("learn", required_skills=["Python", "FastAPI", "PostgreSQL", "Docker"]),
                vacancy_json("office", remote_policy="on_site"),
            ],
            "now": now.isoformat(),
        },
    )
    assert response.status_code == 200
    data = response.json()
    assert data["filtered_out"] == 1
    assert [d["verdict"] for d in data["decisions"]] == ["apply_now", "learn_then_apply"]
    assert len(decision_cache) == 2

    assert client.get("/decisions/apply/can-apply").json()["allowed"] is True
    learn_gate = client.get("/decisions/learn/can-apply").json()
    assert learn_gate["allowed"] is False
    assert "~56h" in learn_gate["reason"]
    assert client.get("/decisions/learn/can-learn").json()["allowed"] is True
    assert client.get("/decisions/learn").json()["verdict"] == "learn_then_apply"
    assert len(client.get("/decisions").json()) == 2

    assert client.delete("/decisions").status_code == 204
    assert client.get("/decisions/apply/can-apply").json()["reason"] == "Run decide first"


def test_decide_requires_vacancies(profile_json):
    response = client.post("/decide", json={"profile": profile_json(), "vacancies": []})
    assert response.status_code == 422


def test_stop_check(vacancy_json, now):
    response = client.post(
        "/learning/stop-check",
        json={
            "current_readiness": 65,
            "learning_started_at": (now - timedelta(days=35)).isoformat(),
            "vacancy": vacancy_json(),
            "now": now.isoformat(),
        },
    )
    assert response.status_code == 200
    data = response.json()
    assert data["should_stop"] is True
    assert data["signals"] == ["time_limit_exceeded"]


def test_strategy_needs_data():
    response = client.post(
        "/strategy",
        json={"applications": [{"vacancy_id": "v1", "status": "applied"}]},
    )
    assert response.status_code == 200
    assert response.json()["advice"][0].startswith("Need more data")


def test_timing(vacancy_json, now):
    response = client.post(
        "/timing",
        json={
            "vacancy": vacancy_json(posted_date=(now - timedelta(days=40)).isoformat()),
            "now": now.isoformat(),
        },
    )
    assert response.status_code == 200
    assert response.json()["competition_level"] == 0


def test_timing_windows(vacancy_json, now):
    response = client.post(
        "/timing/windows",
        json={
            "vacancies": [vacancy_json(posted_date=(now - timedelta(days=40)).isoformat())],
            "now": now.isoformat(),
        },
    )
    assert response.status_code == 200
    assert [w["vacancy"]["id"] for w in response.json()] == ["djinni-1"]
