import pytest
from fastapi.testclient import TestClient

from founders_zoo.main import app


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def test_calculate_positive_streak(client):
    response = client.post(
        "/v1/streaks/calculate",
        json={
            "records": [
                {"date": "2024-01-10", "missingBlocks": 0},
                {"date": "2024-01-09", "missingBlocks": 1},
                {"date": "2024-01-08", "missingBlocks": 5},
            ]
        },
    )
    assert response.status_code == 200
    assert response.json() == {"streak": {"kind": "positive", "length": 2, "missesOnLatest": 0}}


def test_calculate_empty_records(client):
    response = client.post("/v1/streaks/calculate", json={"records": []})
    assert response.status_code == 200
    assert response.json() == {"streak": None}


def test_completion_policy_without_qualifying_day(client):
    response = client.post(
        "/v1/streaks/calculate",
        json={"policy": "completion", "records": [{"date": "2024-01-10", "completionPct": 0.5}]},
    )
    assert response.json() == {"streak": None}


def test_malformed_dates_are_dropped_not_rejected(client):
    response = client.post(
        "/v1/streaks/calculate",
        json={"records": [{"date": "yesterday", "missingBlocks": 0}, {"date": "2024-01-10", "missing_blocks": 3}]},
    )
    assert response.status_code == 200
    assert response.json()["streak"] == {"kind": "negative", "length": 1, "missesOnLatest": 3}


def test_negative_miss_count_is_rejected(client):
    response = client.post(
        "/v1/streaks/calculate",
        json={"records": [{"date": "2024-01-10", "missingBlocks": -1}]},
    )
    assert response.status_code == 422


def test_unknown_policy_is_rejected(client):
    response = client.post("/v1/streaks/calculate", json={"policy": "weekly", "records": []})
    assert response.status_code == 422


@pytest.mark.parametrize("bad_date", [None, 20240109, {"y": 2024}])
def test_non_string_dates_are_dropped(client, bad_date):
    response = client.post(
        "/v1/streaks/calculate",
        json={"records": [{"date": bad_date, "missingBlocks": 0}, {"date": "2024-01-10", "missingBlocks": 0}]},
    )
    assert response.status_code == 200
    assert response.json()["streak"] == {"kind": "positive", "length": 1, "missesOnLatest": 0}
