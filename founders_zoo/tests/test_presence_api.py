"""
founders_zoo/tests/test_presence_api.py
Presence HTTP and websocket endpoints over the in-memory hub.
"""

import logging

import pytest
from fastapi.testclient import TestClient

from founders_zoo.main import app


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def test_presence_stream_reports_own_session(client):
    with client.websocket_connect("/v1/ws/presence?user_id=u1") as websocket:
        first = websocket.receive_json()
        assert first == {"type": "presence.snapshot", "tabs": 0, "unique": 0, "connected": False}
        second = websocket.receive_json()
        assert second == {"type": "presence.snapshot", "tabs": 1, "unique": 1, "connected": True}


def test_global_presence_snapshot_shape(client):
    response = client.get("/v1/presence/global", params={"user_id": "u1"})
    assert response.status_code == 200
    body = response.json()
    assert set(body) == {"tabs", "unique", "connected", "observed_at"}
    assert body["unique"] <= body["tabs"]


def test_player_stream_starts_offline_and_answers_ping(client):
    with client.websocket_connect("/v1/ws/players/p1") as websocket:
        assert websocket.receive_json() == {"type": "player.status", "user_id": "p1", "status": "offline"}
        websocket.send_json({"type": "ping"})
        assert websocket.receive_json()["type"] == "pong"


def test_healthz(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_exposition(client):
    client.get("/healthz")
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "# TYPE http_requests_total counter" in response.text
    assert 'path="/healthz"' in response.text


def test_request_id_in_response_and_logs(client, caplog):
    with caplog.at_level(logging.INFO, logger="founders_zoo"):
        response = client.get("/healthz")
    rid = response.headers.get("x-request-id")
    assert rid
    records = [r for r in caplog.records if getattr(r, "request_id", None) == rid]
    assert records, "Expected logs to contain request_id from response"


def test_unknown_route_uses_error_contract(client):
    response = client.get("/v1/presence/nowhere")
    assert response.status_code == 404
    payload = response.json()
    assert payload["error"]["code"] == "not_found"
    assert payload["error"]["request_id"] == response.headers["x-request-id"]


def test_player_stream_follows_tracking_socket(client):
    with client.websocket_connect("/v1/ws/players/p1") as watcher:
        assert watcher.receive_json()["status"] == "offline"
        with client.websocket_connect("/v1/ws/players/p1/track") as tracker:
            assert watcher.receive_json()["status"] == "online"

            tracker.send_json({"type": "visibility", "visible": False})
            assert tracker.receive_json() == {"type": "player.tracked", "user_id": "p1", "active": False}
            assert watcher.receive_json()["status"] == "away"

            tracker.send_json({"type": "focus"})
            assert tracker.receive_json()["active"] is False
        assert watcher.receive_json()["status"] == "offline"


def test_metrics_refresh_presence_gauges(client):
    client.get("/v1/presence/global", params={"user_id": "u1"})
    response = client.get("/metrics")
    assert response.headers["content-type"].startswith("text/plain")
    assert "presence_active_handles 1" in response.text
