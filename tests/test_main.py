import logging

from fastapi.testclient import TestClient

from quickstats.config import Settings
from quickstats.main import create_app

client = TestClient(create_app(Settings(STATUS_BACKEND_URL="http://status-backend")))


def test_root():
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Basketball Quick Stats proxy is running"}


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_health_env_shows_backend_routes():
    response = client.get("/health/env")
    body = response.json()
    assert body["backend"]["status"] == "http://status-backend"
    assert body["timeouts_s"]["upload"] == 1800


def test_unknown_route_uses_error_envelope():
    response = client.get("/nope")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_relay_requests_are_logged(caplog):
    with caplog.at_level(logging.INFO, logger="quickstats.request"):
        response = client.get("/api/status-proxy")

    assert "X-Response-Time-Ms" in response.headers
    lines = [r.getMessage() for r in caplog.records if r.name == "quickstats.request"]
    assert any("method=GET path=/api/status-proxy status=404" in line for line in lines)


def test_health_checks_log_at_debug_only(caplog):
    with caplog.at_level(logging.INFO, logger="quickstats.request"):
        client.get("/health")

    assert not [r for r in caplog.records if r.name == "quickstats.request"]
