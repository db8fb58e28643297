"""Tests for the health endpoint."""
from fastapi.testclient import TestClient
from apps.api.main import app

client = TestClient(app)


def test_health_returns_200():
    response = client.get("/api/v1/health")
    assert response.status_code == 200


def test_health_returns_status_ok():
    response = client.get("/api/v1/health")
    data = response.json()
    assert data["status"] == "healthy"


def test_readiness_checks_parser():
    """Readiness probe should run the parser and report its limits."""
    response = client.get("/api/v1/health/ready")
    data = response.json()
    assert data["status"] == "healthy"
    assert data["services"] == {"api": "up", "parser": "up"}
    assert data["limits"]["pdf_scan_bytes"] > 0
    assert "ledger_records" in data


def test_readiness_reports_broken_parser(monkeypatch):
    monkeypatch.setattr("apps.api.routers.health._probe_parser", lambda: False)

    data = client.get("/api/v1/health/ready").json()
    assert data["status"] == "degraded"
    assert data["services"]["parser"] == "down"
