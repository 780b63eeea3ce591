# tests/test_health.py
from fastapi.testclient import TestClient

from horiohop.main import create_app


def test_health_check(config):
    with TestClient(create_app(config)) as client:
        response = client.get("/health/")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["app"] == "HorioHop"
    assert "version" in data
    assert "environment" in data
