"""
Integration test for health endpoint.

Demonstrates:
- Testing critical path (API is reachable)
- Testing contracts (response structure matches HealthResponse schema)
"""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def client():
    """Create FastAPI test client."""
    from briefdesk.main import app

    return TestClient(app)


def test_health_endpoint_returns_200(client: TestClient):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "briefing-desk"


def test_health_endpoint_uses_correct_content_type(client: TestClient):
    response = client.get("/health")

    assert "application/json" in response.headers["content-type"]


def test_root_redirects_to_docs(client: TestClient):
    response = client.get("/", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/docs"
