"""API client for e2e tests following Cosmic Python pattern"""
from typing import Any, Dict, List

from fastapi.testclient import TestClient


def post_observation(client: TestClient, observation: Dict[str, Any], expected_status: int = 201):
    """Post a single observation and check the status code"""
    response = client.post("/api/resistance-data", json=observation)
    assert response.status_code == expected_status, response.text
    return response


def post_bulk_observations(client: TestClient, observations: List[Dict[str, Any]], expected_status: int = 201):
    """Post a batch of observations to the bulk import endpoint"""
    response = client.post("/api/resistance-data/bulk", json=observations)
    assert response.status_code == expected_status, response.text
    return response


def get_dashboard(client: TestClient, view: str, **params):
    """Get one of the dashboard views (summary, trends, effectiveness)"""
    query = {key: value for key, value in params.items() if value is not None}
    response = client.get(f"/api/dashboard/{view}", params=query)
    assert response.status_code == 200, response.text
    return response.json()


def get_health(client: TestClient):
    """Get health check from API"""
    return client.get("/health")
