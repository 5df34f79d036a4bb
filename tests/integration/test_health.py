"""Integration tests for health, readiness and metrics endpoints."""

import pytest

from tests.conftest import TEST_CONFIG


@pytest.mark.asyncio
async def test_health(async_client):
    response = await async_client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_ready_before_initialize(async_client):
    response = await async_client.get("/api/v1/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "not_initialized"
    assert data["session"] == {"initialized": False, "client_cached": False}


@pytest.mark.asyncio
async def test_ready_after_initialize(async_client):
    await async_client.post("/api/v1/database/initialize", json={"config": TEST_CONFIG})
    response = await async_client.get("/api/v1/ready")
    data = response.json()
    assert data["status"] == "ready"
    assert data["session"]["initialized"] is True
    assert data["session"]["client_cached"] is False


@pytest.mark.asyncio
async def test_metrics_exposes_lifecycle_counters(async_client):
    await async_client.post("/api/v1/database/initialize", json={"config": TEST_CONFIG})
    response = await async_client.get("/api/v1/metrics")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "lifecycle_operations_total" in response.text
    assert "http_requests_total" in response.text


@pytest.mark.asyncio
async def test_request_id_header(async_client):
    response = await async_client.get("/api/v1/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"

    response = await async_client.get("/api/v1/health")
    assert len(response.headers["X-Request-ID"]) > 0
