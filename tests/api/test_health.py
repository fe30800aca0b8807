"""Tests for the health endpoints."""

from unittest.mock import MagicMock

import pytest

from biolink.main import app
from biolink.scheduler import SchedulerService


@pytest.mark.api
@pytest.mark.asyncio
async def test_liveness(client):
    response = await client.get("/api/health/live")

    assert response.status_code == 200
    assert response.json() == {"alive": True}


@pytest.mark.api
@pytest.mark.asyncio
async def test_readiness(client):
    response = await client.get("/api/health/ready")

    assert response.status_code == 200
    assert response.json()["components"]["database"] is True


@pytest.mark.api
@pytest.mark.asyncio
async def test_health_reports_components(client):
    response = await client.get("/api/health")

    body = response.json()
    assert body["components"]["database"]["status"] == "healthy"
    # Startup does not run under the test client, so no Redis manager exists
    assert body["components"]["redis"]["status"] == "unavailable"
    assert body["components"]["scheduler"] == {"status": "disabled"}
    assert body["status"] == "degraded"


@pytest.mark.api
@pytest.mark.asyncio
async def test_health_reports_scheduler_status(client):
    app.state.scheduler = SchedulerService(MagicMock())
    try:
        response = await client.get("/api/health")
    finally:
        app.state.scheduler = None

    scheduler = response.json()["components"]["scheduler"]
    assert scheduler["status"] == "stopped"
    assert scheduler["running"] is False
    assert scheduler["scheduler_jobs_status"] == []
