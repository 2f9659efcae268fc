"""API smoke tests against the real application factory."""

import pytest
from httpx import ASGITransport, AsyncClient

from rail_reservation.main import create_app


@pytest.mark.asyncio
async def test_api_health_endpoints():
    """Health endpoints respond without any test overrides."""
    app = create_app()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

        response = await client.get("/info")
        assert response.status_code == 200
        data = response.json()
        assert "service" in data
        assert "version" in data


@pytest.mark.asyncio
async def test_metrics_endpoint():
    app = create_app()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/metrics")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "bookings_deleted_total" in response.text


@pytest.mark.asyncio
async def test_openapi_lists_rpc_routes():
    app = create_app()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/openapi.json")
        assert response.status_code == 200
        paths = response.json()["paths"]
        for path in ("/v1/booking/create", "/v1/booking/cancel", "/v1/train/search", "/api/trains"):
            assert path in paths

        # Interactive docs are only served in development
        response = await client.get("/docs")
        assert response.status_code == 404
