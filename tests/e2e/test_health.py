# tests/e2e/test_health.py

import pytest
from unittest.mock import AsyncMock, patch
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_check_endpoint_success(async_client: AsyncClient):
    with patch("gateway.core.database.db.ping", new_callable=AsyncMock) as mock_db_ping, \
            patch("gateway.core.cache.cache.ping", new_callable=AsyncMock) as mock_redis_ping:
        mock_db_ping.return_value = True
        mock_redis_ping.return_value = True

        response = await async_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["components"] == {"database": "connected", "redis": "connected"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "db_up, redis_up",
    [(False, True), (True, False), (False, False)],
)
async def test_health_check_reports_failed_component(async_client: AsyncClient, db_up, redis_up):
    """
    /health answers 503 as soon as either dependency is down.
    """
    with patch("gateway.core.database.db.ping", new_callable=AsyncMock) as mock_db_ping, \
            patch("gateway.core.cache.cache.ping", new_callable=AsyncMock) as mock_redis_ping:
        mock_db_ping.return_value = db_up
        mock_redis_ping.return_value = redis_up

        response = await async_client.get("/health")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["components"]["database"] == ("connected" if db_up else "disconnected")
        assert data["components"]["redis"] == ("connected" if redis_up else "disconnected")
