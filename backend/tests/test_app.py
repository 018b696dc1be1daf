"""
Operational endpoints: health, metrics, request ids.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_reports_database_and_cache(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"] == "ok"
    assert body["cache"] == {"status": "disabled"}


@pytest.mark.asyncio
async def test_metrics_count_booking_outcomes(client: AsyncClient, passenger_headers, test_ride):
    await client.post(
        "/api/v1/bookings/", json={"ride_id": test_ride.id, "seats_booked": 4}, headers=passenger_headers
    )

    response = await client.get("/metrics")
    assert response.status_code == 200
    assert 'unipool_booking_attempts_total{status="insufficient_seats"}' in response.text


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "trace-abc"})
    assert response.headers["X-Request-ID"] == "trace-abc"
