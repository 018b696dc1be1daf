"""
Tests for the ride catalog and ride endpoints.
"""

from datetime import datetime, timezone, timedelta

import pytest
from httpx import AsyncClient

from unipool.core.exceptions import NotFound, InvalidTransition, RideUnavailable
from unipool.models.ride import RideStatus
from unipool.services import booking_service, ride_service


# --- Ride catalog service ---

@pytest.mark.asyncio
async def test_adjust_seats_applies_delta(db_session, test_ride):
    ride = await ride_service.adjust_seats(db_session, test_ride.id, -2)
    assert ride.seats_available == 1

    ride = await ride_service.adjust_seats(db_session, test_ride.id, 1)
    assert ride.seats_available == 2


@pytest.mark.asyncio
async def test_adjust_seats_clamps_to_total(db_session, test_ride):
    ride = await ride_service.adjust_seats(db_session, test_ride.id, 5)
    assert ride.seats_available == ride.seats_total == 3


@pytest.mark.asyncio
async def test_adjust_seats_clamps_to_zero(db_session, test_ride):
    ride = await ride_service.adjust_seats(db_session, test_ride.id, -10)
    assert ride.seats_available == 0


@pytest.mark.asyncio
async def test_adjust_seats_unknown_ride(db_session):
    with pytest.raises(NotFound):
        await ride_service.adjust_seats(db_session, 99999, 1)


@pytest.mark.asyncio
async def test_get_seats_available_unknown_ride(db_session):
    with pytest.raises(NotFound):
        await ride_service.get_seats_available(db_session, 99999)


@pytest.mark.asyncio
async def test_every_seat_write_bumps_version(db_session, test_ride):
    before = (await ride_service.get_ride(db_session, test_ride.id)).version
    await ride_service.adjust_seats(db_session, test_ride.id, -1)
    await ride_service.reserve_seats(db_session, test_ride.id, 1)
    after = (await ride_service.get_ride(db_session, test_ride.id)).version
    assert after == before + 2


@pytest.mark.asyncio
async def test_ride_status_forward_only(db_session, test_ride):
    cascade = booking_service.reject_pending_bookings

    ride = await ride_service.update_ride_status(db_session, test_ride.id, RideStatus.ONGOING, cascade)
    assert ride.status == "ongoing"
    assert ride.is_active is True

    with pytest.raises(InvalidTransition):
        await ride_service.update_ride_status(db_session, test_ride.id, RideStatus.SCHEDULED, cascade)


@pytest.mark.asyncio
async def test_completing_ride_deactivates_and_rejects_pending(db_session, test_ride, passenger):
    booking = await booking_service.request_booking(db_session, test_ride.id, passenger.id, 2)

    ride = await ride_service.update_ride_status(
        db_session, test_ride.id, RideStatus.COMPLETED, booking_service.reject_pending_bookings
    )

    assert ride.status == "completed"
    assert ride.is_active is False
    assert ride.seats_available == 3
    assert (await booking_service.get_booking(db_session, booking.id)).status == "rejected"


@pytest.mark.asyncio
async def test_deactivated_ride_cannot_start_but_can_complete(db_session, test_ride):
    cascade = booking_service.reject_pending_bookings
    await ride_service.deactivate_ride(db_session, test_ride.id, cascade)

    with pytest.raises(RideUnavailable):
        await ride_service.update_ride_status(db_session, test_ride.id, RideStatus.ONGOING, cascade)
    assert (await ride_service.get_ride(db_session, test_ride.id)).status == "scheduled"

    ride = await ride_service.update_ride_status(db_session, test_ride.id, RideStatus.COMPLETED, cascade)
    assert ride.status == "completed"
    assert ride.is_active is False


# --- Endpoints ---

@pytest.mark.asyncio
async def test_create_ride(client: AsyncClient, ride_payload, driver, driver_headers):
    """Authenticated user can offer a ride; all seats start available."""
    response = await client.post("/api/v1/rides/", json=ride_payload(), headers=driver_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["driver_id"] == driver.id
    assert data["seats_total"] == 3
    assert data["seats_available"] == 3
    assert data["is_active"] is True
    assert data["status"] == "scheduled"


@pytest.mark.asyncio
async def test_create_ride_unauthenticated(client: AsyncClient, ride_payload):
    response = await client.post("/api/v1/rides/", json=ride_payload())
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_ride_past_departure(client: AsyncClient, ride_payload, driver_headers):
    past = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
    response = await client.post(
        "/api/v1/rides/", json=ride_payload(departure_time=past), headers=driver_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_ride_zero_seats(client: AsyncClient, ride_payload, driver_headers):
    response = await client.post(
        "/api/v1/rides/", json=ride_payload(seats_total=0), headers=driver_headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_ride_with_someone_elses_vehicle(
    client: AsyncClient, ride_payload, driver_headers, passenger_headers
):
    vehicle = await client.post(
        "/api/v1/vehicles/",
        json={"model": "Corolla", "plate": "LEA-1234", "color": "white", "seats": 4},
        headers=passenger_headers,
    )
    response = await client.post(
        "/api/v1/rides/",
        json=ride_payload(vehicle_id=vehicle.json()["id"]),
        headers=driver_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_create_ride_exceeding_vehicle_seats(client: AsyncClient, ride_payload, driver_headers):
    vehicle = await client.post(
        "/api/v1/vehicles/",
        json={"model": "Mehran", "plate": "LHR-77", "color": "silver", "seats": 2},
        headers=driver_headers,
    )
    response = await client.post(
        "/api/v1/rides/",
        json=ride_payload(vehicle_id=vehicle.json()["id"], seats_total=3),
        headers=driver_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_search_rides(client: AsyncClient, test_ride):
    response = await client.get("/api/v1/rides/")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["rides"][0]["id"] == test_ride.id
    assert data["cached"] is False


@pytest.mark.asyncio
async def test_search_rides_by_destination(client: AsyncClient, test_ride):
    hit = await client.get("/api/v1/rides/", params={"destination": "liberty"})
    miss = await client.get("/api/v1/rides/", params={"destination": "airport"})
    assert hit.json()["total"] == 1
    assert miss.json()["total"] == 0


@pytest.mark.asyncio
async def test_search_rides_min_seats(client: AsyncClient, test_ride):
    response = await client.get("/api/v1/rides/", params={"min_seats": 4})
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_search_hides_inactive_rides(client: AsyncClient, test_ride, driver_headers):
    await client.delete(f"/api/v1/rides/{test_ride.id}", headers=driver_headers)
    response = await client.get("/api/v1/rides/")
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_get_ride_not_found(client: AsyncClient):
    response = await client.get("/api/v1/rides/99999")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_driver_rides_includes_inactive(client: AsyncClient, driver, test_ride, driver_headers):
    await client.delete(f"/api/v1/rides/{test_ride.id}", headers=driver_headers)
    response = await client.get(f"/api/v1/rides/driver/{driver.id}")
    assert response.status_code == 200
    rides = response.json()
    assert len(rides) == 1
    assert rides[0]["is_active"] is False


@pytest.mark.asyncio
async def test_deactivate_ride_cascades(
    client: AsyncClient, test_ride, driver_headers, passenger_headers, other_passenger_headers
):
    """Deleting a ride rejects both pending bookings and restores every seat."""
    for headers, seats in ((passenger_headers, 1), (other_passenger_headers, 2)):
        response = await client.post(
            "/api/v1/bookings/",
            json={"ride_id": test_ride.id, "seats_booked": seats},
            headers=headers,
        )
        assert response.status_code == 201
    assert (await client.get(f"/api/v1/rides/{test_ride.id}")).json()["seats_available"] == 0

    response = await client.delete(f"/api/v1/rides/{test_ride.id}", headers=driver_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["is_active"] is False
    assert len(data["rejected_booking_ids"]) == 2
    assert data["failed_booking_ids"] == []

    ride = (await client.get(f"/api/v1/rides/{test_ride.id}")).json()
    assert ride["seats_available"] == 3


@pytest.mark.asyncio
async def test_only_driver_can_deactivate(client: AsyncClient, test_ride, passenger_headers):
    response = await client.delete(f"/api/v1/rides/{test_ride.id}", headers=passenger_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_ride_status_endpoint(client: AsyncClient, test_ride, driver_headers):
    response = await client.patch(
        f"/api/v1/rides/{test_ride.id}/status", json={"status": "ongoing"}, headers=driver_headers
    )
    assert response.status_code == 200
    assert response.json()["status"] == "ongoing"

    response = await client.patch(
        f"/api/v1/rides/{test_ride.id}/status", json={"status": "completed"}, headers=driver_headers
    )
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    response = await client.patch(
        f"/api/v1/rides/{test_ride.id}/status", json={"status": "ongoing"}, headers=driver_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_ride_bookings_visible_to_driver_only(
    client: AsyncClient, test_ride, driver_headers, passenger_headers
):
    await client.post(
        "/api/v1/bookings/", json={"ride_id": test_ride.id, "seats_booked": 1}, headers=passenger_headers
    )

    response = await client.get(f"/api/v1/rides/{test_ride.id}/bookings", headers=driver_headers)
    assert response.status_code == 200
    assert len(response.json()) == 1

    response = await client.get(f"/api/v1/rides/{test_ride.id}/bookings", headers=passenger_headers)
    assert response.status_code == 403
