"""
Tests for profiles, vehicles, reviews and driver statistics.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_get_profile(client: AsyncClient, driver):
    response = await client.get(f"/api/v1/users/{driver.id}")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Dana Driver"
    assert "hashed_password" not in data


@pytest.mark.asyncio
async def test_get_profile_not_found(client: AsyncClient):
    response = await client.get("/api/v1/users/99999")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_register_and_list_vehicles(client: AsyncClient, driver, driver_headers, passenger_headers):
    response = await client.post(
        "/api/v1/vehicles/",
        json={"model": "Civic", "plate": "ABC-123", "color": "black", "seats": 4},
        headers=driver_headers,
    )
    assert response.status_code == 201
    assert response.json()["owner_id"] == driver.id

    mine = await client.get("/api/v1/vehicles/", headers=driver_headers)
    theirs = await client.get("/api/v1/vehicles/", headers=passenger_headers)
    assert len(mine.json()) == 1
    assert theirs.json() == []


@pytest.mark.asyncio
async def test_review_and_average_rating(
    client: AsyncClient, driver, test_ride, passenger_headers, other_passenger_headers
):
    for headers, rating in ((passenger_headers, 5), (other_passenger_headers, 4)):
        response = await client.post(
            "/api/v1/reviews/",
            json={"ride_id": test_ride.id, "reviewee_id": driver.id, "rating": rating, "comment": "ok"},
            headers=headers,
        )
        assert response.status_code == 201

    reviews = await client.get(f"/api/v1/users/{driver.id}/reviews")
    assert len(reviews.json()) == 2

    stats = await client.get(f"/api/v1/users/{driver.id}/stats")
    assert stats.json()["average_rating"] == 4.5


@pytest.mark.asyncio
async def test_review_rating_out_of_range(client: AsyncClient, driver, test_ride, passenger_headers):
    response = await client.post(
        "/api/v1/reviews/",
        json={"ride_id": test_ride.id, "reviewee_id": driver.id, "rating": 6},
        headers=passenger_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_cannot_review_self(client: AsyncClient, driver, test_ride, driver_headers):
    response = await client.post(
        "/api/v1/reviews/",
        json={"ride_id": test_ride.id, "reviewee_id": driver.id, "rating": 5},
        headers=driver_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_driver_stats_count_accepted_only(
    client: AsyncClient, driver, test_ride, driver_headers, passenger_headers, other_passenger_headers
):
    accepted = await client.post(
        "/api/v1/bookings/", json={"ride_id": test_ride.id, "seats_booked": 2}, headers=passenger_headers
    )
    await client.post(
        "/api/v1/bookings/", json={"ride_id": test_ride.id, "seats_booked": 1}, headers=other_passenger_headers
    )
    await client.patch(
        f"/api/v1/bookings/{accepted.json()['id']}", json={"status": "accepted"}, headers=driver_headers
    )

    response = await client.get(f"/api/v1/users/{driver.id}/stats")
    assert response.status_code == 200
    stats = response.json()
    assert stats["total_rides"] == 1
    assert stats["active_rides"] == 1
    assert stats["total_bookings"] == 1
    assert stats["total_earnings"] == 2 * 250
    assert stats["average_rating"] == 0.0


@pytest.mark.asyncio
async def test_update_own_profile(client: AsyncClient, passenger, passenger_headers):
    response = await client.patch(
        f"/api/v1/users/{passenger.id}",
        json={"name": "Pat P.", "phone": "0300-1234567", "role": "both"},
        headers=passenger_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Pat P."
    assert data["phone"] == "0300-1234567"
    assert data["role"] == "both"
    assert data["email"] == "passenger@uni.edu"


@pytest.mark.parametrize(
    "payload",
    [
        {"email": "new@uni.edu"},
        {"hashed_password": "x"},
        {"is_active": False},
        {"role": "admin"},
        {"name": ""},
    ],
)
@pytest.mark.asyncio
async def test_profile_update_only_accepts_known_fields(client: AsyncClient, passenger, passenger_headers, payload):
    response = await client.patch(f"/api/v1/users/{passenger.id}", json=payload, headers=passenger_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_cannot_edit_someone_elses_profile(client: AsyncClient, driver, passenger_headers):
    response = await client.patch(
        f"/api/v1/users/{driver.id}", json={"name": "Hijacked"}, headers=passenger_headers
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_change_password(client: AsyncClient, passenger, passenger_headers):
    response = await client.post(
        f"/api/v1/users/{passenger.id}/password",
        json={"current_password": "testpassword123", "new_password": "brandnewpass456"},
        headers=passenger_headers,
    )
    assert response.status_code == 204

    old = await client.post(
        "/api/v1/auth/login", json={"email": "passenger@uni.edu", "password": "testpassword123"}
    )
    new = await client.post(
        "/api/v1/auth/login", json={"email": "passenger@uni.edu", "password": "brandnewpass456"}
    )
    assert old.status_code == 401
    assert new.status_code == 200


@pytest.mark.asyncio
async def test_change_password_wrong_current(client: AsyncClient, passenger, passenger_headers):
    response = await client.post(
        f"/api/v1/users/{passenger.id}/password",
        json={"current_password": "notmypassword", "new_password": "brandnewpass456"},
        headers=passenger_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_passenger_account_refunds_bookings(
    client: AsyncClient, passenger, driver_headers, passenger_headers, test_ride
):
    accepted = await client.post(
        "/api/v1/bookings/", json={"ride_id": test_ride.id, "seats_booked": 2}, headers=passenger_headers
    )
    await client.patch(
        f"/api/v1/bookings/{accepted.json()['id']}", json={"status": "accepted"}, headers=driver_headers
    )

    response = await client.delete(f"/api/v1/users/{passenger.id}", headers=passenger_headers)
    assert response.status_code == 200
    assert response.json()["cancelled_booking_ids"] == [accepted.json()["id"]]

    ride = (await client.get(f"/api/v1/rides/{test_ride.id}")).json()
    assert ride["seats_available"] == 3

    # The account is closed: old tokens and logins no longer work
    assert (await client.get("/api/v1/bookings/", headers=passenger_headers)).status_code == 401
    login = await client.post(
        "/api/v1/auth/login", json={"email": "passenger@uni.edu", "password": "testpassword123"}
    )
    assert login.status_code == 403


@pytest.mark.asyncio
async def test_delete_driver_account_deactivates_rides(
    client: AsyncClient, driver, driver_headers, passenger_headers, test_ride
):
    pending = await client.post(
        "/api/v1/bookings/", json={"ride_id": test_ride.id, "seats_booked": 2}, headers=passenger_headers
    )

    response = await client.delete(f"/api/v1/users/{driver.id}", headers=driver_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["deactivated_ride_ids"] == [test_ride.id]
    assert data["rejected_booking_ids"] == [pending.json()["id"]]

    ride = (await client.get(f"/api/v1/rides/{test_ride.id}")).json()
    assert ride["is_active"] is False
    assert ride["seats_available"] == 3
    assert (await client.get("/api/v1/rides/")).json()["total"] == 0


@pytest.mark.asyncio
async def test_cannot_delete_someone_elses_account(client: AsyncClient, driver, passenger_headers):
    response = await client.delete(f"/api/v1/users/{driver.id}", headers=passenger_headers)
    assert response.status_code == 403


async def _register_vehicle(client: AsyncClient, headers: dict, seats: int = 4) -> dict:
    response = await client.post(
        "/api/v1/vehicles/",
        json={"model": "Cultus", "plate": "LEC-4411", "color": "red", "seats": seats},
        headers=headers,
    )
    return response.json()


@pytest.mark.asyncio
async def test_update_vehicle(client: AsyncClient, driver_headers):
    vehicle = await _register_vehicle(client, driver_headers)

    response = await client.patch(
        f"/api/v1/vehicles/{vehicle['id']}", json={"color": "white", "seats": 3}, headers=driver_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["color"] == "white"
    assert data["seats"] == 3
    assert data["plate"] == "LEC-4411"


@pytest.mark.asyncio
async def test_update_vehicle_not_owner(client: AsyncClient, driver_headers, passenger_headers):
    vehicle = await _register_vehicle(client, driver_headers)
    response = await client.patch(
        f"/api/v1/vehicles/{vehicle['id']}", json={"color": "blue"}, headers=passenger_headers
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_missing_vehicle(client: AsyncClient, driver_headers):
    response = await client.patch("/api/v1/vehicles/99999", json={"color": "blue"}, headers=driver_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_vehicle_rejects_unknown_fields(client: AsyncClient, driver_headers):
    vehicle = await _register_vehicle(client, driver_headers)
    response = await client.patch(
        f"/api/v1/vehicles/{vehicle['id']}", json={"owner_id": 12345}, headers=driver_headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_vehicle_seats_cannot_drop_below_active_ride(client: AsyncClient, ride_payload, driver_headers):
    vehicle = await _register_vehicle(client, driver_headers, seats=4)
    ride = await client.post(
        "/api/v1/rides/", json=ride_payload(vehicle_id=vehicle["id"], seats_total=3), headers=driver_headers
    )
    assert ride.status_code == 201

    too_few = await client.patch(
        f"/api/v1/vehicles/{vehicle['id']}", json={"seats": 2}, headers=driver_headers
    )
    enough = await client.patch(
        f"/api/v1/vehicles/{vehicle['id']}", json={"seats": 3}, headers=driver_headers
    )
    assert too_few.status_code == 400
    assert enough.status_code == 200
