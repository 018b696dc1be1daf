"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags contention   # Test overbooking of one ride
  locust -f locustfile.py --tags search       # Test ride search cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
import string
from locust import HttpUser, task, between, tag, events
from datetime import datetime, timezone, timedelta

# Shared state
RIDE_IDS = []
CONTENTION_RIDE_ID = None
CONTENTION_SEATS = 4
PASSWORD = "load-test-123"

CAMPUS = (31.4700, 74.4100, "University Main Gate")
DESTINATIONS = [
    (31.5204, 74.3587, "Liberty Market"),
    (31.4504, 74.2810, "Johar Town"),
    (31.5820, 74.3294, "Railway Station"),
    (31.5216, 74.4036, "Airport Road"),
]


def random_email():
    return f"load_{random.randint(10000, 99999)}_{random_suffix()}@uni.edu"


def random_suffix():
    return "".join(random.choices(string.ascii_lowercase, k=6))


def ride_payload(seats: int):
    lat, lng, address = random.choice(DESTINATIONS)
    future = (datetime.now(timezone.utc) + timedelta(days=random.randint(1, 14))).isoformat()
    return {
        "source_lat": CAMPUS[0],
        "source_lng": CAMPUS[1],
        "source_address": CAMPUS[2],
        "dest_lat": lat,
        "dest_lng": lng,
        "dest_address": address,
        "departure_time": future,
        "seats_total": seats,
        "cost_per_seat": random.choice([150, 200, 250, 300]),
    }


def sign_up(client, role: str = "both") -> dict:
    """Register a throwaway user and return auth headers, or {} on failure."""
    email = random_email()
    client.post("/api/v1/auth/register", json={
        "email": email,
        "name": f"Load {random_suffix()}",
        "password": PASSWORD,
        "role": role,
    })
    resp = client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
    if resp.status_code == 200:
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}
    return {}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"SETUP: first contention user offers a ride with {CONTENTION_SEATS} seats")
    print("=" * 60)


class SeatContentionUser(HttpUser):
    """
    TEST 1: Contention - many passengers, one ride

    Run: locust -f locustfile.py --tags contention -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT seats_available + COALESCE(SUM(b.seats_booked), 0)
      FROM rides r LEFT JOIN bookings b
        ON b.ride_id = r.id AND b.status IN ('pending', 'accepted')
      WHERE r.id = X GROUP BY r.id;
    Should equal seats_total, and seats_available should never go below 0.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        global CONTENTION_RIDE_ID
        self.headers = sign_up(self.client)
        if self.headers and not CONTENTION_RIDE_ID:
            resp = self.client.post("/api/v1/rides/", json=ride_payload(CONTENTION_SEATS), headers=self.headers)
            if resp.status_code == 201:
                CONTENTION_RIDE_ID = resp.json()["id"]
                print(f"\nCreated ride {CONTENTION_RIDE_ID} with {CONTENTION_SEATS} seats\n")

    @tag("contention")
    @task
    def grab_a_seat(self):
        """Everyone fights for the same few seats."""
        if not CONTENTION_RIDE_ID or not self.headers:
            return

        with self.client.post("/api/v1/bookings/",
            json={"ride_id": CONTENTION_RIDE_ID, "seats_booked": 1},
            headers=self.headers,
            catch_response=True
        ) as resp:
            if resp.status_code in (201, 409):
                # 409 is a full ride or a lost version race; both are correct answers
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("contention")
    @task
    def cancel_my_bookings(self):
        """Cancellations return seats and race with new requests."""
        if not self.headers:
            return

        resp = self.client.get("/api/v1/bookings/", headers=self.headers)
        if resp.status_code != 200:
            return
        for booking in resp.json():
            if booking["status"] == "pending" and random.random() < 0.3:
                with self.client.patch(f"/api/v1/bookings/{booking['id']}",
                    json={"status": "cancelled"},
                    headers=self.headers,
                    name="/api/v1/bookings/{id} [cancel]",
                    catch_response=True
                ) as patch:
                    if patch.status_code in (200, 400, 409):
                        patch.success()
                    else:
                        patch.failure(f"Unexpected: {patch.status_code}")


class RideSearchUser(HttpUser):
    """
    TEST 2: Search throughput - cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags search -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again

    Compare avg response time, requests/sec and P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    @tag("search", "read")
    @task(10)
    def search_rides(self):
        params = {"page": random.randint(1, 3), "page_size": 20}
        if random.random() < 0.5:
            params["destination"] = random.choice(DESTINATIONS)[2].split()[0]
        resp = self.client.get("/api/v1/rides/", params=params, name="/api/v1/rides/ [search]")
        if resp.status_code == 200:
            for ride in resp.json().get("rides", []):
                if ride["id"] not in RIDE_IDS:
                    RIDE_IDS.append(ride["id"])

    @tag("search", "read")
    @task(3)
    def ride_detail(self):
        if RIDE_IDS:
            self.client.get(f"/api/v1/rides/{random.choice(RIDE_IDS)}", name="/api/v1/rides/{id}")

    @tag("search")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = sign_up(self.client, role="passenger")

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_ride(self):
        with self.client.post("/api/v1/bookings/",
            json={"ride_id": 999999, "seats_booked": 1},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, (404,))

    @tag("edge")
    @task
    def zero_seats(self):
        with self.client.post("/api/v1/bookings/",
            json={"ride_id": 1, "seats_booked": 0},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, (400, 422))

    @tag("edge")
    @task
    def huge_seats(self):
        with self.client.post("/api/v1/bookings/",
            json={"ride_id": 1, "seats_booked": 999999},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, (400, 409, 422))

    @tag("edge")
    @task
    def back_to_pending(self):
        """Status updates only accept forward targets."""
        with self.client.patch("/api/v1/bookings/1",
            json={"status": "pending"},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, (422,))

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/bookings/",
            data="not json at all",
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, (400, 422))

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post("/api/v1/bookings/",
            json={"ride_id": 1, "seats_booked": 1},
            catch_response=True
        ) as resp:
            self._expect(resp, (401,))


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly searching, some booking, the occasional driver offering a ride.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = sign_up(self.client)

    @task(50)
    def browse_rides(self):
        resp = self.client.get("/api/v1/rides/?page=1&page_size=20")
        if resp.status_code == 200:
            for ride in resp.json().get("rides", []):
                if ride["id"] not in RIDE_IDS:
                    RIDE_IDS.append(ride["id"])

    @task(20)
    def view_ride(self):
        if RIDE_IDS:
            self.client.get(f"/api/v1/rides/{random.choice(RIDE_IDS)}", name="/api/v1/rides/{id}")

    @task(10)
    def book_seats(self):
        if RIDE_IDS and self.headers:
            self.client.post("/api/v1/bookings/",
                json={"ride_id": random.choice(RIDE_IDS), "seats_booked": random.randint(1, 2)},
                headers=self.headers)

    @task(3)
    def offer_ride(self):
        if self.headers:
            resp = self.client.post("/api/v1/rides/", json=ride_payload(random.randint(2, 4)), headers=self.headers)
            if resp.status_code == 201:
                RIDE_IDS.append(resp.json()["id"])
