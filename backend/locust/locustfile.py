"""
Locust Load Test Suite

Seed first (python -m app.scripts.seed_data --users 100), then point the
users at the seeded data:

  LOAD_EVENT_ID=3 LOAD_USER_IDS=1-100 locust -f locustfile.py --tags contention
  locust -f locustfile.py --tags throughput   # Test listing cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests

Tokens are minted locally with the API's SECRET_KEY, so run with the same
environment as the server.
"""

import os
import random
from locust import HttpUser, task, between, tag

from app.core.security import create_access_token

CONTENTION_EVENT_ID = int(os.environ.get("LOAD_EVENT_ID", "1"))
EVENT_IDS = []


def _user_ids() -> list[int]:
    first, _, last = os.environ.get("LOAD_USER_IDS", "1-50").partition("-")
    return list(range(int(first), int(last or first) + 1))


USER_IDS = _user_ids()


def auth_headers() -> dict:
    token = create_access_token(data={"sub": str(random.choice(USER_IDS))})
    return {"Authorization": f"Bearer {token}"}


class ContentionUser(HttpUser):
    """
    TEST 1: Contention - many buyers, overlapping seat picks

    Run: locust -f locustfile.py --tags contention -u 100 -r 50 --run-time 30s

    After test, verify no seat is sold twice and the counter agrees:
      SELECT e.available_seats, e.total_seats - COUNT(s.id)
      FROM events e LEFT JOIN seats s ON s.event_id = e.id AND s.is_booked
      WHERE e.id = X GROUP BY e.id;
    Both columns must match.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = auth_headers()

    @tag("contention")
    @task
    def book_free_seats(self):
        """Pick 1-3 seats that look free and race everyone else for them."""
        resp = self.client.get(
            f"/api/v1/events/{CONTENTION_EVENT_ID}/seats",
            name="/api/v1/events/{id}/seats",
        )
        if resp.status_code != 200:
            return
        data = resp.json()
        free = [s for s in data["seats"] if not s["is_booked"]]
        if not free:
            return

        picked = random.sample(free, min(len(free), random.randint(1, 3)))
        price = float(self._price())
        with self.client.post("/api/v1/bookings",
            json={
                "event_id": CONTENTION_EVENT_ID,
                "seat_ids": [s["id"] for s in picked],
                "total_amount": round(price * len(picked), 2),
            },
            headers=self.headers,
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: lost the race
            elif resp.status_code == 503:
                resp.success()  # Lock timeout, retryable
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    def _price(self):
        if not hasattr(self, "price"):
            resp = self.client.get(f"/api/v1/events/{CONTENTION_EVENT_ID}", name="/api/v1/events/{id}")
            self.price = resp.json()["price"] if resp.status_code == 200 else "0"
        return self.price


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false on the server, run again

    Compare avg response time and P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_events_cached(self):
        """Hammer the cached endpoint."""
        resp = self.client.get("/api/v1/events?page=1&page_size=20",
            name="/api/v1/events [cached]")
        if resp.status_code == 200:
            for event in resp.json().get("events", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @tag("throughput", "read")
    @task(3)
    def get_seat_map(self):
        """Seat maps are never cached."""
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}/seats",
                name="/api/v1/events/{id}/seats")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = auth_headers()

    def _expect(self, payload, allowed, headers=None):
        with self.client.post("/api/v1/bookings",
            json=payload,
            headers=self.headers if headers is None else headers,
            catch_response=True
        ) as resp:
            if resp.status_code in allowed:
                resp.success()
            else:
                resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_seats(self):
        self._expect({"event_id": CONTENTION_EVENT_ID, "seat_ids": [999999999], "total_amount": 10}, [400])

    @tag("edge")
    @task
    def empty_seat_list(self):
        self._expect({"event_id": CONTENTION_EVENT_ID, "seat_ids": [], "total_amount": 0}, [400])

    @tag("edge")
    @task
    def duplicate_seats(self):
        self._expect({"event_id": CONTENTION_EVENT_ID, "seat_ids": [1, 1], "total_amount": 20}, [400])

    @tag("edge")
    @task
    def too_many_seats(self):
        self._expect({"event_id": CONTENTION_EVENT_ID, "seat_ids": list(range(1, 50)), "total_amount": 0}, [400])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/bookings",
            data="not json at all",
            headers=self.headers,
            catch_response=True
        ) as resp:
            if resp.status_code in [400, 422]:
                resp.success()
            else:
                resp.failure(f"Expected 400/422, got {resp.status_code}")

    @tag("edge")
    @task
    def missing_auth(self):
        self._expect({"event_id": CONTENTION_EVENT_ID, "seat_ids": [1], "total_amount": 10}, [401], headers={})

    @tag("edge")
    @task
    def unknown_ticket(self):
        with self.client.get("/api/v1/verify-ticket/BK0", catch_response=True,
            name="/api/v1/verify-ticket/{ref}") as resp:
            if resp.status_code == 404:
                resp.success()
            else:
                resp.failure(f"Expected 404, got {resp.status_code}")
