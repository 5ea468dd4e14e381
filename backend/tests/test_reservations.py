import asyncio
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from backend.app.db.session import get_session
from backend.app.main import app


pytestmark = pytest.mark.asyncio


def reservation_payload(reservation_date, **overrides):
    payload = {
        "guest_name": "Test Guest",
        "guest_email": "guest@mail.com",
        "party_size": 2,
        "reservation_date": reservation_date.isoformat(),
        "reservation_time": "12:00",
        "special_request": "pytest",
    }
    payload.update(overrides)
    return payload


async def test_create_reservation_success(client, today):
    response = await client.post("/api/v1/reservations", json=reservation_payload(today + timedelta(days=7)))

    assert response.status_code == 201, response.text
    data = response.json()
    assert isinstance(data["id"], int)
    assert data["status"] == "CONFIRMED"
    assert data["reservation_time"] == "12:00:00"
    assert data["special_request"] == "pytest"
    assert data["created_at"] and data["updated_at"]

    fetched = await client.get(f"/api/v1/reservations/{data['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["guest_name"] == "Test Guest"


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"guest_name": "   "}, "guest_name"),
        ({"guest_name": "x" * 101}, "guest_name"),
        ({"guest_email": "not-an-email"}, "guest_email"),
        ({"party_size": 0}, "party_size"),
        ({"party_size": 5}, "party_size"),
        ({"special_request": "x" * 501}, "special_request"),
        ({"reservation_time": None}, "reservation_time"),
    ],
)
async def test_create_reservation_validation(client, today, overrides, field):
    response = await client.post(
        "/api/v1/reservations",
        json=reservation_payload(today + timedelta(days=1), **overrides),
    )

    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "VALIDATION_FAILED"
    assert field in [error["field"] for error in body["field_errors"]]


async def test_create_reservation_date_window(client, today):
    past = await client.post("/api/v1/reservations", json=reservation_payload(today - timedelta(days=1)))
    assert past.status_code == 400
    assert past.json()["error_code"] == "PAST_DATE_NOT_ALLOWED"

    too_far = await client.post("/api/v1/reservations", json=reservation_payload(today + timedelta(days=31)))
    assert too_far.status_code == 400
    assert too_far.json()["error_code"] == "TOO_FAR_IN_FUTURE"

    last_day = await client.post("/api/v1/reservations", json=reservation_payload(today + timedelta(days=30)))
    assert last_day.status_code == 201


async def test_capacity_enforced(client, today):
    slot_date = today + timedelta(days=3)
    for n in range(5):
        response = await client.post(
            "/api/v1/reservations",
            json=reservation_payload(slot_date, guest_name=f"Capacity Guest {n}"),
        )
        assert response.status_code == 201

    sixth = await client.post("/api/v1/reservations", json=reservation_payload(slot_date))

    assert sixth.status_code == 409
    body = sixth.json()
    assert body["error_code"] == "FULLY_BOOKED"
    assert f"{slot_date.isoformat()} 12:00" in body["message"]
    assert body["status"] == 409


async def test_parallel_commit_race(client, today):
    slot_date = today + timedelta(days=4)

    async def post_reservation(n):
        return await client.post(
            "/api/v1/reservations",
            json=reservation_payload(slot_date, guest_name=f"Parallel Guest {n}"),
        )

    responses = await asyncio.gather(*(post_reservation(n) for n in range(8)))

    status_codes = sorted(response.status_code for response in responses)
    assert status_codes == [201] * 5 + [409] * 3

    availability = await client.get(
        "/api/v1/reservations/availability",
        params={"date": slot_date.isoformat(), "time": "12:00"},
    )
    assert availability.json()["available_tables"] == 0


async def test_cancel_reservation(client, today):
    slot_date = today + timedelta(days=7)
    created = (await client.post("/api/v1/reservations", json=reservation_payload(slot_date, guest_name="A"))).json()

    first = await client.delete(f"/api/v1/reservations/{created['id']}")
    assert first.status_code == 200
    assert first.json()["status"] == "CANCELLED"

    second = await client.delete(f"/api/v1/reservations/{created['id']}")
    assert second.status_code == 409
    assert second.json()["error_code"] == "ALREADY_CANCELLED"

    on_date = await client.get("/api/v1/reservations/date", params={"date": slot_date.isoformat()})
    assert on_date.status_code == 200
    assert [(r["id"], r["status"]) for r in on_date.json()] == [(created["id"], "CANCELLED")]


async def test_unknown_reservation_is_404(client):
    fetched = await client.get("/api/v1/reservations/424242")
    assert fetched.status_code == 404
    assert fetched.json()["error_code"] == "RESERVATION_NOT_FOUND"

    cancelled = await client.delete("/api/v1/reservations/424242")
    assert cancelled.status_code == 404


async def test_list_reservations_newest_first(client, today):
    ids = []
    for days in (1, 2, 3):
        response = await client.post("/api/v1/reservations", json=reservation_payload(today + timedelta(days=days)))
        ids.append(response.json()["id"])

    listed = await client.get("/api/v1/reservations")

    assert listed.status_code == 200
    assert [r["id"] for r in listed.json()] == list(reversed(ids))


async def test_list_confirmed_between(client, today):
    kept = (await client.post("/api/v1/reservations", json=reservation_payload(today + timedelta(days=1)))).json()
    dropped = (await client.post("/api/v1/reservations", json=reservation_payload(today + timedelta(days=2)))).json()
    await client.post("/api/v1/reservations", json=reservation_payload(today + timedelta(days=9)))
    await client.delete(f"/api/v1/reservations/{dropped['id']}")

    response = await client.get(
        "/api/v1/reservations/confirmed",
        params={"start": today.isoformat(), "end": (today + timedelta(days=5)).isoformat()},
    )

    assert response.status_code == 200
    assert [r["id"] for r in response.json()] == [kept["id"]]


async def test_availability(client, today):
    slot_date = today + timedelta(days=2)
    params = {"date": slot_date.isoformat(), "time": "19:00"}

    empty = await client.get("/api/v1/reservations/availability", params=params)
    assert empty.status_code == 200, empty.text
    assert empty.json() == {
        "date": slot_date.isoformat(),
        "time": "19:00:00",
        "available_tables": 5,
        "total_tables": 5,
        "is_available": True,
    }

    for n in range(3):
        await client.post(
            "/api/v1/reservations",
            json=reservation_payload(slot_date, guest_name=f"Guest {n}", reservation_time="19:00"),
        )

    partial = await client.get("/api/v1/reservations/availability", params=params)
    assert partial.json()["available_tables"] == 2
    assert partial.json()["is_available"] is True


async def test_availability_requires_date_and_time(client):
    response = await client.get("/api/v1/reservations/availability", params={"date": "2026-11-03"})

    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_FAILED"


async def test_health_endpoints(client):
    health = await client.get("/api/v1/healthz")
    readiness = await client.get("/api/v1/readiness")

    assert health.status_code == 200
    assert health.json() == {"ok": True}
    assert readiness.status_code == 200
    assert readiness.json() == {"ready": True}


async def test_readiness_reports_database_outage(client):
    class UnreachableSession:
        async def execute(self, statement):
            raise OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))

    async def unreachable_session():
        yield UnreachableSession()

    app.dependency_overrides[get_session] = unreachable_session

    response = await client.get("/api/v1/readiness")

    assert response.status_code == 503
    assert response.json() == {"detail": "Database unavailable"}


async def test_times_with_utc_offset_are_rejected(client, today):
    slot_date = today + timedelta(days=1)

    created = await client.post(
        "/api/v1/reservations",
        json=reservation_payload(slot_date, reservation_time="12:00:00+09:00"),
    )
    assert created.status_code == 400
    assert "reservation_time" in [error["field"] for error in created.json()["field_errors"]]

    availability = await client.get(
        "/api/v1/reservations/availability",
        params={"date": slot_date.isoformat(), "time": "12:00:00+09:00"},
    )
    assert availability.status_code == 400
    assert availability.json()["error_code"] == "VALIDATION_FAILED"

    listed = await client.get("/api/v1/reservations")
    assert listed.json() == []
