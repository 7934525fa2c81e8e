"""Car and result API tests."""

import pytest
from sqlalchemy import func, select

from pinewood.db.models import Achievement, Car, Event, Result


@pytest.fixture
async def derby(db_session):
    """One event with two cars, two results and some achievements."""
    db_session.add(Event(event_id=1, event_name="Derby1"))
    db_session.add_all(
        [
            Car(car_id=10, event_id=1, car_name="Blue Streak", car_number=101, den="Wolf"),
            Car(car_id=11, event_id=1, car_name="Red Rocket", car_number=102, den="Bear"),
            Result(result_id=1, event_id=1, heat=2, lane=1, car_id=11, time=3.21, place=1),
            Result(result_id=2, event_id=1, heat=1, lane=2, car_id=10, time=3.40, place=2),
            Achievement(car_id=10, achievement="Fastest"),
            Achievement(car_id=10, achievement="Best in Show"),
        ]
    )
    await db_session.commit()


async def _car_count(db_session) -> int:
    return (await db_session.execute(select(func.count()).select_from(Car))).scalar_one()


# ═══════════════════════════════════════════════════════════
# Reads
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_cars_by_event(client, derby):
    r = await client.get("/api/v4/car/getByEventId", params={"eventId": "1"})
    cars = r.json()
    assert [c["carName"] for c in cars] == ["Blue Streak", "Red Rocket"]
    assert cars[0]["imageVersion"] == 0
    assert cars[0]["carNumber"] == 101


@pytest.mark.asyncio
async def test_cars_by_event_invalid_id(client):
    r = await client.get("/api/v4/car/getByEventId", params={"eventId": "1 OR 1=1"})
    assert r.json() == {"error": "eventId is invalid"}


@pytest.mark.asyncio
async def test_results_ordered_by_heat_and_lane(client, derby):
    r = await client.get("/api/v4/result/getByEventId", params={"eventId": "1"})
    assert [(x["heat"], x["lane"]) for x in r.json()] == [(1, 2), (2, 1)]


@pytest.mark.asyncio
async def test_cars_and_results(client, derby):
    r = await client.get("/api/v4/carsAndResultsByEventId", params={"eventId": "1"})
    body = r.json()
    by_id = {c["carId"]: c for c in body["cars"]}
    assert by_id[10]["allAchs"] == "Best in Show, Fastest"
    assert by_id[11]["allAchs"] is None
    assert len(body["results"]) == 2


# ═══════════════════════════════════════════════════════════
# Writes
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_car(client, derby, admin_headers, listener, drain):
    r = await client.post(
        "/api/v4/car/create",
        json={"eventId": 1, "carName": "Green Machine", "owner": "Sam"},
        headers=admin_headers,
    )
    [descriptor] = r.json()["update"]
    assert descriptor["table"] == "car"
    row = descriptor["data"][0]
    assert row["carName"] == "Green Machine"
    assert row["imageVersion"] == 0
    assert drain(listener) == [{"event": "update", "data": [descriptor]}]


@pytest.mark.asyncio
async def test_create_car_unknown_event(client, admin_headers, db_session):
    r = await client.post(
        "/api/v4/car/create",
        json={"eventId": 5, "carName": "Orphan"},
        headers=admin_headers,
    )
    assert r.json() == {"error": "Event not found"}
    assert await _car_count(db_session) == 0


@pytest.mark.asyncio
async def test_update_car(client, derby, admin_headers):
    r = await client.post(
        "/api/v4/car/update",
        json={"carId": 11, "den": None, "carName": "Red Rocket II"},
        headers=admin_headers,
    )
    row = r.json()["update"][0]["data"][0]
    assert row["carName"] == "Red Rocket II"
    assert row["den"] is None
    assert row["carNumber"] == 102


@pytest.mark.asyncio
async def test_delete_car(client, derby, admin_headers, listener, drain, db_session):
    r = await client.post("/api/v4/car/delete", json={"carId": 10}, headers=admin_headers)
    expected = {"table": "car", "data": {"ids": [10]}, "deleted": True}
    assert r.json() == {"success": True, "update": [expected]}
    assert drain(listener) == [{"event": "update", "data": [expected]}]
    assert await _car_count(db_session) == 1


@pytest.mark.asyncio
async def test_delete_car_missing_id(client, derby, admin_headers, listener, drain, db_session):
    r = await client.post("/api/v4/car/delete", json={}, headers=admin_headers)
    assert r.json() == {"error": "carId is required"}
    assert drain(listener) == []
    assert await _car_count(db_session) == 2


@pytest.mark.asyncio
async def test_delete_car_unknown(client, derby, admin_headers):
    r = await client.post("/api/v4/car/delete", json={"carId": 999}, headers=admin_headers)
    assert r.json() == {"error": "Car not found"}
