"""Voting tests — anonymous ballots of up to three car ids."""

from types import SimpleNamespace

import pytest
from sqlalchemy import select
from sqlalchemy.dialects import mysql

from pinewood.db.models import Vote
from pinewood.services.checkin_service import CheckInService, parse_ballot


async def _tally(db_session) -> dict[int, int]:
    rows = (await db_session.execute(select(Vote).execution_options(populate_existing=True)))
    return {v.car_id: v.votes for v in rows.scalars().all()}


@pytest.mark.parametrize(
    "ballot,expected",
    [
        ("3,17,900000000000", [3, 17]),
        ("1, 2", [1, 2]),
        ("1,2,3,4", []),
        ("abc", []),
        ("", []),
        (None, []),
    ],
)
def test_parse_ballot(ballot, expected):
    assert parse_ballot(ballot) == expected


@pytest.mark.asyncio
async def test_vote_counts_valid_ids(client, db_session):
    r = await client.post("/api/v4/vote", json={"votes": "3,17,900000000000"})
    assert r.json() == {"message": "Thank you"}
    assert await _tally(db_session) == {3: 1, 17: 1}


@pytest.mark.asyncio
async def test_votes_accumulate(client, db_session):
    await client.post("/api/v4/vote", json={"votes": "5"})
    await client.post("/api/v4/vote", json={"votes": "5,6"})
    assert await _tally(db_session) == {5: 2, 6: 1}


@pytest.mark.asyncio
async def test_oversized_ballot_is_ignored(client, db_session):
    r = await client.post("/api/v4/vote", json={"votes": "1,2,3,4"})
    assert r.json() == {"message": "Thank you"}
    assert await _tally(db_session) == {}


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{}, {"votes": 12}, ["1"]])
async def test_vote_always_thanks(client, payload):
    r = await client.post("/api/v4/vote", json=payload)
    assert r.json() == {"message": "Thank you"}


@pytest.mark.asyncio
async def test_vote_without_body(client):
    r = await client.post("/api/v4/vote", content=b"not json")
    assert r.json() == {"message": "Thank you"}


@pytest.mark.asyncio
async def test_repeated_id_in_one_ballot(client, db_session):
    await client.post("/api/v4/vote", json={"votes": "5,5"})
    assert await _tally(db_session) == {5: 2}


@pytest.mark.asyncio
async def test_vote_from_form_post(client, db_session):
    r = await client.post("/api/v4/vote", data={"votes": "8,9"})
    assert r.json() == {"message": "Thank you"}
    assert await _tally(db_session) == {8: 1, 9: 1}


def test_mysql_vote_is_a_single_upsert():
    class MySQLSession:
        def get_bind(self):
            return SimpleNamespace(dialect=mysql.dialect())

    stmt = CheckInService(MySQLSession())._vote_upsert(3)
    sql = str(stmt.compile(dialect=mysql.dialect()))
    assert sql.startswith("INSERT INTO")
    assert "ON DUPLICATE KEY UPDATE" in sql
