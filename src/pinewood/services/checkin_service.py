"""Check-in and voting service.

Learn: Check-in is the self-service kiosk flow: a family enters the car's
name, a nickname and their den, snaps a photo, and the row waits until a
scorekeeper adds the car to an event (addedToEventId).

Voting is anonymous: every ballot gets the same answer, and individual
bad ids are dropped without telling the voter.
"""

import re
import uuid
from datetime import date, datetime, time, timedelta
from typing import Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from pinewood.db.models import CheckIn, Vote
from pinewood.errors import NotFoundError, StoreError, ValidationError
from pinewood.schemas.checkin import CheckInRead
from pinewood.services.base import BaseService
from pinewood.services.image_store import (
    JPEG_DATA_URL_PREFIX,
    ImageStore,
    decode_data_url,
)

logger = structlog.get_logger()

MAX_VOTES_PER_BALLOT = 3
VOTE_ID_PATTERN = re.compile(r"[0-9]{1,9}")
RECENT_DAYS = 4


def parse_ballot(votes: Optional[str]) -> list[int]:
    """Car ids from a ballot string; [] when the ballot is unusable.

    Ballots with more than three entries are ignored entirely; entries
    that are not 1–9 digit ids are skipped.
    """
    if not votes:
        return []
    entries = votes.split(",")
    if len(entries) > MAX_VOTES_PER_BALLOT:
        return []
    return [int(e.strip()) for e in entries if VOTE_ID_PATTERN.fullmatch(e.strip())]


class CheckInService(BaseService):
    """Business logic for kiosk check-ins and voting."""

    async def check_in(
        self,
        images: ImageStore,
        name: str,
        nickname: Optional[str],
        den: Optional[str],
        photo: str,
    ) -> str:
        """Store a check-in row and its photo. Returns the new checkInId."""
        if not name:
            raise ValidationError("name")
        if not photo.startswith(JPEG_DATA_URL_PREFIX):
            raise ValidationError("photo", "must be a JPEG data URL")
        image = decode_data_url(photo)

        check_in_id = str(uuid.uuid4())
        # Photo first: a row is only listed once its photo exists
        await images.write(check_in_id, image)
        try:
            async with self.store("checkin.create"):
                self.db.add(
                    CheckIn(check_in_id=check_in_id, car_name=name, nickname=nickname, den=den)
                )
                await self.db.commit()
        except StoreError:
            await images.remove(check_in_id)
            raise

        logger.info("pinewood.checked_in", check_in_id=check_in_id, den=den)
        return check_in_id

    async def mark_added(self, check_in_id: str, event_id: int) -> None:
        async with self.store("checkin.added"):
            result = await self.db.execute(
                update(CheckIn)
                .where(CheckIn.check_in_id == check_in_id)
                .values({CheckIn.added_to_event_id: event_id})
            )
            if result.rowcount == 0:
                raise NotFoundError("CheckIn", check_in_id)
            await self.db.commit()

    async def list_checkins(
        self, not_added: bool = False, recent: bool = False
    ) -> list[CheckInRead]:
        """Newest first; optionally only unprocessed or from the last few days."""
        query = select(CheckIn).order_by(CheckIn.time.desc())
        if not_added:
            query = query.where(CheckIn.added_to_event_id.is_(None))
        if recent:
            since = datetime.combine(date.today() - timedelta(days=RECENT_DAYS - 1), time.min)
            query = query.where(CheckIn.time >= since)

        async with self.store("checkin.list"):
            result = await self.db.execute(query)
            return [CheckInRead.model_validate(c) for c in result.scalars().all()]

    def _vote_upsert(self, car_id: int):
        """Insert-or-increment for a car's vote counter as one statement.

        MySQL uses ON DUPLICATE KEY UPDATE; SQLite (tests) uses ON CONFLICT.
        """
        votes = Vote.__table__
        row = {"carId": car_id, "Votes": 1}
        if self.db.get_bind().dialect.name == "mysql":
            stmt = mysql_insert(votes).values(row)
            return stmt.on_duplicate_key_update({"Votes": votes.c.Votes + 1})
        stmt = sqlite_insert(votes).values(row)
        return stmt.on_conflict_do_update(
            index_elements=[votes.c.carId],
            set_={"Votes": votes.c.Votes + 1},
        )

    async def cast_votes(self, votes: Optional[str]) -> int:
        """Count one vote per valid id. Returns how many were recorded.

        Failures are logged, never raised. The voter always gets the same
        answer.
        """
        recorded = 0
        for car_id in parse_ballot(votes):
            try:
                async with self.store("vote.cast"):
                    await self.db.execute(self._vote_upsert(car_id))
                    await self.db.commit()
                recorded += 1
            except StoreError as e:
                logger.warning("pinewood.vote_failed", car_id=car_id, error=str(e))
        return recorded
