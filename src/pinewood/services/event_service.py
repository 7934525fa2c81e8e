"""Event service — listing and admin CRUD for derby events.

Learn: Every write follows the same shape: one statement, commit, read
the affected row back, wrap it in a ChangeDescriptor. The route hands the
descriptor to the notifier and to the HTTP response.
"""

from datetime import date, timedelta
from typing import Optional

import structlog
from sqlalchemy import delete, select, update

from pinewood.db.models import Event
from pinewood.errors import NotFoundError
from pinewood.schemas.common import ChangeDescriptor
from pinewood.schemas.event import EventCreate, EventRead, EventUpdate
from pinewood.services.base import BaseService

logger = structlog.get_logger()


class EventService(BaseService):
    """Business logic for derby events."""

    # ─── Read ────────────────────────────────────────────

    async def list_events(
        self,
        show_hidden: bool = False,
        day_start: Optional[int] = None,
        day_end: Optional[int] = None,
    ) -> list[EventRead]:
        """List events newest first.

        Learn: day_start/day_end are offsets in days from today, so
        day_start=0, day_end=7 means "this week's events". Bounds are
        computed here rather than with DATEDIFF so the query stays portable.
        """
        today = date.today()
        query = select(Event).order_by(Event.event_date.desc())
        if not show_hidden:
            query = query.where(Event.hidden.is_(False))
        if day_start is not None:
            query = query.where(Event.event_date >= today + timedelta(days=day_start))
        if day_end is not None:
            query = query.where(Event.event_date < today + timedelta(days=day_end))

        async with self.store("event.list"):
            result = await self.db.execute(query)
            return [EventRead.model_validate(e) for e in result.scalars().all()]

    async def get_event(self, event_id: int) -> EventRead:
        async with self.store("event.get"):
            event = await self._load(event_id)
        if event is None:
            raise NotFoundError("Event", event_id)
        return EventRead.model_validate(event)

    async def _load(self, event_id: int) -> Optional[Event]:
        result = await self.db.execute(
            select(Event)
            .where(Event.event_id == event_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    # ─── Write ───────────────────────────────────────────

    async def create_event(self, body: EventCreate) -> ChangeDescriptor:
        event = Event(**body.model_dump())
        async with self.store("event.create"):
            self.db.add(event)
            await self.db.commit()
            await self.db.refresh(event)

        logger.info("pinewood.event_created", event_id=event.event_id)
        return ChangeDescriptor.rows("event", [EventRead.model_validate(event)])

    async def update_event(self, body: EventUpdate) -> ChangeDescriptor:
        values = body.model_dump(exclude_unset=True, exclude={"event_id"})
        # Only eventDate may be cleared; null elsewhere means "leave as is"
        values = {k: v for k, v in values.items() if v is not None or k == "event_date"}
        async with self.store("event.update"):
            if values:
                result = await self.db.execute(
                    update(Event)
                    .where(Event.event_id == body.event_id)
                    .values({getattr(Event, k): v for k, v in values.items()})
                )
                if result.rowcount == 0:
                    raise NotFoundError("Event", body.event_id)
                await self.db.commit()
            event = await self._load(body.event_id)

        if event is None:
            raise NotFoundError("Event", body.event_id)
        logger.info("pinewood.event_updated", event_id=body.event_id, fields=list(values))
        return ChangeDescriptor.rows("event", [EventRead.model_validate(event)])

    async def delete_event(self, event_id: int) -> ChangeDescriptor:
        async with self.store("event.delete"):
            result = await self.db.execute(
                delete(Event).where(Event.event_id == event_id)
            )
            if result.rowcount == 0:
                raise NotFoundError("Event", event_id)
            await self.db.commit()

        logger.info("pinewood.event_deleted", event_id=event_id)
        return ChangeDescriptor.removed("event", [event_id])
