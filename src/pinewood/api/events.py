"""Event API routes.

Learn: Reads are public (the scoreboard and voting pages use them);
writes are admin-only and pushed to sockets subscribed to "event".
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from pinewood.api.params import parse_flag, parse_id
from pinewood.auth.dependencies import require_admin
from pinewood.db.engine import get_db
from pinewood.realtime.notifier import MutationNotifier, get_notifier, publish_mutation
from pinewood.schemas.event import EventCreate, EventDelete, EventUpdate
from pinewood.services.event_service import EventService

router = APIRouter(prefix="/event")

_admin = [Depends(require_admin)]


def _svc(db: AsyncSession = Depends(get_db)) -> EventService:
    return EventService(db)


@router.get("/all")
async def list_events(
    show_hidden: Optional[str] = Query(None, alias="showHidden"),
    day_start: Optional[int] = Query(None, alias="dayStart"),
    day_end: Optional[int] = Query(None, alias="dayEnd"),
    svc: EventService = Depends(_svc),
):
    events = await svc.list_events(
        show_hidden=parse_flag(show_hidden),
        day_start=day_start,
        day_end=day_end,
    )
    return [e.to_wire() for e in events]


@router.get("/get")
async def get_event(
    event_id: Optional[str] = Query(None, alias="eventId"),
    svc: EventService = Depends(_svc),
):
    event = await svc.get_event(parse_id(event_id, "eventId"))
    return event.to_wire()


@router.post("/create", dependencies=_admin)
async def create_event(
    body: EventCreate,
    svc: EventService = Depends(_svc),
    notifier: MutationNotifier = Depends(get_notifier),
):
    return publish_mutation(notifier, await svc.create_event(body))


@router.post("/update", dependencies=_admin)
async def update_event(
    body: EventUpdate,
    svc: EventService = Depends(_svc),
    notifier: MutationNotifier = Depends(get_notifier),
):
    return publish_mutation(notifier, await svc.update_event(body))


@router.post("/delete", dependencies=_admin)
async def delete_event(
    body: EventDelete,
    svc: EventService = Depends(_svc),
    notifier: MutationNotifier = Depends(get_notifier),
):
    return publish_mutation(notifier, await svc.delete_event(body.event_id))
