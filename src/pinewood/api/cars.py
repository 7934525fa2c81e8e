"""Car and result API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from pinewood.api.params import parse_id
from pinewood.auth.dependencies import require_admin
from pinewood.db.engine import get_db
from pinewood.realtime.notifier import MutationNotifier, get_notifier, publish_mutation
from pinewood.schemas.car import CarCreate, CarDelete, CarUpdate
from pinewood.services.car_service import CarService

router = APIRouter()

_admin = [Depends(require_admin)]


def _svc(db: AsyncSession = Depends(get_db)) -> CarService:
    return CarService(db)


# ─── Reads ──────────────────────────────────────────────

@router.get("/car/getByEventId")
async def cars_by_event(
    event_id: Optional[str] = Query(None, alias="eventId"),
    svc: CarService = Depends(_svc),
):
    cars = await svc.list_by_event(parse_id(event_id, "eventId"))
    return [c.to_wire() for c in cars]


@router.get("/result/getByEventId")
async def results_by_event(
    event_id: Optional[str] = Query(None, alias="eventId"),
    svc: CarService = Depends(_svc),
):
    results = await svc.results_by_event(parse_id(event_id, "eventId"))
    return [r.to_wire() for r in results]


@router.get("/carsAndResultsByEventId")
async def cars_and_results(
    event_id: Optional[str] = Query(None, alias="eventId"),
    svc: CarService = Depends(_svc),
):
    return await svc.cars_and_results(parse_id(event_id, "eventId"))


# ─── Admin writes ───────────────────────────────────────

@router.post("/car/create", dependencies=_admin)
async def create_car(
    body: CarCreate,
    svc: CarService = Depends(_svc),
    notifier: MutationNotifier = Depends(get_notifier),
):
    return publish_mutation(notifier, await svc.create_car(body))


@router.post("/car/update", dependencies=_admin)
async def update_car(
    body: CarUpdate,
    svc: CarService = Depends(_svc),
    notifier: MutationNotifier = Depends(get_notifier),
):
    return publish_mutation(notifier, await svc.update_car(body))


@router.post("/car/delete", dependencies=_admin)
async def delete_car(
    body: CarDelete,
    svc: CarService = Depends(_svc),
    notifier: MutationNotifier = Depends(get_notifier),
):
    return publish_mutation(notifier, await svc.delete_car(body.car_id))
