"""Car and result service.

Learn: Cars belong to an event and are maintained by admins; results are
written by the track timer and only read here. Achievements are joined in
Python rather than with GROUP_CONCAT so the query works on any backend.
"""

from collections import defaultdict
from typing import Optional

import structlog
from sqlalchemy import delete, select, update

from pinewood.db.models import Achievement, Car, Event, Result
from pinewood.errors import NotFoundError
from pinewood.schemas.car import (
    CarCreate,
    CarRead,
    CarUpdate,
    CarWithAchievements,
    ResultRead,
)
from pinewood.schemas.common import ChangeDescriptor
from pinewood.services.base import BaseService

logger = structlog.get_logger()

_NULLABLE = {"car_number", "owner", "den"}


class CarService(BaseService):
    """Business logic for cars, results and achievements."""

    async def _load(self, car_id: int) -> Optional[Car]:
        result = await self.db.execute(
            select(Car)
            .where(Car.car_id == car_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def _require_event(self, event_id: int) -> None:
        if await self.db.get(Event, event_id) is None:
            raise NotFoundError("Event", event_id)

    # ─── Read ────────────────────────────────────────────

    async def list_by_event(self, event_id: int) -> list[CarRead]:
        async with self.store("car.list"):
            result = await self.db.execute(
                select(Car).where(Car.event_id == event_id).order_by(Car.car_id)
            )
            return [CarRead.model_validate(c) for c in result.scalars().all()]

    async def results_by_event(self, event_id: int) -> list[ResultRead]:
        async with self.store("result.list"):
            result = await self.db.execute(
                select(Result)
                .where(Result.event_id == event_id)
                .order_by(Result.heat, Result.lane)
            )
            return [ResultRead.model_validate(r) for r in result.scalars().all()]

    async def cars_and_results(self, event_id: int) -> dict:
        """Cars (with achievement names) and results for the scoreboard."""
        async with self.store("car.cars_and_results"):
            cars = (
                await self.db.execute(
                    select(Car).where(Car.event_id == event_id).order_by(Car.car_id)
                )
            ).scalars().all()
            achievements = (
                await self.db.execute(
                    select(Achievement)
                    .join(Car, Car.car_id == Achievement.car_id)
                    .where(Car.event_id == event_id)
                    .order_by(Achievement.achievement)
                )
            ).scalars().all()

        by_car: dict[int, list[str]] = defaultdict(list)
        for a in achievements:
            if a.achievement not in by_car[a.car_id]:
                by_car[a.car_id].append(a.achievement)

        rows = []
        for car in cars:
            row = CarWithAchievements.model_validate(car)
            row.all_achs = ", ".join(by_car[car.car_id]) or None
            rows.append(row.to_wire())

        results = await self.results_by_event(event_id)
        return {"cars": rows, "results": [r.to_wire() for r in results]}

    # ─── Write ───────────────────────────────────────────

    async def create_car(self, body: CarCreate) -> ChangeDescriptor:
        car = Car(**body.model_dump())
        async with self.store("car.create"):
            await self._require_event(body.event_id)
            self.db.add(car)
            await self.db.commit()
            await self.db.refresh(car)

        logger.info("pinewood.car_created", car_id=car.car_id, event_id=car.event_id)
        return ChangeDescriptor.rows("car", [CarRead.model_validate(car)])

    async def update_car(self, body: CarUpdate) -> ChangeDescriptor:
        values = body.model_dump(exclude_unset=True, exclude={"car_id"})
        values = {k: v for k, v in values.items() if v is not None or k in _NULLABLE}

        async with self.store("car.update"):
            if "event_id" in values:
                await self._require_event(values["event_id"])
            if values:
                result = await self.db.execute(
                    update(Car)
                    .where(Car.car_id == body.car_id)
                    .values({getattr(Car, k): v for k, v in values.items()})
                )
                if result.rowcount == 0:
                    raise NotFoundError("Car", body.car_id)
                await self.db.commit()
            car = await self._load(body.car_id)

        if car is None:
            raise NotFoundError("Car", body.car_id)
        logger.info("pinewood.car_updated", car_id=body.car_id, fields=sorted(values))
        return ChangeDescriptor.rows("car", [CarRead.model_validate(car)])

    async def delete_car(self, car_id: int) -> ChangeDescriptor:
        async with self.store("car.delete"):
            result = await self.db.execute(delete(Car).where(Car.car_id == car_id))
            if result.rowcount == 0:
                raise NotFoundError("Car", car_id)
            await self.db.commit()

        logger.info("pinewood.car_deleted", car_id=car_id)
        return ChangeDescriptor.removed("car", [car_id])

    async def bump_image_version(self, car_id: int) -> Optional[ChangeDescriptor]:
        """Record a new photo so clients reload it. None if the car is unknown."""
        async with self.store("car.bump_image_version"):
            result = await self.db.execute(
                update(Car)
                .where(Car.car_id == car_id)
                .values({Car.image_version: Car.image_version + 1})
            )
            if result.rowcount == 0:
                return None
            await self.db.commit()
            car = await self._load(car_id)

        if car is None:
            return None
        return ChangeDescriptor.rows("car", [CarRead.model_validate(car)])
