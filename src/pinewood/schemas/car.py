"""Pydantic schemas for cars, race results and achievements."""

from typing import Optional

from pydantic import Field

from pinewood.schemas.common import CamelModel


class CarRead(CamelModel):
    car_id: int
    event_id: int
    car_name: str
    car_number: Optional[int] = None
    owner: Optional[str] = None
    den: Optional[str] = None
    image_version: int = 0


class CarWithAchievements(CarRead):
    """Car row joined with its comma-separated achievement names."""
    all_achs: Optional[str] = None


class CarCreate(CamelModel):
    event_id: int
    car_name: str = Field(..., min_length=1, max_length=100)
    car_number: Optional[int] = None
    owner: Optional[str] = Field(None, max_length=100)
    den: Optional[str] = Field(None, max_length=50)


class CarUpdate(CamelModel):
    car_id: int
    event_id: Optional[int] = None
    car_name: Optional[str] = Field(None, min_length=1, max_length=100)
    car_number: Optional[int] = None
    owner: Optional[str] = Field(None, max_length=100)
    den: Optional[str] = Field(None, max_length=50)


class CarDelete(CamelModel):
    car_id: int


class ResultRead(CamelModel):
    result_id: int
    event_id: int
    heat: int
    lane: int
    car_id: Optional[int] = None
    time: Optional[float] = None
    place: Optional[int] = None
