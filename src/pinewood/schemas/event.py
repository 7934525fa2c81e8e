"""Pydantic schemas for derby events."""

from datetime import date
from typing import Optional

from pydantic import Field

from pinewood.schemas.common import CamelModel, FlagBool


class EventRead(CamelModel):
    event_id: int
    event_name: str
    event_date: Optional[date] = None
    multiplier: int = 1
    hidden: FlagBool = False
    enable_voting: FlagBool = False


class EventCreate(CamelModel):
    event_name: str = Field(..., min_length=1, max_length=200)
    event_date: Optional[date] = None
    multiplier: int = Field(default=1, ge=1)
    hidden: bool = False
    enable_voting: bool = False


class EventUpdate(CamelModel):
    event_id: int
    event_name: Optional[str] = Field(None, min_length=1, max_length=200)
    event_date: Optional[date] = None
    multiplier: Optional[int] = Field(None, ge=1)
    hidden: Optional[bool] = None
    enable_voting: Optional[bool] = None


class EventDelete(CamelModel):
    event_id: int
