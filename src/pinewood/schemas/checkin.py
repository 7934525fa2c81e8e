"""Pydantic schemas for photo check-in, voting and image upload."""

from datetime import datetime
from typing import Any, Optional

from pydantic import Field, field_validator

from pinewood.schemas.common import CamelModel


class CheckInRead(CamelModel):
    check_in_id: str
    car_name: str
    nickname: Optional[str] = None
    den: Optional[str] = None
    time: Optional[datetime] = None
    added_to_event_id: Optional[int] = None


class CheckInAdded(CamelModel):
    check_in_id: str = Field(..., min_length=1, max_length=36)
    event_id: int


class VoteRequest(CamelModel):
    """Ballot: up to three comma-separated car ids."""

    votes: Optional[str] = None

    @field_validator("votes", mode="before")
    @classmethod
    def coerce_to_text(cls, value: Any) -> Optional[str]:
        # Ballots are never rejected, whatever the client sent
        if value is None or isinstance(value, str):
            return value
        return str(value)


class CarImageRequest(CamelModel):
    secret: Optional[str] = None
    id: Optional[str] = Field(None, alias="Id")
    image_data: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id_to_text(cls, value: Any) -> Optional[str]:
        # The station posts the car id as a number or a string
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class DataLoadRequest(CamelModel):
    secret: Optional[str] = None
    sql: str = ""
