"""Pydantic schemas for users and login.

Learn: Separate "Create" schemas (input) from "Read" schemas (output).
UserRead has no password field, so a hash can never leak into a response
or a push.
"""

from typing import Optional

from pydantic import Field

from pinewood.schemas.common import CamelModel, FlagBool


class UserRead(CamelModel):
    user_id: int
    username: str
    admin: FlagBool = False
    event_ids: Optional[str] = None


class UserCreate(CamelModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)
    admin: bool = False
    event_ids: Optional[str] = Field(None, pattern=r"^[0-9]+(,[0-9]+)*$")


class UserUpdate(CamelModel):
    user_id: int
    username: Optional[str] = Field(None, min_length=1, max_length=100)
    password: Optional[str] = Field(None, min_length=1)
    admin: Optional[bool] = None
    event_ids: Optional[str] = Field(None, pattern=r"^[0-9]+(,[0-9]+)*$")


class UserDelete(CamelModel):
    user_id: int


class LoginRequest(CamelModel):
    username: str
    password: str
